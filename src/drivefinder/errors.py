"""Exceptions raised by DriveFinder."""

from __future__ import annotations

from pathlib import Path


class DriveFinderError(Exception):
    """Base class for DriveFinder errors."""


class ScanError(DriveFinderError):
    """An index document could not be opened or read."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(f"{path}: {message}")
        self.path = Path(path)


class RecencyStoreError(DriveFinderError):
    """The recent files document could not be written."""
