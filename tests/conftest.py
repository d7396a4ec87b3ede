"""Shared fixtures for DriveFinder tests."""

from __future__ import annotations

import json
import plistlib
from pathlib import Path
from typing import Callable, Dict, Iterable, Tuple

import pytest

from drivefinder.volumes import index_filename

VOLUME_A = "6B75ED22-0332-3A5C-8252-15681FB01E4A"
VOLUME_B = "0F2C9A10-1111-4B2B-9C3D-ABCDEF012345"


def index_document(entries: Iterable[Tuple[str, str]], generated_at: float = 700000000.0) -> dict:
    return {
        "generatedAt": generated_at,
        "entries": [{"name": name, "relativePath": path} for name, path in entries],
    }


@pytest.fixture
def index_dir(tmp_path: Path) -> Path:
    path = tmp_path / "SearchIndexes"
    path.mkdir()
    return path


@pytest.fixture
def write_index(index_dir: Path) -> Callable[..., Path]:
    """Write an index document for a volume and return its path."""

    def _write(volume_id: str, entries: Iterable[Tuple[str, str]], **kwargs) -> Path:
        path = index_dir / index_filename(volume_id)
        path.write_text(json.dumps(index_document(entries, **kwargs), indent=2), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_preferences(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """Write a drive indexer preferences plist naming the given volumes."""

    def _write(names: Dict[str, str]) -> Path:
        drive_log = {
            uuid: {
                "lastKnown": {"name": name, "path": f"/Volumes/{name}", "totalSize": 1000},
                "lastSeen": 700000000.0,
            }
            for uuid, name in names.items()
        }
        path = tmp_path / "UE5.DriveBuddy.plist"
        with path.open("wb") as handle:
            plistlib.dump({"DriveLogByKey": json.dumps(drive_log).encode("utf-8")}, handle)
        return path

    return _write
