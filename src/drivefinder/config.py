"""Application configuration defaults."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

INDEX_DIR_ENV = "DRIVEFINDER_INDEX_DIR"
DATA_DIR_ENV = "DRIVEFINDER_DATA_DIR"
PREFERENCES_ENV = "DRIVEFINDER_PREFERENCES"

RECENTS_FILE_NAME = "recent-files.json"


def _get_default_index_dir() -> Path:
    """Directory where the drive indexer writes one JSON index per volume."""
    env_override = os.getenv(INDEX_DIR_ENV)
    if env_override:
        return Path(env_override).expanduser()
    return Path.home() / "Library" / "Application Support" / "DriveBuddy" / "SearchIndexes"


def _get_default_preferences_path() -> Path:
    env_override = os.getenv(PREFERENCES_ENV)
    if env_override:
        return Path(env_override).expanduser()
    return Path.home() / "Library" / "Preferences" / "UE5.DriveBuddy.plist"


def _get_default_data_dir() -> Path:
    """Get the per-user data directory based on platform."""
    env_override = os.getenv(DATA_DIR_ENV)
    if env_override:
        return Path(env_override).expanduser()

    if sys.platform == "win32":
        appdata = os.environ.get("LOCALAPPDATA", os.path.expanduser("~"))
        return Path(appdata) / "DriveFinder"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "DriveFinder"
    return Path.home() / ".local" / "share" / "drivefinder"


@dataclass(slots=True)
class AppConfig:
    index_dir: Path | None = None
    recents_path: Path | None = None
    preferences_path: Path | None = None
    volumes_root: Path = Path("/Volumes")
    max_results: int = 100
    recent_limit: int = 20
    chunk_size: int = 64 * 1024
    debounce_seconds: float = 0.2

    def __post_init__(self) -> None:
        if self.index_dir is None:
            self.index_dir = _get_default_index_dir()
        if self.recents_path is None:
            self.recents_path = _get_default_data_dir() / RECENTS_FILE_NAME
        if self.preferences_path is None:
            self.preferences_path = _get_default_preferences_path()
