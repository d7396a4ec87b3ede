"""Volume identifiers, metadata lookup and mount status."""

from __future__ import annotations

import base64
import binascii
import json
import logging
import plistlib
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Protocol

from drivefinder.models import VolumeInfo

LOGGER = logging.getLogger(__name__)

INDEX_SUFFIX = ".json"
UNKNOWN_VOLUME_NAME = "Unknown Drive"
DEFAULT_VOLUMES_ROOT = Path("/Volumes")

# Seconds between the Unix epoch and the Apple reference date (2001-01-01 UTC).
CF_ABSOLUTE_TIME_OFFSET = 978307200

_DRIVE_LOG_KEY = "DriveLogByKey"


def _strip_suffix(filename: str) -> str:
    name = Path(filename).name
    if name.endswith(INDEX_SUFFIX):
        return name[: -len(INDEX_SUFFIX)]
    return name


def encode_volume_id(volume_id: str) -> str:
    """Encode a volume UUID the way index filenames store it."""
    return base64.b64encode(volume_id.encode("ascii")).decode("ascii")


def decode_volume_id(filename: str) -> str:
    """Decode the volume UUID from an index filename.

    ``NkI3NUVEMjItMDMzMi0zQTVDLTgyNTItMTU2ODFGQjAxRTRB.json`` becomes
    ``6B75ED22-0332-3A5C-8252-15681FB01E4A``. Names that are not valid
    base64 of ASCII text fall back to the bare file stem.
    """
    stem = _strip_suffix(filename)
    try:
        return base64.b64decode(stem, validate=True).decode("ascii")
    except (binascii.Error, ValueError):
        return stem


def index_filename(volume_id: str) -> str:
    try:
        return encode_volume_id(volume_id) + INDEX_SUFFIX
    except UnicodeEncodeError:
        # Identifiers recovered from undecodable filenames are the raw stem.
        return volume_id + INDEX_SUFFIX


def cf_absolute_time_to_datetime(seconds: float) -> datetime:
    """Convert Apple CFAbsoluteTime (seconds since 2001-01-01) to an aware datetime."""
    return datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(
        seconds=seconds + CF_ABSOLUTE_TIME_OFFSET
    )


class VolumeMetadataProvider(Protocol):
    def lookup(self, volume_id: str) -> Optional[VolumeInfo]:
        ...


def resolve_volume_name(provider: VolumeMetadataProvider, volume_id: str) -> Optional[str]:
    info = provider.lookup(volume_id)
    if info is None or not info.name:
        return None
    return info.name


class StaticVolumeDirectory:
    """In-memory volume metadata, keyed by volume UUID."""

    def __init__(self, volumes: Mapping[str, VolumeInfo] | None = None) -> None:
        self._volumes: Dict[str, VolumeInfo] = dict(volumes or {})

    @classmethod
    def from_names(cls, names: Mapping[str, str]) -> "StaticVolumeDirectory":
        return cls({uuid: VolumeInfo(volume_id=uuid, name=name) for uuid, name in names.items()})

    def add(self, info: VolumeInfo) -> None:
        self._volumes[info.volume_id] = info

    def lookup(self, volume_id: str) -> Optional[VolumeInfo]:
        return self._volumes.get(volume_id)


def parse_drive_log(drive_log: Mapping[str, Any]) -> Dict[str, VolumeInfo]:
    """Build volume metadata from the decoded ``DriveLogByKey`` blob."""
    volumes: Dict[str, VolumeInfo] = {}
    for uuid, data in drive_log.items():
        if not isinstance(data, dict):
            continue
        last_known = data.get("lastKnown")
        if not isinstance(last_known, dict) or not last_known.get("name"):
            continue
        last_seen = data.get("lastSeen")
        volumes[uuid] = VolumeInfo(
            volume_id=uuid,
            name=str(last_known["name"]),
            path=last_known.get("path"),
            total_size=last_known.get("totalSize"),
            available_size=last_known.get("availableSize"),
            summary=last_known.get("summary"),
            last_seen_at=(
                cf_absolute_time_to_datetime(float(last_seen))
                if isinstance(last_seen, (int, float))
                else None
            ),
        )
    return volumes


class PreferencesVolumeDirectory:
    """Volume metadata read from the drive indexer's preference property list."""

    def __init__(self, plist_path: Path) -> None:
        self.plist_path = Path(plist_path)
        self._volumes: Dict[str, VolumeInfo] | None = None

    def _load(self) -> Dict[str, VolumeInfo]:
        if not self.plist_path.exists():
            return {}
        try:
            with self.plist_path.open("rb") as handle:
                prefs = plistlib.load(handle)
            blob = prefs.get(_DRIVE_LOG_KEY)
            if blob is None:
                return {}
            if isinstance(blob, str):
                blob = base64.b64decode("".join(blob.split()))
            return parse_drive_log(json.loads(blob))
        except Exception as exc:
            LOGGER.error("Failed to load drive info from %s: %s", self.plist_path, exc)
            return {}

    def reload(self) -> None:
        self._volumes = None

    def lookup(self, volume_id: str) -> Optional[VolumeInfo]:
        if self._volumes is None:
            self._volumes = self._load()
        return self._volumes.get(volume_id)


def full_path(volume_name: str, relative_path: str, volumes_root: Path = DEFAULT_VOLUMES_ROOT) -> Path:
    """Absolute location of an entry on a mounted volume.

    Raises ``ValueError`` when ``relative_path`` points outside the volume.
    """
    volume_root = (Path(volumes_root) / volume_name).resolve()
    target = (volume_root / relative_path.lstrip("/")).resolve()
    if target != volume_root and volume_root not in target.parents:
        raise ValueError(f"Path escapes volume {volume_name}: {relative_path}")
    return target


def is_volume_mounted(volume_name: str, volumes_root: Path = DEFAULT_VOLUMES_ROOT) -> bool:
    """Whether a volume with this display name is currently attached."""
    if not volume_name:
        return False
    try:
        return (Path(volumes_root) / volume_name).exists()
    except OSError:
        return False
