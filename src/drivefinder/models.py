"""Core DriveFinder data models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional


@dataclass(slots=True, frozen=True)
class Entry:
    """One file or folder listed in a volume index."""

    name: str
    relative_path: str


@dataclass(slots=True)
class SearchResult:
    """An entry matched on a specific volume."""

    entry: Entry
    volume_id: str
    volume_name: str
    source_document: str
    score: float

    @property
    def filename(self) -> str:
        return self.entry.relative_path.rstrip("/").split("/")[-1]

    @property
    def parent_path(self) -> str:
        parts = self.entry.relative_path.rstrip("/").split("/")
        return "/".join(parts[:-1]) or "/"


@dataclass(slots=True)
class AccessRecord:
    """Last access metadata for one (volume, path) pair."""

    volume_id: str
    relative_path: str
    last_accessed_at: float
    access_count: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "volumeId": self.volume_id,
            "relativePath": self.relative_path,
            "lastAccessedAt": self.last_accessed_at,
            "accessCount": self.access_count,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccessRecord":
        volume_id = data["volumeId"]
        relative_path = data["relativePath"]
        if not isinstance(volume_id, str) or not isinstance(relative_path, str):
            raise ValueError("volumeId and relativePath must be strings")
        return cls(
            volume_id=volume_id,
            relative_path=relative_path,
            last_accessed_at=float(data["lastAccessedAt"]),
            access_count=int(data.get("accessCount", 1)),
        )


@dataclass(slots=True)
class VolumeInfo:
    """Human readable metadata about a storage volume."""

    volume_id: str
    name: str
    path: Optional[str] = None
    total_size: Optional[int] = None
    available_size: Optional[int] = None
    summary: Optional[str] = None
    last_seen_at: Optional[datetime] = None


@dataclass(slots=True)
class IndexDocumentInfo:
    """Inventory row describing one index document on disk."""

    path: Path
    volume_id: str
    volume_name: str
    size: int
    generated_at: Optional[datetime] = None
