"""Persistent list of recently accessed entries."""

from __future__ import annotations

import json
import logging
import threading
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional

from drivefinder.errors import RecencyStoreError
from drivefinder.index.scoring import EXACT_SCORE
from drivefinder.models import AccessRecord, Entry, SearchResult
from drivefinder.utils.files import write_json_atomic
from drivefinder.volumes import VolumeMetadataProvider, index_filename, resolve_volume_name

LOGGER = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100

_PATH_LOCKS: Dict[Path, threading.Lock] = {}
_PATH_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    """One lock per recent files document, shared by every store on that path."""
    with _PATH_LOCKS_GUARD:
        return _PATH_LOCKS.setdefault(path.absolute(), threading.Lock())


def _sorted_recent(records: List[AccessRecord]) -> List[AccessRecord]:
    return sorted(records, key=lambda record: record.last_accessed_at, reverse=True)


class RecencyStore:
    """Bounded most-recently-used list of (volume, path) pairs backed by one JSON file.

    The whole document is read, modified and rewritten under a lock on every
    access, so concurrent ``record_access`` calls never drop an update. When a
    write fails the updated records stay in memory and keep serving this
    process until a later write succeeds.
    """

    def __init__(
        self,
        path: Path,
        volumes: VolumeMetadataProvider,
        *,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.path = Path(path)
        self.volumes = volumes
        self.capacity = capacity
        self.clock = clock
        self._lock = _lock_for(self.path)
        self._unsaved: Optional[List[AccessRecord]] = None

    def _read(self) -> List[AccessRecord]:
        if not self.path.exists():
            return []
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable recent files document %s: %s", self.path, exc)
            return []

        files = payload.get("files") if isinstance(payload, dict) else None
        if not isinstance(files, list):
            return []

        records: List[AccessRecord] = []
        for item in files:
            try:
                records.append(AccessRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as exc:
                LOGGER.debug("Skipping malformed recent file record %r: %s", item, exc)
        return records

    def _load(self) -> List[AccessRecord]:
        if self._unsaved is not None:
            return list(self._unsaved)
        return self._read()

    def _persist(self, records: List[AccessRecord]) -> None:
        try:
            write_json_atomic(self.path, {"files": [record.to_dict() for record in records]})
        except OSError as exc:
            raise RecencyStoreError(f"Failed to write {self.path}: {exc}") from exc

    def records(self) -> List[AccessRecord]:
        with self._lock:
            return _sorted_recent(self._load())

    def record_access(self, volume_id: str, relative_path: str) -> bool:
        """Record that an entry was opened. Returns False if the change was not persisted."""
        with self._lock:
            records = self._load()
            now = self.clock()

            for record in records:
                if record.volume_id == volume_id and record.relative_path == relative_path:
                    record.last_accessed_at = now
                    record.access_count += 1
                    break
            else:
                records.append(
                    AccessRecord(
                        volume_id=volume_id,
                        relative_path=relative_path,
                        last_accessed_at=now,
                    )
                )

            records = _sorted_recent(records)[: self.capacity]
            try:
                self._persist(records)
            except RecencyStoreError as exc:
                LOGGER.error("%s", exc)
                self._unsaved = records
                return False

            self._unsaved = None
            return True

    def recent_results(self, limit: int) -> List[SearchResult]:
        """Most recently accessed entries as search results, newest first.

        Records whose volume cannot be resolved to a display name are left out.
        """
        if limit <= 0:
            return []

        results: List[SearchResult] = []
        for record in self.records()[:limit]:
            volume_name = resolve_volume_name(self.volumes, record.volume_id)
            if volume_name is None:
                continue
            name = record.relative_path.rstrip("/").split("/")[-1]
            results.append(
                SearchResult(
                    entry=Entry(name=name, relative_path=record.relative_path),
                    volume_id=record.volume_id,
                    volume_name=volume_name,
                    source_document=index_filename(record.volume_id),
                    score=EXACT_SCORE,
                )
            )
        return results
