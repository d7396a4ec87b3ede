"""Search interface combining the index store and the recent files list."""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from drivefinder.config import AppConfig
from drivefinder.index.ranking import rank_results
from drivefinder.index.recents import RecencyStore
from drivefinder.index.storage import IndexStore
from drivefinder.models import SearchResult
from drivefinder.volumes import PreferencesVolumeDirectory

__all__ = ["SearchSession", "Searcher", "rank_results"]

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_RESULTS = 100
DEFAULT_RECENT_LIMIT = 20
DEFAULT_DEBOUNCE_SECONDS = 0.2


class Searcher:
    """High-level API: recent files for a blank query, index search otherwise."""

    def __init__(
        self,
        store: IndexStore,
        recents: RecencyStore,
        *,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
    ) -> None:
        self.store = store
        self.recents = recents
        self.recent_limit = recent_limit

    @classmethod
    def from_config(cls, config: AppConfig) -> Searcher:
        """Build a searcher reading drive names from the configured preferences."""
        volumes = PreferencesVolumeDirectory(config.preferences_path)
        store = IndexStore(config.index_dir, volumes, chunk_size=config.chunk_size)
        recents = RecencyStore(config.recents_path, volumes)
        return cls(store, recents, recent_limit=config.recent_limit)

    async def search(self, query: str, max_results: int = DEFAULT_MAX_RESULTS) -> List[SearchResult]:
        if not query.strip():
            return await asyncio.to_thread(self.recents.recent_results, self.recent_limit)
        return await self.store.search(query, max_results)

    def record_access(self, result: SearchResult) -> bool:
        return self.recents.record_access(result.volume_id, result.entry.relative_path)


class SearchSession:
    """Debounced searches where a newer query supersedes the one in flight.

    ``submit`` cancels any pending search before starting its own, so a
    superseded caller sees :class:`asyncio.CancelledError`. Search failures
    are logged and produce an empty list.
    """

    def __init__(
        self,
        searcher: Searcher,
        *,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> None:
        self.searcher = searcher
        self.debounce = debounce
        self.max_results = max_results
        self._task: Optional[asyncio.Task[List[SearchResult]]] = None

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def submit(self, query: str, max_results: int | None = None) -> List[SearchResult]:
        self.cancel()
        limit = self.max_results if max_results is None else max_results
        task = asyncio.ensure_future(self._run(query, limit))
        self._task = task
        return await task

    async def _run(self, query: str, max_results: int) -> List[SearchResult]:
        if query.strip() and self.debounce > 0:
            await asyncio.sleep(self.debounce)
        try:
            return await self.searcher.search(query, max_results)
        except Exception:
            LOGGER.exception("Search failed for %r", query)
            return []
