"""Index document store: enumerates per-volume indexes and searches them."""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing
from pathlib import Path
from typing import List

from drivefinder.errors import ScanError
from drivefinder.index.ranking import rank_results
from drivefinder.index.scanner import DEFAULT_CHUNK_SIZE, read_generated_at, scan_document
from drivefinder.models import IndexDocumentInfo, SearchResult
from drivefinder.utils.files import index_paths_by_size
from drivefinder.volumes import (
    UNKNOWN_VOLUME_NAME,
    VolumeMetadataProvider,
    decode_volume_id,
    resolve_volume_name,
)

LOGGER = logging.getLogger(__name__)


class IndexStore:
    """Read-only access to the directory of per-volume index documents."""

    def __init__(
        self,
        index_dir: Path,
        volumes: VolumeMetadataProvider,
        *,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        self.index_dir = Path(index_dir)
        self.volumes = volumes
        self.chunk_size = chunk_size

    def list_documents(self) -> List[Path]:
        """Index documents ordered by ascending file size."""
        if not self.index_dir.is_dir():
            return []
        return [path for path, _ in index_paths_by_size(self.index_dir)]

    def volume_name(self, volume_id: str) -> str:
        return resolve_volume_name(self.volumes, volume_id) or UNKNOWN_VOLUME_NAME

    async def search(self, query: str, max_results: int) -> List[SearchResult]:
        """Search every index, smallest first, until ``max_results`` matches are pooled."""
        query = query.strip().lower()
        if not query or max_results <= 0:
            return []

        try:
            documents = await asyncio.to_thread(self.list_documents)
        except OSError as exc:
            LOGGER.error("Failed to list index directory %s: %s", self.index_dir, exc)
            return []

        if not documents:
            LOGGER.debug("No index documents in %s", self.index_dir)
            return []

        results: List[SearchResult] = []
        for path in documents:
            if len(results) >= max_results:
                break

            volume_id = decode_volume_id(path.name)
            volume_name = await asyncio.to_thread(self.volume_name, volume_id)
            try:
                async with aclosing(
                    scan_document(
                        path,
                        query,
                        max_results - len(results),
                        volume_id=volume_id,
                        volume_name=volume_name,
                        source_document=path.name,
                        chunk_size=self.chunk_size,
                    )
                ) as matches:
                    async for result in matches:
                        results.append(result)
            except ScanError as exc:
                LOGGER.error("Failed to stream search index %s: %s", path.name, exc)

        LOGGER.debug("Query %r pooled %d result(s) from %d index(es)", query, len(results), len(documents))
        return rank_results(results, max_results)

    def inventory(self) -> List[IndexDocumentInfo]:
        """Describe every index document without reading its entries."""
        rows: List[IndexDocumentInfo] = []
        if not self.index_dir.is_dir():
            return rows

        try:
            documents = index_paths_by_size(self.index_dir)
        except OSError as exc:
            LOGGER.error("Failed to list index directory %s: %s", self.index_dir, exc)
            return rows

        for path, size in documents:
            volume_id = decode_volume_id(path.name)
            try:
                generated_at = read_generated_at(path)
            except (OSError, ValueError, OverflowError) as exc:
                LOGGER.warning("Failed to read header of %s: %s", path.name, exc)
                generated_at = None
            rows.append(
                IndexDocumentInfo(
                    path=path,
                    volume_id=volume_id,
                    volume_name=self.volume_name(volume_id),
                    size=size,
                    generated_at=generated_at,
                )
            )
        return rows
