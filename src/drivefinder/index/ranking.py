"""Ordering of pooled search results."""

from __future__ import annotations

from typing import Iterable, List

from drivefinder.models import SearchResult


def _sort_key(result: SearchResult) -> tuple[float, str, str]:
    return (-result.score, result.volume_name, result.entry.relative_path)


def rank_results(results: Iterable[SearchResult], max_results: int) -> List[SearchResult]:
    """Sort by score (best first), then volume name, then relative path, and truncate."""
    ordered = sorted(results, key=_sort_key)
    return ordered[: max(max_results, 0)]
