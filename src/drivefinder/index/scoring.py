"""Fuzzy scoring of file names against a query."""

from __future__ import annotations

from rapidfuzz.distance import Levenshtein

MATCH_THRESHOLD = 60.0
EXACT_SCORE = 100.0
SUBSTRING_BASE = 90.0


def normalize(text: str) -> str:
    return text.lower()


def score(query: str, name: str) -> float:
    """Return a match quality in [0, 100] for ``name`` against ``query``.

    Exact matches score 100. Names containing the query score between 90
    and 100, higher when the query covers more of the name. Anything else
    falls back to Levenshtein similarity relative to the longer string.
    """
    query = normalize(query)
    name = normalize(name)

    if query == name:
        return EXACT_SCORE

    if query and query in name:
        return SUBSTRING_BASE + 10.0 * (len(query) / len(name))

    max_len = max(len(query), len(name))
    if max_len == 0:
        return 0.0
    distance = Levenshtein.distance(query, name)
    similarity = 100.0 * (max_len - distance) / max_len
    return min(max(similarity, 0.0), 100.0)


def is_match(value: float) -> bool:
    return value > MATCH_THRESHOLD
