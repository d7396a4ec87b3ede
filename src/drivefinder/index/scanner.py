"""Streaming scanner for per-volume index documents.

Index documents can be far larger than memory, so they are never parsed as a
whole. The scanner reads fixed-size chunks, skips everything up to the
``"entries": [`` label and then segments the array into balanced ``{...}``
units by tracking brace depth. Only the text of the entry currently open is
held in memory; each complete unit is decoded on its own.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Iterator, List, Optional

import aiofiles

from drivefinder.errors import ScanError
from drivefinder.index.scoring import is_match, score
from drivefinder.models import Entry, SearchResult
from drivefinder.volumes import cf_absolute_time_to_datetime

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
MAX_ENTRY_CHARS = 1 << 20
MAX_HEADER_CHARS = 64 * 1024

_ENTRIES_LABEL = re.compile(r'"entries"\s*:\s*\[')
_GENERATED_AT = re.compile(r'"generatedAt"\s*:\s*(-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?)')
_STRUCTURAL = re.compile(r'[{}"\\\]]')
# Enough trailing text to hold a label split across two chunks.
_LABEL_TAIL = 256


class EntrySegmenter:
    """Incrementally split the ``entries`` array of an index into raw JSON units."""

    def __init__(self, *, max_entry_chars: int = MAX_ENTRY_CHARS) -> None:
        self.max_entry_chars = max_entry_chars
        self.in_entries = False
        self.done = False
        self.depth = 0
        self._pending = ""
        self._in_string = False
        self._escaped = False
        self._current: List[str] = []
        self._current_size = 0
        self._overflow = False

    def feed(self, chunk: str) -> Iterator[str]:
        """Consume ``chunk`` and yield every entry completed by it."""
        if self.done or not chunk:
            return

        if not self.in_entries:
            self._pending += chunk
            match = _ENTRIES_LABEL.search(self._pending)
            if match is None:
                self._pending = self._pending[-_LABEL_TAIL:]
                return
            chunk = self._pending[match.end() :]
            self._pending = ""
            self.in_entries = True

        yield from self._segment(chunk)

    def _segment(self, chunk: str) -> Iterator[str]:
        start = 0 if self.depth > 0 else -1
        pos = 0
        if self._escaped:
            self._escaped = False
            pos = 1

        while True:
            match = _STRUCTURAL.search(chunk, pos)
            if match is None:
                break
            index = match.start()
            char = chunk[index]
            pos = index + 1

            if self._in_string:
                if char == "\\":
                    if pos >= len(chunk):
                        self._escaped = True
                    else:
                        pos += 1
                elif char == '"':
                    self._in_string = False
                continue

            if char == '"':
                self._in_string = True
            elif char == "{":
                if self.depth == 0:
                    start = index
                self.depth += 1
            elif char == "}":
                if self.depth == 0:
                    continue
                self.depth -= 1
                if self.depth == 0:
                    unit = self._finish(chunk[start:pos])
                    start = -1
                    if unit is not None:
                        yield unit
            elif char == "]" and self.depth == 0:
                self.done = True
                return

        if self.depth > 0 and start >= 0:
            self._accumulate(chunk[start:])

    def _accumulate(self, text: str) -> None:
        if self._overflow:
            return
        self._current.append(text)
        self._current_size += len(text)
        if self._current_size > self.max_entry_chars:
            LOGGER.debug("Dropping oversized index entry (> %d chars)", self.max_entry_chars)
            self._overflow = True
            self._current = []
            self._current_size = 0

    def _finish(self, tail: str) -> Optional[str]:
        overflow = self._overflow
        unit = "".join(self._current) + tail
        self._current = []
        self._current_size = 0
        self._overflow = False
        if overflow or len(unit) <= 2:
            return None
        return unit


def decode_entry(unit: str) -> Optional[Entry]:
    """Decode one serialized entry, returning None for malformed units."""
    try:
        data = json.loads(unit)
    except ValueError as exc:
        LOGGER.debug("Skipping malformed index entry: %s", exc)
        return None
    if not isinstance(data, dict):
        return None
    name = data.get("name")
    relative_path = data.get("relativePath")
    if not isinstance(name, str) or not isinstance(relative_path, str):
        return None
    if not name or not relative_path:
        return None
    return Entry(name=name, relative_path=relative_path)


async def scan_document(
    path: Path,
    query: str,
    budget: int,
    *,
    volume_id: str,
    volume_name: str,
    source_document: str | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> AsyncIterator[SearchResult]:
    """Yield results from one index document whose names match ``query``.

    Stops reading as soon as ``budget`` results were produced; the file is
    closed on exhaustion, cancellation or when the consumer closes the
    generator. Open or read failures raise :class:`ScanError`.
    """
    if budget <= 0:
        return

    path = Path(path)
    source_document = source_document or path.name
    segmenter = EntrySegmenter()
    emitted = 0

    try:
        async with aiofiles.open(path, "r", encoding="utf-8", errors="replace") as handle:
            while not segmenter.done:
                chunk = await handle.read(chunk_size)
                if not chunk:
                    break
                for unit in segmenter.feed(chunk):
                    entry = decode_entry(unit)
                    if entry is None:
                        continue
                    value = score(query, entry.name)
                    if not is_match(value):
                        continue
                    yield SearchResult(
                        entry=entry,
                        volume_id=volume_id,
                        volume_name=volume_name,
                        source_document=source_document,
                        score=value,
                    )
                    emitted += 1
                    if emitted >= budget:
                        return
    except OSError as exc:
        raise ScanError(path, str(exc)) from exc


def read_generated_at(path: Path, *, max_chars: int = MAX_HEADER_CHARS) -> Optional[datetime]:
    """Read the ``generatedAt`` header of an index without touching its entries.

    Only the text before the entries array is inspected, and never more than
    ``max_chars`` characters. Returns None when the header does not carry it.
    """
    with Path(path).open("r", encoding="utf-8", errors="replace") as handle:
        header = handle.read(max_chars)

    label = _ENTRIES_LABEL.search(header)
    if label is not None:
        header = header[: label.start()]
    match = _GENERATED_AT.search(header)
    if match is None:
        return None
    return cf_absolute_time_to_datetime(float(match.group(1)))
