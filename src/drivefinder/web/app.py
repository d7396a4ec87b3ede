"""FastAPI application exposing DriveFinder search over HTTP."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Dict, Tuple

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from drivefinder.config import AppConfig
from drivefinder.index.search import Searcher
from drivefinder.utils.files import open_in_file_manager
from drivefinder.volumes import full_path, is_volume_mounted

LOGGER = logging.getLogger(__name__)

MAX_RESULTS_LIMIT = 500

app = FastAPI(title="DriveFinder", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class SearchPayload(BaseModel):
    query: str
    max_results: int = 100


class AccessPayload(BaseModel):
    volume_id: str
    relative_path: str


class OpenRequest(AccessPayload):
    reveal: bool = False


_SEARCHERS: Dict[Tuple[Any, ...], Searcher] = {}
_SEARCHERS_GUARD = threading.Lock()


def _get_searcher(config: AppConfig) -> Searcher:
    """Searcher shared by every request using the same resolved configuration.

    Recent file updates that could not be written stay visible to later requests.
    """
    key = (
        config.index_dir,
        config.recents_path,
        config.preferences_path,
        config.chunk_size,
        config.recent_limit,
    )
    with _SEARCHERS_GUARD:
        searcher = _SEARCHERS.get(key)
        if searcher is None:
            searcher = Searcher.from_config(config)
            _SEARCHERS[key] = searcher
        return searcher


@app.on_event("startup")
async def startup_event() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")


@app.post("/search")
async def search_drives(payload: SearchPayload) -> dict[str, Any]:
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Empty query")

    max_results = max(1, min(payload.max_results, MAX_RESULTS_LIMIT))
    searcher = _get_searcher(AppConfig())
    results = await searcher.search(query, max_results)
    return {"results": results}


@app.get("/recent")
async def recent_files(limit: int | None = None) -> dict[str, Any]:
    config = AppConfig()
    searcher = _get_searcher(config)
    limit = config.recent_limit if limit is None else max(0, limit)
    results = await asyncio.to_thread(searcher.recents.recent_results, limit)
    return {"results": results}


@app.post("/access")
async def record_access(payload: AccessPayload) -> dict[str, Any]:
    searcher = _get_searcher(AppConfig())
    persisted = await asyncio.to_thread(
        searcher.recents.record_access, payload.volume_id, payload.relative_path
    )
    return {"status": "ok", "persisted": persisted}


@app.post("/open")
async def open_entry(payload: OpenRequest) -> dict[str, str]:
    config = AppConfig()
    searcher = _get_searcher(config)

    volume_info = searcher.store.volumes.lookup(payload.volume_id)
    if volume_info is None:
        raise HTTPException(status_code=404, detail=f"Unknown drive: {payload.volume_id}")

    if not is_volume_mounted(volume_info.name, config.volumes_root):
        raise HTTPException(
            status_code=409,
            detail=f"{volume_info.name} is offline. Connect the drive to access files.",
        )

    try:
        target = full_path(volume_info.name, payload.relative_path, config.volumes_root)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not target.exists():
        raise HTTPException(status_code=404, detail=f"File not found: {target}")

    await asyncio.to_thread(searcher.recents.record_access, payload.volume_id, payload.relative_path)
    try:
        open_in_file_manager(target, reveal=payload.reveal)
    except Exception as exc:  # pragma: no cover - defensive
        LOGGER.error("Unable to open %s: %s", target, exc)
        raise HTTPException(status_code=500, detail=str(exc))
    return {"status": "ok", "path": str(target)}


@app.get("/indexes")
async def list_indexes() -> dict[str, Any]:
    searcher = _get_searcher(AppConfig())
    rows = await asyncio.to_thread(searcher.store.inventory)
    return {"indexes": rows}
