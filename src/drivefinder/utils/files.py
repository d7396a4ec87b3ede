"""Utility helpers for working with files."""

from __future__ import annotations

import json
import os
import subprocess
import sys
import tempfile
from pathlib import Path
from typing import Any, Iterator, List, Tuple

from drivefinder.volumes import INDEX_SUFFIX


def iter_index_paths(index_dir: Path) -> Iterator[Path]:
    """Yield index documents (``*.json`` files) directly inside ``index_dir``."""
    for item in sorted(Path(index_dir).iterdir()):
        if item.suffix == INDEX_SUFFIX and item.is_file():
            yield item


def _safe_size(path: Path) -> int:
    try:
        return path.stat().st_size
    except OSError:
        return 0


def index_paths_by_size(index_dir: Path) -> List[Tuple[Path, int]]:
    """Index documents paired with their size, smallest first."""
    sized = [(path, _safe_size(path)) for path in iter_index_paths(index_dir)]
    sized.sort(key=lambda item: item[1])
    return sized


def write_json_atomic(path: Path, payload: Any) -> None:
    """Write JSON to ``path`` via a temporary file and an atomic rename."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            json.dump(payload, handle, ensure_ascii=False, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise


def open_in_file_manager(path: Path, *, reveal: bool = False) -> None:
    """Open ``path`` with the platform handler, or select it in the file manager."""
    path = Path(path)
    if sys.platform == "darwin":
        command = ["open", "-R", str(path)] if reveal else ["open", str(path)]
    elif os.name == "posix":
        command = ["xdg-open", str(path.parent if reveal else path)]
    else:
        if reveal:
            command = ["explorer", f"/select,{path}"]
        else:
            os.startfile(path)  # type: ignore[attr-defined]
            return
    subprocess.Popen(command)
