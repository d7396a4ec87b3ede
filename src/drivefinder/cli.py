"""Command line interface for DriveFinder."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from drivefinder.config import AppConfig
from drivefinder.index.search import Searcher
from drivefinder.index.storage import IndexStore
from drivefinder.models import SearchResult
from drivefinder.utils.files import open_in_file_manager
from drivefinder.volumes import PreferencesVolumeDirectory, full_path, is_volume_mounted

console = Console()
app = typer.Typer(help="DriveFinder - search files across indexed drives, connected or not")

INDEX_DIR_OPTION = typer.Option(None, "--index-dir", help="Directory holding the drive indexes")
RECENTS_OPTION = typer.Option(None, "--recents", help="Recent files document path")
PREFERENCES_OPTION = typer.Option(None, "--preferences", help="Drive indexer preferences plist")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose logging")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _build_config(
    index_dir: Optional[Path], recents: Optional[Path], preferences: Optional[Path]
) -> AppConfig:
    return AppConfig(index_dir=index_dir, recents_path=recents, preferences_path=preferences)


def _print_results(results: List[SearchResult], volumes_root: Path) -> None:
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Name")
    table.add_column("Folder")
    table.add_column("Drive")
    table.add_column("Status")

    for result in results:
        mounted = is_volume_mounted(result.volume_name, volumes_root)
        status = "[green]connected[/green]" if mounted else "[dim]offline[/dim]"
        table.add_row(
            f"{result.score:.1f}",
            result.entry.name,
            result.parent_path,
            result.volume_name,
            status,
        )

    console.print(table)


@app.command()
def search(
    query: str = typer.Argument(..., help="File or folder name to look for"),
    max_results: int = typer.Option(AppConfig().max_results, help="Maximum number of results"),
    index_dir: Path = INDEX_DIR_OPTION,
    recents: Path = RECENTS_OPTION,
    preferences: Path = PREFERENCES_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Search every drive index for matching names."""
    _setup_logging(verbose)
    config = _build_config(index_dir, recents, preferences)

    if not query.strip():
        raise typer.BadParameter("Query must not be empty")

    searcher = Searcher.from_config(config)
    results = asyncio.run(searcher.search(query, max_results))
    if not results:
        console.print(f'[yellow]No files or folders matching "{query}".[/yellow]')
        return

    _print_results(results, config.volumes_root)


@app.command()
def recent(
    limit: int = typer.Option(AppConfig().recent_limit, help="Number of recent files to show"),
    index_dir: Path = INDEX_DIR_OPTION,
    recents: Path = RECENTS_OPTION,
    preferences: Path = PREFERENCES_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show recently opened files."""
    _setup_logging(verbose)
    config = _build_config(index_dir, recents, preferences)
    searcher = Searcher.from_config(config)

    results = searcher.recents.recent_results(limit)
    if not results:
        console.print("[yellow]No recent files.[/yellow]")
        return

    _print_results(results, config.volumes_root)


@app.command("open")
def open_entry(
    volume_id: str = typer.Argument(..., help="Volume UUID"),
    relative_path: str = typer.Argument(..., help="Path relative to the volume root"),
    reveal: bool = typer.Option(False, "--reveal", help="Select the file in the file manager"),
    index_dir: Path = INDEX_DIR_OPTION,
    recents: Path = RECENTS_OPTION,
    preferences: Path = PREFERENCES_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Open a file on a connected drive and remember it as recent."""
    _setup_logging(verbose)
    config = _build_config(index_dir, recents, preferences)
    searcher = Searcher.from_config(config)

    volume_info = searcher.store.volumes.lookup(volume_id)
    if volume_info is None:
        console.print(f"[red]Unknown drive {volume_id}.[/red]")
        raise typer.Exit(code=1)

    if not is_volume_mounted(volume_info.name, config.volumes_root):
        console.print(f"[yellow]{volume_info.name} is offline. Connect the drive to access files.[/yellow]")
        raise typer.Exit(code=1)

    try:
        target = full_path(volume_info.name, relative_path, config.volumes_root)
    except ValueError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(code=1)

    if not target.exists():
        console.print(f"[red]File not found: {target}[/red]")
        raise typer.Exit(code=1)

    if not searcher.recents.record_access(volume_id, relative_path):
        console.print("[yellow]Could not save recent files.[/yellow]")
    open_in_file_manager(target, reveal=reveal)
    console.print(f"Opened [bold]{target}[/bold]")


@app.command()
def indexes(
    index_dir: Path = INDEX_DIR_OPTION,
    preferences: Path = PREFERENCES_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List the drive indexes available for searching."""
    _setup_logging(verbose)
    config = _build_config(index_dir, None, preferences)
    store = IndexStore(config.index_dir, PreferencesVolumeDirectory(config.preferences_path))

    rows = store.inventory()
    if not rows:
        console.print(f"[yellow]No drive indexes found in {config.index_dir}.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Drive")
    table.add_column("Volume UUID")
    table.add_column("Size")
    table.add_column("Generated")

    for row in rows:
        generated = row.generated_at.astimezone().strftime("%Y-%m-%d %H:%M") if row.generated_at else "-"
        table.add_row(row.volume_name, row.volume_id, f"{row.size:,}", generated)

    console.print(table)


@app.command()
def web(
    host: str = typer.Option("127.0.0.1", help="Host interface"),
    port: int = typer.Option(8000, help="Server port"),
) -> None:
    """Start the HTTP API."""
    try:
        import uvicorn
    except ImportError as exc:  # pragma: no cover - defensive
        raise typer.BadParameter(
            "uvicorn is not installed. Install the web extras with \"python -m pip install '.[web]'\""
        ) from exc

    from drivefinder.web.app import app as web_app

    console.print(f"Starting DriveFinder API on http://{host}:{port}")
    uvicorn.run(
        web_app,
        host=host,
        port=port,
        reload=False,
        log_level="info",
    )
