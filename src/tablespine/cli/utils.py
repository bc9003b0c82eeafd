"""
CLI utility helpers — output formatting and database access.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, NoReturn

import typer
from rich.console import Console
from rich.table import Table

from tablespine.config import DatabaseConfig
from tablespine.database import EntityDatabase
from tablespine.registry import database_registry
from tablespine.settings import get_settings

console = Console()
err_console = Console(stderr=True)


# ── Database helper ──────────────────────────────────────────────────────


def open_database(
    database: str | None = None,
    db_version: int | None = None,
    *,
    debug: bool = False,
) -> EntityDatabase:
    """Open ``database`` through the global registry.

    Defaults to the file named by ``TABLESPINE_DB_NAME`` under
    ``TABLESPINE_DB_DIR``.  ``debug`` turns on the ``sql.exec`` trace.
    """
    settings = get_settings()
    overrides: dict[str, Any] = {}
    if database is not None:
        overrides["db_name"] = str(Path(database).expanduser())
        overrides["db_dir"] = None
    if db_version is not None:
        overrides["db_version"] = db_version
    if debug:
        overrides["debug"] = True
    return database_registry.acquire(DatabaseConfig.from_settings(settings, **overrides))


def fail(message: str) -> NoReturn:
    err_console.print(f"[bold red]Error[/bold red]: {message}")
    raise typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def output_rows(
    rows: list[Mapping[str, Any]],
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render a list of row mappings to the terminal."""
    if as_json:
        console.print_json(json.dumps([dict(r) for r in rows], default=str))
        return

    if not rows:
        console.print("[dim]No rows.[/dim]")
        return
    _print_table(rows, title=title)


# ── Private helpers ──────────────────────────────────────────────────────


def _print_table(rows: list[Mapping[str, Any]], *, title: str = "") -> None:
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in rows[0]:
        table.add_column(str(col), overflow="fold")
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row.values()))
    console.print(table)
