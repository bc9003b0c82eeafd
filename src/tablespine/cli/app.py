"""
Root Typer application for the tablespine CLI.

Commands:
    tables     List tables with row counts
    query      Run ad-hoc SQL and print the rows
    drop-all   Drop every table in a database
"""

from __future__ import annotations

import typer
from typer import Typer

from tablespine import __version__
from tablespine.cli.utils import console, fail, open_database, output_rows
from tablespine.errors import TablespineError
from tablespine.logging import configure_logging
from tablespine.settings import get_settings

app = Typer(
    name="tablespine",
    help="tablespine — inspect and manage tablespine SQLite databases.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"tablespine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log every SQL statement to stderr."
    ),
) -> None:
    """tablespine CLI — tables, ad-hoc queries, and drops."""
    ctx.obj = {"verbose": verbose}
    settings = get_settings()
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=settings.log_format == "json",
    )


def _verbose(ctx: typer.Context) -> bool:
    return bool((ctx.obj or {}).get("verbose"))


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def tables(
    ctx: typer.Context,
    database: str | None = typer.Option(None, "--database", "-d", help="Database path"),
    db_version: int | None = typer.Option(None, "--db-version", help="Expected schema version"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Show row counts for every table."""
    try:
        db = open_database(database, db_version, debug=_verbose(ctx))
        quote = db.store.dialect.quote
        rows = []
        for name in db.table_names():
            model = db.find_db_model_first(f"SELECT COUNT(*) AS n FROM {quote(name)}")
            rows.append({"table": name, "rows": model.get_int("n") if model else 0})
    except TablespineError as e:
        fail(str(e))
    output_rows(rows, as_json=json_out, title="Tables")


@app.command()
def query(
    ctx: typer.Context,
    sql: str = typer.Argument(..., help="SQL to run"),
    database: str | None = typer.Option(None, "--database", "-d", help="Database path"),
    db_version: int | None = typer.Option(None, "--db-version", help="Expected schema version"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Run a query and print every row."""
    try:
        db = open_database(database, db_version, debug=_verbose(ctx))
        rows = db.find_db_model_all(sql)
    except TablespineError as e:
        fail(str(e))
    output_rows(rows, as_json=json_out, title="Result")


@app.command("drop-all")
def drop_all(
    ctx: typer.Context,
    database: str | None = typer.Option(None, "--database", "-d", help="Database path"),
    db_version: int | None = typer.Option(None, "--db-version", help="Expected schema version"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt"),
) -> None:
    """Drop every table in the database."""
    if not yes:
        typer.confirm("Drop every table?", abort=True)
    try:
        db = open_database(database, db_version, debug=_verbose(ctx))
        dropped = db.drop_all()
    except TablespineError as e:
        fail(str(e))
    console.print(f"[green]Dropped {len(dropped)} table(s)[/green]")
    for name in dropped:
        console.print(f"  [cyan]{name}[/cyan]")
