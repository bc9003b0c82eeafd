"""
CLI layer for tablespine.

A thin Typer application over :class:`~tablespine.database.EntityDatabase`:
argument parsing, coloured output and table formatting only.

Entry point::

    tablespine --help
"""

from tablespine.cli.app import app

__all__ = ["app"]
