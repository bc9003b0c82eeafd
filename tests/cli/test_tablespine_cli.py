"""
Tests for the tablespine CLI: tables, query, drop-all.
"""

from __future__ import annotations

import json
import logging

import pytest
from typer.testing import CliRunner

from tablespine import __version__, create, database_registry
from tablespine.cli.app import app
from tests._support.models import Item, Tag

runner = CliRunner()


@pytest.fixture
def populated(tmp_path):
    """A database file with two item rows and one tag row."""
    db = create("cli.db", db_dir=tmp_path)
    db.save_all([Item(name="a", qty=1), Item(name="b", qty=2)])
    db.save(Tag(label="x"))
    database_registry.clear()
    return str(tmp_path / "cli.db")


class TestRootApp:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "tables" in result.output
        assert "drop-all" in result.output

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"tablespine {__version__}" in result.output

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code in (0, 2)


class TestTables:
    def test_json(self, populated):
        result = runner.invoke(app, ["tables", "--database", populated, "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [
            {"table": "item", "rows": 2},
            {"table": "tags", "rows": 1},
        ]

    def test_table_output(self, populated):
        result = runner.invoke(app, ["tables", "-d", populated])
        assert result.exit_code == 0
        assert "item" in result.stdout
        assert "tags" in result.stdout

    def test_empty_database(self, tmp_path):
        result = runner.invoke(app, ["tables", "-d", str(tmp_path / "empty.db")])
        assert result.exit_code == 0
        assert "No rows" in result.stdout


class TestQuery:
    def test_json(self, populated):
        result = runner.invoke(
            app,
            ["query", 'SELECT name, qty FROM "item" ORDER BY qty', "-d", populated, "--json"],
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [
            {"name": "a", "qty": 1},
            {"name": "b", "qty": 2},
        ]

    def test_bad_sql_exits_1(self, populated):
        result = runner.invoke(app, ["query", "SELEC x", "-d", populated])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_invalid_version_exits_1(self, populated):
        result = runner.invoke(app, ["query", "SELECT 1", "-d", populated, "--db-version", "0"])
        assert result.exit_code == 1


class TestDropAll:
    def test_with_yes(self, populated):
        result = runner.invoke(app, ["drop-all", "-d", populated, "--yes"])
        assert result.exit_code == 0, result.output
        assert "Dropped 2 table(s)" in result.stdout

        database_registry.clear()
        listed = runner.invoke(app, ["tables", "-d", populated, "--json"])
        assert json.loads(listed.stdout) == []

    def test_prompt_declined(self, populated):
        result = runner.invoke(app, ["drop-all", "-d", populated], input="n\n")
        assert result.exit_code == 1

        database_registry.clear()
        listed = runner.invoke(app, ["tables", "-d", populated, "--json"])
        assert len(json.loads(listed.stdout)) == 2

    def test_prompt_accepted(self, populated):
        result = runner.invoke(app, ["drop-all", "-d", populated], input="y\n")
        assert result.exit_code == 0


class TestVerbose:
    def test_verbose_traces_sql(self, populated, caplog):
        caplog.set_level(logging.DEBUG)
        result = runner.invoke(
            app, ["--verbose", "query", "SELECT 1 AS one", "-d", populated, "--json"]
        )
        assert result.exit_code == 0, result.output
        assert any("sql.exec" in r.getMessage() for r in caplog.records)

    def test_quiet_by_default(self, populated, caplog):
        caplog.set_level(logging.DEBUG)
        result = runner.invoke(app, ["query", "SELECT 1 AS one", "-d", populated, "--json"])
        assert result.exit_code == 0, result.output
        assert not any("sql.exec" in r.getMessage() for r in caplog.records)
