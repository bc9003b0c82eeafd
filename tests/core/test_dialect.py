"""Tests for tablespine.dialect — SQLite fragments."""

import pytest

from tablespine.dialect import Dialect, SQLiteDialect


@pytest.fixture
def dialect():
    return SQLiteDialect()


class TestSQLiteDialect:
    def test_satisfies_protocol(self, dialect):
        assert isinstance(dialect, Dialect)
        assert dialect.name == "sqlite"

    def test_placeholders(self, dialect):
        assert dialect.placeholder(3) == "?"
        assert dialect.placeholders(3) == "?, ?, ?"
        assert dialect.placeholders(0) == ""

    def test_quote_escapes(self, dialect):
        assert dialect.quote("item") == '"item"'
        assert dialect.quote('we"ird') == '"we""ird"'

    def test_auto_increment(self, dialect):
        assert dialect.auto_increment() == "INTEGER PRIMARY KEY AUTOINCREMENT"

    @pytest.mark.parametrize(
        ("limit", "offset", "expected"),
        [
            (None, None, ""),
            (10, None, " LIMIT 10"),
            (10, 5, " LIMIT 10 OFFSET 5"),
            (None, 5, " LIMIT -1 OFFSET 5"),
        ],
    )
    def test_limit_offset(self, dialect, limit, offset, expected):
        assert dialect.limit_offset(limit, offset) == expected

    def test_catalog_queries(self, dialect):
        assert "sqlite_master" in dialect.table_exists_query()
        assert "sqlite\\_%" in dialect.list_tables_query()
