"""SQL dialect for the statement builder.

The builder in :mod:`tablespine.sql` never writes engine-specific syntax
itself; placeholders, identifier quoting, auto-increment DDL and catalog
queries all come from a :class:`Dialect`.  Only SQLite is shipped.

Examples:
    >>> d = SQLiteDialect()
    >>> d.placeholders(3)
    '?, ?, ?'
    >>> d.quote("order")
    '"order"'

Guardrails:
    ❌ DON'T: Interpolate values into SQL text
    ✅ DO: Emit placeholders and bind values as statement args

Tags:
    dialect, sql, sqlite, tablespine
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract.  Every method returns a SQL fragment."""

    @property
    def name(self) -> str: ...

    def placeholder(self, index: int) -> str: ...

    def placeholders(self, count: int) -> str: ...

    def quote(self, identifier: str) -> str:
        """Quote a table or column name."""
        ...

    def auto_increment(self) -> str:
        """Full column type of an auto-incrementing integer primary key."""
        ...

    def table_exists_query(self) -> str:
        """Catalog query returning a single ``c`` count column.

        Accepts one placeholder for the table name.
        """
        ...

    def list_tables_query(self) -> str:
        """Catalog query returning one ``name`` column per user table."""
        ...

    def limit_offset(self, limit: int | None, offset: int | None) -> str: ...


class SQLiteDialect:
    """SQLite dialect — ``?`` placeholders, double-quoted identifiers."""

    @property
    def name(self) -> str:
        return "sqlite"

    # -- Placeholders ------------------------------------------------------

    def placeholder(self, index: int) -> str:  # noqa: ARG002
        return "?"

    def placeholders(self, count: int) -> str:
        return ", ".join("?" for _ in range(count))

    # -- Identifiers -------------------------------------------------------

    def quote(self, identifier: str) -> str:
        return '"' + identifier.replace('"', '""') + '"'

    # -- DDL ---------------------------------------------------------------

    def auto_increment(self) -> str:
        return "INTEGER PRIMARY KEY AUTOINCREMENT"

    # -- Catalog -----------------------------------------------------------

    def table_exists_query(self) -> str:
        return "SELECT COUNT(*) AS c FROM sqlite_master WHERE type = 'table' AND name = ?"

    def list_tables_query(self) -> str:
        # sqlite_sequence and friends belong to the engine and cannot be dropped
        return (
            "SELECT name FROM sqlite_master "
            "WHERE type = 'table' AND name NOT LIKE 'sqlite\\_%' ESCAPE '\\'"
        )

    # -- Paging ------------------------------------------------------------

    def limit_offset(self, limit: int | None, offset: int | None) -> str:
        if limit is None and offset is None:
            return ""
        # SQLite requires LIMIT before OFFSET; -1 means unbounded
        clause = f" LIMIT {int(limit) if limit is not None else -1}"
        if offset is not None:
            clause += f" OFFSET {int(offset)}"
        return clause


__all__ = [
    "Dialect",
    "SQLiteDialect",
]
