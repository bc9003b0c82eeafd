"""WHERE clause builder.

Examples:
    >>> wb = WhereBuilder.b("name", "=", "a").or_("age", ">", 30)
    >>> wb.to_sql()
    ('"name" = ? OR "age" > ?', ['a', 30])
    >>> WhereBuilder.b("deleted_at", "=", None).to_sql()
    ('"deleted_at" IS NULL', [])
    >>> WhereBuilder.b("id", "in", [1, 2, 3]).to_sql()
    ('"id" IN (?, ?, ?)', [1, 2, 3])

Values are always bound, never interpolated, and are passed through
:func:`~tablespine.entity.to_db_value` so datetimes, enums and booleans bind
the same way entity fields are stored.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from typing import Any

from tablespine.dialect import Dialect, SQLiteDialect
from tablespine.entity import to_db_value

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_OPERATORS = {
    "=": "=",
    "==": "=",
    "!=": "!=",
    "<>": "!=",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
    "LIKE": "LIKE",
    "NOT LIKE": "NOT LIKE",
    "IN": "IN",
    "NOT IN": "NOT IN",
    "BETWEEN": "BETWEEN",
    "NOT BETWEEN": "NOT BETWEEN",
}


def quote_column(column: str, dialect: Dialect) -> str:
    """Quote plain identifiers; leave expressions (``COUNT(*)``, ``t.a``) as written."""
    if _IDENTIFIER.match(column):
        return dialect.quote(column)
    return column


class WhereBuilder:
    """Builds a condition tree joined with AND / OR."""

    def __init__(self, dialect: Dialect | None = None) -> None:
        self._dialect = dialect or SQLiteDialect()
        self._parts: list[str] = []
        self._args: list[Any] = []

    @classmethod
    def b(
        cls,
        column: str | None = None,
        op: str | None = None,
        value: Any = None,
    ) -> WhereBuilder:
        """Start a builder, optionally with a first condition."""
        builder = cls()
        if column is not None:
            builder.and_(column, op or "=", value)
        return builder

    # -- Conditions --------------------------------------------------------

    def and_(self, column: str, op: str, value: Any = None) -> WhereBuilder:
        return self._append("AND", column, op, value)

    def or_(self, column: str, op: str, value: Any = None) -> WhereBuilder:
        return self._append("OR", column, op, value)

    def append(self, column: str, op: str, value: Any = None) -> WhereBuilder:
        return self.and_(column, op, value)

    def expr(self, sql: str | WhereBuilder, *args: Any, joiner: str = "AND") -> WhereBuilder:
        """Append a raw fragment (with its own args) or a parenthesised sub-builder."""
        if isinstance(sql, WhereBuilder):
            text, sub_args = sql.to_sql()
            if not text:
                return self
            self._push(joiner, f"({text})", sub_args)
        else:
            self._push(joiner, sql, [to_db_value(a) for a in args])
        return self

    # -- Rendering ---------------------------------------------------------

    def to_sql(self) -> tuple[str, list[Any]]:
        return " ".join(self._parts), list(self._args)

    def __len__(self) -> int:
        return len([p for p in self._parts if p not in ("AND", "OR")])

    def __bool__(self) -> bool:
        return bool(self._parts)

    def __str__(self) -> str:
        return self.to_sql()[0]

    def __repr__(self) -> str:
        text, args = self.to_sql()
        return f"WhereBuilder({text!r}, args={args!r})"

    # -- Internals ---------------------------------------------------------

    def _push(self, joiner: str, fragment: str, args: list[Any]) -> None:
        if self._parts:
            self._parts.append(joiner)
        self._parts.append(fragment)
        self._args.extend(args)

    def _append(self, joiner: str, column: str, op: str, value: Any) -> WhereBuilder:
        key = " ".join(op.strip().upper().split())
        if key not in _OPERATORS:
            raise ValueError(f"Unsupported operator: {op!r}")
        operator = _OPERATORS[key]
        col = quote_column(column, self._dialect)

        if value is None and operator in ("=", "!="):
            fragment = f"{col} IS NULL" if operator == "=" else f"{col} IS NOT NULL"
            self._push(joiner, fragment, [])
            return self

        if operator in ("IN", "NOT IN"):
            if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                raise ValueError(f"{operator} needs a list of values, got {value!r}")
            values = [to_db_value(v) for v in value]
            fragment = f"{col} {operator} ({self._dialect.placeholders(len(values))})"
            self._push(joiner, fragment, values)
            return self

        if operator in ("BETWEEN", "NOT BETWEEN"):
            if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
                raise ValueError(f"{operator} needs a (low, high) pair, got {value!r}")
            bounds = list(value)
            if len(bounds) != 2:
                raise ValueError(f"{operator} needs a (low, high) pair, got {value!r}")
            fragment = f"{col} {operator} ? AND ?"
            self._push(joiner, fragment, [to_db_value(b) for b in bounds])
            return self

        self._push(joiner, f"{col} {operator} ?", [to_db_value(value)])
        return self


__all__ = [
    "WhereBuilder",
    "quote_column",
]
