"""SELECT builders for typed and generic-row queries."""

from __future__ import annotations

import copy
from typing import Any

from tablespine.dialect import Dialect, SQLiteDialect
from tablespine.entity import describe
from tablespine.sql.statement import SqlStatement
from tablespine.sql.where import WhereBuilder, quote_column


class Selector:
    """
    ``SELECT * FROM <table>`` for one registered entity type.

    Usage:
        Selector.from_(Item).where("name", "like", "a%").order_by("id", desc=True).limit(10)
    """

    def __init__(self, entity_type: type, dialect: Dialect | None = None) -> None:
        self.entity_type = entity_type
        self.table_name = describe(entity_type).table_name
        self._dialect = dialect or SQLiteDialect()
        self._where: WhereBuilder | None = None
        self._order_by: list[tuple[str, bool]] = []
        self._limit: int | None = None
        self._offset: int | None = None

    @classmethod
    def from_(cls, entity_type: type) -> Selector:
        return cls(entity_type)

    # -- WHERE -------------------------------------------------------------

    def where(
        self,
        column: str | WhereBuilder,
        op: str | None = None,
        value: Any = None,
    ) -> Selector:
        """Replace the WHERE clause with a builder or a single condition."""
        if isinstance(column, WhereBuilder):
            self._where = column
        else:
            self._where = WhereBuilder.b(column, op or "=", value)
        return self

    def and_(self, column: str, op: str, value: Any = None) -> Selector:
        self._ensure_where().and_(column, op, value)
        return self

    def or_(self, column: str, op: str, value: Any = None) -> Selector:
        self._ensure_where().or_(column, op, value)
        return self

    def expr(self, sql: str | WhereBuilder, *args: Any) -> Selector:
        self._ensure_where().expr(sql, *args)
        return self

    # -- Ordering / paging -------------------------------------------------

    def order_by(self, column: str, desc: bool = False) -> Selector:
        self._order_by.append((column, desc))
        return self

    def limit(self, limit: int) -> Selector:
        self._limit = limit
        return self

    def offset(self, offset: int) -> Selector:
        self._offset = offset
        return self

    def with_limit(self, limit: int) -> Selector:
        """Copy of this selector with ``limit`` applied; the original is untouched."""
        clone = copy.copy(self)
        clone._order_by = list(self._order_by)
        clone._limit = limit
        return clone

    # -- Rendering ---------------------------------------------------------

    def to_statement(self) -> SqlStatement:
        statement = SqlStatement(self._select_clause())
        self._append_where(statement)
        statement.sql += self._tail_clause()
        return statement

    def __str__(self) -> str:
        return self.to_statement().sql

    # -- Internals ---------------------------------------------------------

    def _ensure_where(self) -> WhereBuilder:
        if self._where is None:
            self._where = WhereBuilder()
        return self._where

    def _select_clause(self) -> str:
        return f"SELECT * FROM {self._dialect.quote(self.table_name)}"

    def _append_where(self, statement: SqlStatement) -> None:
        if self._where:
            text, args = self._where.to_sql()
            statement.sql += f" WHERE {text}"
            statement.add_args(args)

    def _order_clause(self) -> str:
        if not self._order_by:
            return ""
        parts = [
            f"{quote_column(col, self._dialect)}{' DESC' if desc else ''}"
            for col, desc in self._order_by
        ]
        return " ORDER BY " + ", ".join(parts)

    def _tail_clause(self) -> str:
        return self._order_clause() + self._dialect.limit_offset(self._limit, self._offset)


class DbModelSelector(Selector):
    """
    Column-projecting SELECT whose rows hydrate into :class:`~tablespine.hydration.DbModel`.

    Usage:
        DbModelSelector.from_(Item).select("name", "COUNT(*) AS n").group_by("name")
    """

    def __init__(self, entity_type: type, dialect: Dialect | None = None) -> None:
        super().__init__(entity_type, dialect)
        self._columns: list[str] = []
        self._group_by: list[str] = []
        self._having: WhereBuilder | None = None

    @classmethod
    def from_(cls, entity_type: type) -> DbModelSelector:
        return cls(entity_type)

    def select(self, *columns: str) -> DbModelSelector:
        self._columns.extend(columns)
        return self

    def group_by(self, column: str) -> DbModelSelector:
        self._group_by.append(column)
        return self

    def having(self, where: WhereBuilder) -> DbModelSelector:
        self._having = where
        return self

    def with_limit(self, limit: int) -> DbModelSelector:
        clone = super().with_limit(limit)
        clone._columns = list(self._columns)
        clone._group_by = list(self._group_by)
        return clone

    def to_statement(self) -> SqlStatement:
        statement = SqlStatement(self._select_clause())
        self._append_where(statement)
        if self._group_by:
            statement.sql += " GROUP BY " + ", ".join(
                quote_column(col, self._dialect) for col in self._group_by
            )
            if self._having:
                text, args = self._having.to_sql()
                statement.sql += f" HAVING {text}"
                statement.add_args(args)
        statement.sql += self._tail_clause()
        return statement

    def _select_clause(self) -> str:
        if not self._columns:
            return super()._select_clause()
        cols = ", ".join(quote_column(col, self._dialect) for col in self._columns)
        return f"SELECT {cols} FROM {self._dialect.quote(self.table_name)}"


__all__ = [
    "DbModelSelector",
    "Selector",
]
