"""
Row hydration — cursor rows back into typed objects.

Two targets:

- **Entities:** the descriptor's columns are walked, every column present
  in the row is converted with its ``from_db`` converter, and the dataclass
  is constructed from the result.
- **DbModel:** every column of the row is captured as-is, with no
  descriptor involved.  Used for ad-hoc SQL, projections and aggregates.

Examples:
    >>> model = DbModel({"name": "a", "n": 2})
    >>> model.get_int("n")
    2
    >>> model.get_str("missing") is None
    True

Tags:
    hydration, cursor, row-mapping, tablespine
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from datetime import date, datetime
from typing import Any

from tablespine.entity import EntityDescriptor


class DbModel(Mapping[str, Any]):
    """Column-name → value mapping for one result row."""

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = dict(data or {})

    # -- Mapping protocol --------------------------------------------------

    def __getitem__(self, column: str) -> Any:
        return self._data[column]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    # -- Typed accessors ---------------------------------------------------

    def get_str(self, column: str) -> str | None:
        value = self._data.get(column)
        return None if value is None else str(value)

    def get_int(self, column: str) -> int | None:
        value = self._data.get(column)
        return None if value is None else int(value)

    def get_float(self, column: str) -> float | None:
        value = self._data.get(column)
        return None if value is None else float(value)

    def get_bool(self, column: str) -> bool | None:
        value = self._data.get(column)
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes")
        return bool(value)

    def get_datetime(self, column: str) -> datetime | None:
        value = self._data.get(column)
        if value is None or isinstance(value, datetime):
            return value
        return datetime.fromisoformat(str(value))

    def get_date(self, column: str) -> date | None:
        value = self._data.get(column)
        if value is None or isinstance(value, date):
            return value
        return date.fromisoformat(str(value))

    def is_empty(self, column: str) -> bool:
        return self._data.get(column) is None

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def __repr__(self) -> str:
        return f"DbModel({self._data!r})"


def row_to_dict(row: Any, columns: list[str]) -> dict[str, Any]:
    """``sqlite3.Row`` (or any positional row) → dict keyed by column name."""
    return {name: row[i] for i, name in enumerate(columns)}


def to_entity(row: Any, columns: list[str], descriptor: EntityDescriptor) -> Any:
    return descriptor.new_instance(row_to_dict(row, columns))


def to_db_model(row: Any, columns: list[str]) -> DbModel:
    return DbModel(row_to_dict(row, columns))


__all__ = [
    "DbModel",
    "row_to_dict",
    "to_db_model",
    "to_entity",
]
