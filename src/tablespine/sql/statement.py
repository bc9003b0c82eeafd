"""SQL text plus bound arguments."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, NamedTuple


class KeyValue(NamedTuple):
    """One column name and its bindable value."""

    key: str
    value: Any


@dataclass
class SqlStatement:
    """A statement ready for execution: ``sql`` with ``?`` placeholders and ``args``."""

    sql: str
    args: list[Any] = field(default_factory=list)

    def add_arg(self, value: Any) -> SqlStatement:
        self.args.append(value)
        return self

    def add_args(self, values: Iterable[Any]) -> SqlStatement:
        self.args.extend(values)
        return self

    @property
    def has_args(self) -> bool:
        return bool(self.args)

    def __str__(self) -> str:
        return self.sql


__all__ = [
    "KeyValue",
    "SqlStatement",
]
