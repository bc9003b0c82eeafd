"""
Canonical protocol definitions for tablespine.

The orchestrator talks to its storage engine only through
:class:`StoreConnection`, so the SQLite adapter in :mod:`tablespine.store`
can be replaced by a test double (or another embedded engine) without
touching the mutation or hydration code.

Architecture:
    ::

        StoreConnection:
        ┌────────────────────────────────────────────────────────────┐
        │ execute(sql, args)           → run a statement             │
        │ query(sql, args)             → ResultCursor                │
        │ insert(table, values)        → rowid | NO_ROW_INSERTED     │
        │ begin_transaction()          → open (or nest) a txn        │
        │ set_transaction_successful() → mark current level ok       │
        │ end_transaction()            → commit / roll back          │
        │ after_commit(callback)       → run once the txn commits    │
        │ user_version                 → schema version stamp        │
        │ close()                      → release the connection      │
        └────────────────────────────────────────────────────────────┘

Tags:
    protocol, connection, database, tablespine, contracts
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from tablespine.database import EntityDatabase
    from tablespine.dialect import Dialect
    from tablespine.store import ResultCursor


@runtime_checkable
class StoreConnection(Protocol):
    """Minimal synchronous storage-engine interface used by the orchestrator."""

    @property
    def path(self) -> str: ...

    @property
    def dialect(self) -> Dialect: ...

    @property
    def user_version(self) -> int: ...

    @user_version.setter
    def user_version(self, value: int) -> None: ...

    @property
    def in_transaction(self) -> bool: ...

    def execute(self, sql: str, args: Sequence[Any] = ()) -> None: ...

    def query(self, sql: str, args: Sequence[Any] = ()) -> ResultCursor: ...

    def insert(self, table: str, values: Mapping[str, Any]) -> int: ...

    def begin_transaction(self) -> None: ...

    def set_transaction_successful(self) -> None: ...

    def end_transaction(self) -> None: ...

    def after_commit(self, callback: Callable[[], None]) -> None: ...

    def close(self) -> None: ...


class UpgradeListener(Protocol):
    """Called once when a database file is opened with a newer ``db_version``.

    Runs inside a transaction on the freshly opened database; raising
    aborts the open.
    """

    def __call__(self, db: EntityDatabase, old_version: int, new_version: int) -> None: ...


__all__ = [
    "StoreConnection",
    "UpgradeListener",
]
