"""SQLite store adapter.

Wraps one :class:`sqlite3.Connection` to satisfy
:class:`~tablespine.protocols.StoreConnection`.

The connection runs in autocommit mode (``isolation_level=None``): outside
an explicit transaction every statement is durable as soon as it returns.
Transactions nest the way Android's ``SQLiteDatabase`` nests them: only the
outermost :meth:`SQLiteStore.end_transaction` commits, and a nested level
that ends without :meth:`SQLiteStore.set_transaction_successful` dooms the
whole transaction to roll back.

A transaction belongs to the thread that opened it.  The store holds a
reentrant lock from the outermost :meth:`SQLiteStore.begin_transaction` to
the matching :meth:`SQLiteStore.end_transaction`, and every statement takes
the same lock, so a second thread waits for the open transaction to finish
instead of joining it.

Usage::

    store = SQLiteStore("app.db")
    store.begin_transaction()
    try:
        store.execute("INSERT INTO item (name) VALUES (?)", ("a",))
        store.set_transaction_successful()
    finally:
        store.end_transaction()

    with store.query("SELECT * FROM item") as cursor:
        for row in cursor:
            ...
"""

from __future__ import annotations

import sqlite3
import threading
from collections.abc import Callable, Iterator, Mapping, Sequence
from pathlib import Path
from typing import Any, Final

from tablespine.config import MEMORY
from tablespine.dialect import Dialect, SQLiteDialect
from tablespine.errors import PersistenceError
from tablespine.logging import get_logger

logger = get_logger(__name__)

NO_ROW_INSERTED: Final[int] = -1
"""Sentinel returned by :meth:`SQLiteStore.insert` when no row was written."""


class ResultCursor:
    """Forward-only cursor over a query result.

    Use as a context manager so the underlying ``sqlite3.Cursor`` is
    released on every exit path.  :meth:`close` is idempotent; the native
    cursor is closed exactly once.
    """

    def __init__(self, cursor: sqlite3.Cursor, sql: str = "") -> None:
        self._cursor = cursor
        self._sql = sql
        self._closed = False
        self.release_count = 0

    @property
    def columns(self) -> list[str]:
        description = self._cursor.description or ()
        return [desc[0] for desc in description]

    @property
    def closed(self) -> bool:
        return self._closed

    def fetch_next(self) -> sqlite3.Row | None:
        """Advance one row; ``None`` once the result is exhausted."""
        if self._closed:
            raise PersistenceError("cursor already released").with_context(sql=self._sql)
        return self._cursor.fetchone()

    def __iter__(self) -> Iterator[sqlite3.Row]:
        while True:
            row = self.fetch_next()
            if row is None:
                return
            yield row

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.release_count += 1
        self._cursor.close()

    def __enter__(self) -> ResultCursor:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"ResultCursor({self._sql!r}, {state})"


class SQLiteStore:
    """
    Single-connection SQLite store.

    Opening is eager: the constructor connects and fails with
    :class:`PersistenceError` if the file cannot be opened for writing.
    """

    def __init__(
        self,
        path: str = MEMORY,
        *,
        timeout: float = 5.0,
        dialect: Dialect | None = None,
    ) -> None:
        self._path = path
        self._dialect: Dialect = dialect or SQLiteDialect()
        self._lock = threading.RLock()
        self._owner: int | None = None
        self._depth = 0
        self._doomed = False
        self._marked: list[bool] = []
        self._on_commit: list[Callable[[], None]] = []

        try:
            if path != MEMORY:
                Path(path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(
                path,
                timeout=timeout,
                check_same_thread=False,
                isolation_level=None,
            )
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            # forces SQLite to actually open the file; connect() is lazy
            self._conn.execute("SELECT COUNT(*) FROM sqlite_master").fetchone()
        except (sqlite3.Error, OSError) as e:
            raise PersistenceError(
                f"Failed to open database {path!r}: {e}",
                cause=e,
            ).with_context(database=path) from e

        logger.debug("store.opened", path=path)

    # -- Properties ----------------------------------------------------------

    @property
    def path(self) -> str:
        return self._path

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def raw(self) -> sqlite3.Connection:
        """Access the underlying ``sqlite3.Connection`` (e.g. for pragmas)."""
        return self._conn

    @property
    def in_transaction(self) -> bool:
        return self._depth > 0

    @property
    def user_version(self) -> int:
        with self._lock:
            return int(self._conn.execute("PRAGMA user_version").fetchone()[0])

    @user_version.setter
    def user_version(self, value: int) -> None:
        with self._lock:
            self._conn.execute(f"PRAGMA user_version = {int(value)}")

    # -- Statements ----------------------------------------------------------

    def execute(self, sql: str, args: Sequence[Any] = ()) -> None:
        with self._lock:
            self._conn.execute(sql, tuple(args)).close()

    def query(self, sql: str, args: Sequence[Any] = ()) -> ResultCursor:
        with self._lock:
            return ResultCursor(self._conn.execute(sql, tuple(args)), sql)

    def insert(self, table: str, values: Mapping[str, Any]) -> int:
        """Insert one row and return its rowid.

        Driver failures are logged and reported as :data:`NO_ROW_INSERTED`
        instead of raised, so callers decide whether a missing row is fatal.
        """
        columns = list(values.keys())
        q = self._dialect.quote
        sql = (
            f"INSERT INTO {q(table)} ({', '.join(q(c) for c in columns)}) "
            f"VALUES ({self._dialect.placeholders(len(columns))})"
        )
        with self._lock:
            try:
                cursor = self._conn.execute(sql, tuple(values[c] for c in columns))
            except sqlite3.Error as e:
                logger.error("store.insert_failed", table=table, error=str(e))
                return NO_ROW_INSERTED
            try:
                rowid = cursor.lastrowid
            finally:
                cursor.close()
        return rowid if rowid is not None else NO_ROW_INSERTED

    # -- Transactions --------------------------------------------------------

    def begin_transaction(self) -> None:
        """Open a transaction, or nest inside the one this thread holds.

        Blocks while another thread holds an open transaction.
        """
        self._lock.acquire()
        if self._depth == 0:
            try:
                self._conn.execute("BEGIN")
            except BaseException:
                self._lock.release()
                raise
            self._owner = threading.get_ident()
            self._doomed = False
            self._on_commit = []
        self._depth += 1
        self._marked.append(False)

    def set_transaction_successful(self) -> None:
        if not self._owns_transaction():
            raise PersistenceError("no transaction is active")
        self._marked[-1] = True

    def end_transaction(self) -> None:
        """Close one nesting level; the outermost level commits or rolls back.

        A failed ``COMMIT`` rolls the transaction back before the driver
        error propagates, so the connection is usable afterwards.
        """
        if not self._owns_transaction():
            raise PersistenceError("no transaction is active")
        try:
            if not self._marked.pop():
                self._doomed = True
            self._depth -= 1
            if self._depth == 0:
                self._finish()
        finally:
            self._lock.release()

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Run ``callback`` once this thread's transaction commits.

        Outside a transaction the callback runs immediately.  Callbacks of a
        transaction that rolls back are discarded.
        """
        if self._owns_transaction():
            self._on_commit.append(callback)
        else:
            callback()

    def _owns_transaction(self) -> bool:
        return self._depth > 0 and self._owner == threading.get_ident()

    def _finish(self) -> None:
        callbacks, self._on_commit = self._on_commit, []
        self._owner = None
        if self._doomed:
            # the engine may already have rolled back on its own (e.g. SQLITE_FULL)
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            return
        try:
            self._conn.execute("COMMIT")
        except sqlite3.Error as e:
            logger.warning("store.commit_failed", path=self._path, error=str(e))
            if self._conn.in_transaction:
                self._conn.execute("ROLLBACK")
            raise
        for callback in callbacks:
            callback()

    # -- Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        self._conn.close()

    def __repr__(self) -> str:
        return f"SQLiteStore({self._path!r})"


__all__ = [
    "NO_ROW_INSERTED",
    "ResultCursor",
    "SQLiteStore",
]
