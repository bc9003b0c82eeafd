"""
EntityDatabase — the per-database persistence orchestrator.

One instance per logical database name, handed out by
:class:`~tablespine.registry.DatabaseRegistry`.  It owns exactly one
:class:`~tablespine.store.SQLiteStore` and composes the statement builder,
the schema cache and row hydration into save / update / delete / find.

Manifesto:
    Every public mutation runs inside the same envelope::

        begin_transaction()          # no-op unless allow_transaction
        try:
            <untransacted single-object operations>
            set_transaction_successful()
        finally:
            end_transaction()        # commits only if marked successful

    A batch aborts on the first failing object.  With transactions enabled
    that rolls the whole batch back.  Without them, the objects written
    before the failure stay written.

Architecture:
    ::

        caller ──► EntityDatabase ──┬──► sql.build_*  ──► SqlStatement
                                    ├──► SchemaCache  (ensure table on write)
                                    ├──► SQLiteStore  (execute / query / insert)
                                    └──► hydration    (rows → entity / DbModel)

Features:
    - save / save_binding_id / save_or_update / update / delete (single + batch)
    - delete_by_id, delete_where, update_where
    - find_by_id / find_first / find_all / count
    - find_db_model_first / find_db_model_all for ad-hoc SQL
    - Version upgrade on open via ``PRAGMA user_version``
    - ``sql.exec`` debug logging when ``config.debug`` is set

Examples:
    >>> db = EntityDatabase(DatabaseConfig(db_name=":memory:"))
    >>> db.config.allow_transaction
    False

Guardrails:
    ❌ DON'T: Construct two EntityDatabase objects for the same file
    ✅ DO: Go through ``tablespine.create`` / ``database_registry.acquire``

    ❌ DON'T: Expect reads to create tables
    ✅ DO: Expect PersistenceError when querying a table never written to

Tags:
    orchestrator, crud, transaction, hydration, tablespine
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any, TypeVar

from tablespine.config import DatabaseConfig
from tablespine.entity import describe, describe_instance
from tablespine.errors import PersistenceError, wrap_persistence_error
from tablespine.hydration import DbModel, to_db_model, to_entity
from tablespine.logging import get_logger
from tablespine.protocols import StoreConnection
from tablespine.schema import SchemaCache
from tablespine.sql.builder import (
    build_delete,
    build_delete_by_id,
    build_delete_where,
    build_insert,
    build_query_by_example,
    build_update,
    entity_to_key_values,
)
from tablespine.sql.selector import DbModelSelector, Selector
from tablespine.sql.statement import SqlStatement
from tablespine.sql.where import WhereBuilder
from tablespine.store import NO_ROW_INSERTED, ResultCursor, SQLiteStore

logger = get_logger(__name__)

T = TypeVar("T")

ModelQuery = str | SqlStatement | DbModelSelector


class EntityDatabase:
    """Persistence orchestrator bound to one SQLite database."""

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._token = uuid.uuid4().hex
        self._store: StoreConnection = SQLiteStore(config.path, timeout=config.busy_timeout)
        self._schema = SchemaCache(self)
        try:
            self._check_version()
        except Exception:
            self._store.close()
            raise

    # -- Properties ----------------------------------------------------------

    @property
    def config(self) -> DatabaseConfig:
        return self._config

    @property
    def name(self) -> str:
        return self._config.db_name

    @property
    def token(self) -> str:
        """Identity used to key per-database schema verification."""
        return self._token

    @property
    def store(self) -> StoreConnection:
        return self._store

    @property
    def schema(self) -> SchemaCache:
        return self._schema

    # -- Configuration -------------------------------------------------------

    def replace_config(self, config: DatabaseConfig) -> None:
        """Install a new configuration; the open connection is kept."""
        self._config = config

    def config_debug(self, debug: bool) -> None:
        self._config = self._config.with_changes(debug=debug)

    def config_allow_transaction(self, allow_transaction: bool) -> None:
        self._config = self._config.with_changes(allow_transaction=allow_transaction)

    # -- Versioning ----------------------------------------------------------

    def _check_version(self) -> None:
        old = self._store.user_version
        new = self._config.db_version
        if old == new:
            return
        if old > new:
            raise PersistenceError(
                f"Cannot downgrade database from version {old} to {new}"
            ).with_context(database=self.name)

        with self.transaction():
            # version 0 is a fresh file: nothing to migrate
            if old != 0:
                self._upgrade(old, new)
            self._store.user_version = new

    def _upgrade(self, old: int, new: int) -> None:
        listener = self._config.upgrade_listener
        logger.info(
            "store.upgrade",
            database=self.name,
            old_version=old,
            new_version=new,
            listener=listener is not None,
        )
        if listener is not None:
            listener(self, old, new)
            return
        try:
            self.drop_all()
        except PersistenceError as e:
            logger.error("store.upgrade_drop_failed", database=self.name, error=str(e))

    # -- Transaction envelope ------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[EntityDatabase]:
        """Explicit transaction, independent of ``allow_transaction``.

        Mutations run inside it join the outer transaction; nothing commits
        until this block exits without an exception.
        """
        self._begin(True)
        try:
            yield self
            self._mark_successful(True)
        finally:
            self._end(True)

    @contextmanager
    def _envelope(self) -> Iterator[None]:
        enabled = self._config.allow_transaction
        self._begin(enabled)
        try:
            yield
            self._mark_successful(enabled)
        finally:
            self._end(enabled)

    def _begin(self, enabled: bool) -> None:
        if not enabled:
            return
        try:
            self._store.begin_transaction()
        except Exception as e:
            raise wrap_persistence_error(e, sql="BEGIN", database=self.name) from e

    def _mark_successful(self, enabled: bool) -> None:
        if enabled:
            self._store.set_transaction_successful()

    def _end(self, enabled: bool) -> None:
        if not enabled:
            return
        try:
            self._store.end_transaction()
        except PersistenceError:
            raise
        except Exception as e:
            raise wrap_persistence_error(e, sql="COMMIT", database=self.name) from e

    # -- Mutations -----------------------------------------------------------

    def save_or_update(self, entity: Any) -> None:
        with self._envelope():
            self._save_or_update(entity)

    def save_or_update_all(self, entities: Iterable[Any]) -> None:
        with self._envelope():
            for entity in entities:
                self._save_or_update(entity)

    def save(self, entity: Any) -> None:
        with self._envelope():
            self._save(entity)

    def save_all(self, entities: Iterable[Any]) -> None:
        with self._envelope():
            for entity in entities:
                self._save(entity)

    def save_binding_id(self, entity: Any) -> bool:
        """Insert ``entity`` and write the generated row id into its key field.

        Returns False (and leaves the key untouched) if no row was written.
        """
        with self._envelope():
            return self._save_binding_id(entity)

    def save_binding_id_all(self, entities: Iterable[Any]) -> None:
        with self._envelope():
            for entity in entities:
                if not self._save_binding_id(entity):
                    descriptor = describe_instance(entity)
                    raise PersistenceError(
                        f"save_binding_id failed, transaction will not commit: {entity!r}"
                    ).with_context(database=self.name, table=descriptor.table_name)

    def update(self, entity: Any) -> None:
        with self._envelope():
            self._update(entity)

    def update_all(self, entities: Iterable[Any]) -> None:
        with self._envelope():
            for entity in entities:
                self._update(entity)

    def update_where(
        self,
        entity: Any,
        where: WhereBuilder,
        columns: Sequence[str] | None = None,
    ) -> None:
        """Copy ``entity``'s non-key columns onto every row matching ``where``."""
        with self._envelope():
            self._schema.ensure_table_exists(type(entity))
            self.exec_non_query(build_update(entity, where, columns, self._store.dialect))

    def delete(self, entity: Any) -> None:
        with self._envelope():
            self._delete(entity)

    def delete_all(self, entities: Iterable[Any]) -> None:
        with self._envelope():
            for entity in entities:
                self._delete(entity)

    def delete_by_id(self, entity_type: type, id_value: Any) -> None:
        with self._envelope():
            self.exec_non_query(build_delete_by_id(entity_type, id_value, self._store.dialect))

    def delete_where(self, entity_type: type, where: WhereBuilder | None = None) -> None:
        with self._envelope():
            self.exec_non_query(build_delete_where(entity_type, where, self._store.dialect))

    # -- Single-object operations (no envelope) ------------------------------

    def _save_or_update(self, entity: Any) -> None:
        if describe_instance(entity).has_id_value(entity):
            self._update(entity)
        else:
            self._save_binding_id(entity)

    def _save(self, entity: Any) -> None:
        self._schema.ensure_table_exists(type(entity))
        self.exec_non_query(build_insert(entity, self._store.dialect))

    def _save_binding_id(self, entity: Any) -> bool:
        descriptor = describe_instance(entity)
        self._schema.ensure_table_exists(descriptor.entity_type)
        key_values = entity_to_key_values(entity)
        if not key_values:
            return False

        values = {kv.key: kv.value for kv in key_values}
        self._debug_sql(f"INSERT INTO {descriptor.table_name}", list(values.values()))
        row_id = self._store.insert(descriptor.table_name, values)
        if row_id == NO_ROW_INSERTED:
            return False
        descriptor.set_id_value(entity, str(row_id))
        return True

    def _update(self, entity: Any) -> None:
        self._schema.ensure_table_exists(type(entity))
        self.exec_non_query(build_update(entity, dialect=self._store.dialect))

    def _delete(self, entity: Any) -> None:
        self.exec_non_query(build_delete(entity, self._store.dialect))

    # -- Schema --------------------------------------------------------------

    def table_exists(self, entity_type: type) -> bool:
        return self._schema.table_exists(entity_type)

    def create_table_if_not_exists(self, entity_type: type) -> None:
        self._schema.ensure_table_exists(entity_type)

    def table_names(self) -> list[str]:
        return self._schema.table_names()

    def drop_all(self) -> list[str]:
        return self._schema.drop_all()

    drop_db = drop_all

    # -- Raw execution -------------------------------------------------------

    def exec_non_query(
        self,
        statement: SqlStatement | str,
        args: Sequence[Any] | None = None,
    ) -> None:
        sql, bound = self._unpack(statement, args)
        self._debug_sql(sql, bound)
        try:
            self._store.execute(sql, bound)
        except Exception as e:
            raise wrap_persistence_error(e, sql=sql, database=self.name) from e

    def exec_query(
        self,
        statement: SqlStatement | str,
        args: Sequence[Any] | None = None,
    ) -> ResultCursor:
        """Run a query and return its cursor; the caller must close it."""
        sql, bound = self._unpack(statement, args)
        self._debug_sql(sql, bound)
        try:
            return self._store.query(sql, bound)
        except Exception as e:
            raise wrap_persistence_error(e, sql=sql, database=self.name) from e

    # -- Typed queries -------------------------------------------------------

    def find_by_id(self, entity_type: type[T], id_value: Any) -> T | None:
        descriptor = describe(entity_type)
        selector = Selector(entity_type, self._store.dialect).where(
            descriptor.id.name, "=", descriptor.id.to_db(id_value)
        )
        return self.find_first(selector)

    def find_first(self, query: Any) -> Any | None:
        """First entity matching a Selector, an entity type, or an example entity."""
        selector = self._to_selector(query).with_limit(1)
        descriptor = describe(selector.entity_type)
        statement = selector.to_statement()
        return self._first(
            statement,
            lambda row, cols: to_entity(row, cols, descriptor),
        )

    def find_all(self, query: Any) -> list[Any]:
        selector = self._to_selector(query)
        descriptor = describe(selector.entity_type)
        return self._all(
            selector.to_statement(),
            lambda row, cols: to_entity(row, cols, descriptor),
        )

    def count(self, query: Selector | type) -> int:
        selector = self._to_selector(query)
        inner = selector.to_statement()
        statement = SqlStatement(f"SELECT COUNT(*) FROM ({inner.sql})", list(inner.args))
        value = self._first(statement, lambda row, cols: row[0])
        return int(value or 0)

    # -- DbModel queries -----------------------------------------------------

    def find_db_model_first(
        self,
        query: ModelQuery,
        args: Sequence[Any] | None = None,
    ) -> DbModel | None:
        if isinstance(query, DbModelSelector):
            query = query.with_limit(1).to_statement()
        return self._first(self._statement(query, args), to_db_model)

    def find_db_model_all(
        self,
        query: ModelQuery,
        args: Sequence[Any] | None = None,
    ) -> list[DbModel]:
        if isinstance(query, DbModelSelector):
            query = query.to_statement()
        return self._all(self._statement(query, args), to_db_model)

    # -- Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        self._store.close()

    def __repr__(self) -> str:
        return f"EntityDatabase({self.name!r})"

    # -- Internals -----------------------------------------------------------

    def _debug_sql(self, sql: str, args: Sequence[Any]) -> None:
        if self._config.debug:
            logger.debug("sql.exec", database=self.name, sql=sql, args=list(args))

    @staticmethod
    def _unpack(
        statement: SqlStatement | str,
        args: Sequence[Any] | None,
    ) -> tuple[str, list[Any]]:
        if isinstance(statement, SqlStatement):
            return statement.sql, list(statement.args) + list(args or [])
        return statement, list(args or [])

    @staticmethod
    def _statement(query: SqlStatement | str, args: Sequence[Any] | None) -> SqlStatement:
        if isinstance(query, SqlStatement):
            if args:
                return SqlStatement(query.sql, list(query.args) + list(args))
            return query
        return SqlStatement(query, list(args or []))

    def _to_selector(self, query: Any) -> Selector:
        if isinstance(query, Selector):
            return query
        if isinstance(query, type):
            return Selector(query, self._store.dialect)
        # an entity instance: query by example
        where = build_query_by_example(query)
        return Selector(type(query), self._store.dialect).where(where)

    def _first(
        self,
        statement: SqlStatement,
        convert: Callable[[Any, list[str]], T],
    ) -> T | None:
        try:
            with self.exec_query(statement) as cursor:
                row = cursor.fetch_next()
                if row is None:
                    return None
                return convert(row, cursor.columns)
        except PersistenceError:
            raise
        except Exception as e:
            raise wrap_persistence_error(e, sql=statement.sql, database=self.name) from e

    def _all(
        self,
        statement: SqlStatement,
        convert: Callable[[Any, list[str]], T],
    ) -> list[T]:
        try:
            with self.exec_query(statement) as cursor:
                columns = cursor.columns
                return [convert(row, columns) for row in cursor]
        except PersistenceError:
            raise
        except Exception as e:
            raise wrap_persistence_error(e, sql=statement.sql, database=self.name) from e


__all__ = [
    "EntityDatabase",
]
