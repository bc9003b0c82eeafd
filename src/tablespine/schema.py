"""
Schema lifecycle — lazy table creation and whole-database drops.

Manifesto:
    Tables are created on first write, never up front.  The first positive
    catalog probe (or a successful ``CREATE``) is remembered on the entity's
    descriptor for the life of the database instance, and later checks make
    no store round-trip.  Inside a transaction the mark waits for the
    commit: a rolled-back ``CREATE`` leaves nothing cached.

Architecture:
    ::

        ensure_table_exists(Item)
              │
              ├─ descriptor.is_verified(db)? ──yes──► return (no I/O)
              │
              ├─ SELECT COUNT(*) FROM sqlite_master ... ──>0──► mark on commit, return
              │
              └─ CREATE TABLE IF NOT EXISTS ... ──► mark on commit (no re-check)

Guardrails:
    - Check-then-create is not atomic against schema changes made outside
      this orchestrator.  It assumes it is the sole schema owner.
    - ``drop_all`` does not reset the verified flags.  A dropped table
      still reads as existing until the registry is cleared or the process
      restarts.  This is a known limitation, not a cache-invalidation path.

Tags:
    schema, ddl, cache, tablespine
"""

from __future__ import annotations

import sqlite3
from functools import partial
from typing import TYPE_CHECKING

from tablespine.entity import EntityDescriptor, describe
from tablespine.errors import PersistenceError, wrap_persistence_error
from tablespine.logging import get_logger
from tablespine.sql.builder import build_create_table

if TYPE_CHECKING:
    from tablespine.database import EntityDatabase

logger = get_logger(__name__)


class SchemaCache:
    """Per-database table-existence cache and DDL runner."""

    def __init__(self, db: EntityDatabase) -> None:
        self._db = db

    def table_exists(self, entity_type: type) -> bool:
        descriptor = describe(entity_type)
        if descriptor.is_verified(self._db.token):
            return True

        sql = self._db.store.dialect.table_exists_query()
        with self._db.exec_query(sql, [descriptor.table_name]) as cursor:
            try:
                row = cursor.fetch_next()
                count = int(row[0]) if row is not None else 0
            except sqlite3.Error as e:
                raise wrap_persistence_error(e, sql=sql, database=self._db.name) from e

        if count > 0:
            self._remember(descriptor)
            return True
        return False

    def ensure_table_exists(self, entity_type: type) -> None:
        if self.table_exists(entity_type):
            return
        descriptor = describe(entity_type)
        self._db.exec_non_query(build_create_table(entity_type, self._db.store.dialect))
        self._remember(descriptor)
        logger.info(
            "schema.table_created",
            database=self._db.name,
            table=descriptor.table_name,
        )

    def _remember(self, descriptor: EntityDescriptor) -> None:
        self._db.store.after_commit(partial(descriptor.mark_verified, self._db.token))

    def table_names(self) -> list[str]:
        sql = self._db.store.dialect.list_tables_query()
        with self._db.exec_query(sql) as cursor:
            try:
                return [str(row[0]) for row in cursor]
            except sqlite3.Error as e:
                raise wrap_persistence_error(e, sql=sql, database=self._db.name) from e

    def drop_all(self) -> list[str]:
        """Drop every user table; returns the names actually dropped.

        A table that fails to drop (locked, already gone) is logged and
        skipped.  Only a failure to enumerate the catalog propagates.
        """
        dropped: list[str] = []
        for name in self.table_names():
            try:
                self._db.exec_non_query(f"DROP TABLE {self._db.store.dialect.quote(name)}")
            except PersistenceError as e:
                logger.error(
                    "schema.drop_failed",
                    database=self._db.name,
                    table=name,
                    error=str(e),
                )
                continue
            dropped.append(name)
        logger.info("schema.dropped", database=self._db.name, tables=dropped)
        return dropped


__all__ = [
    "SchemaCache",
]
