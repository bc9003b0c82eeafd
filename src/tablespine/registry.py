"""Database instance registry and factory.

Manifesto:
    One open connection per logical database.  Callers never construct
    :class:`EntityDatabase` directly; they ask the registry, which hands back
    the live instance for a name or opens a new one.

Features:
    - ``DatabaseRegistry`` keyed by ``db_name``, guarded by one lock
    - Re-acquiring a name installs the new configuration (last writer wins)
    - ``create()`` / ``create_from_settings()`` factories over the global
      ``database_registry``

Tags:
    registry, factory, singleton, tablespine
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from tablespine.config import DEFAULT_DB_NAME, DatabaseConfig
from tablespine.database import EntityDatabase
from tablespine.errors import ConfigError
from tablespine.logging import get_logger
from tablespine.protocols import UpgradeListener
from tablespine.settings import TablespineSettings, get_settings

logger = get_logger(__name__)


class DatabaseRegistry:
    """
    Map of database name to live :class:`EntityDatabase`.

    A hit replaces the instance's configuration but keeps its connection:
    a changed ``db_version`` on a hit is not applied until the process
    reopens the database.
    """

    def __init__(self) -> None:
        self._databases: dict[str, EntityDatabase] = {}
        self._lock = threading.Lock()

    def acquire(self, config: DatabaseConfig | None) -> EntityDatabase:
        """Return the database for ``config.db_name``, opening it on first use."""
        if config is None:
            raise ConfigError("database config is required")

        with self._lock:
            db = self._databases.get(config.db_name)
            if db is not None:
                db.replace_config(config)
                logger.debug("registry.reconfigured", database=config.db_name)
                return db

            db = EntityDatabase(config)
            self._databases[config.db_name] = db
            logger.debug("registry.created", database=config.db_name, path=config.path)
            return db

    def get(self, name: str) -> EntityDatabase | None:
        with self._lock:
            return self._databases.get(name)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._databases)

    def clear(self) -> None:
        """Close every open database and forget it."""
        with self._lock:
            databases = list(self._databases.values())
            self._databases.clear()
        for db in databases:
            db.close()
        logger.debug("registry.cleared", count=len(databases))

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._databases

    def __len__(self) -> int:
        with self._lock:
            return len(self._databases)


# Global registry
database_registry = DatabaseRegistry()


def create(
    db_name: str = DEFAULT_DB_NAME,
    *,
    db_dir: str | Path | None = None,
    db_version: int = 1,
    upgrade_listener: UpgradeListener | None = None,
    debug: bool = False,
    allow_transaction: bool = False,
    **kwargs: Any,
) -> EntityDatabase:
    """
    Open (or re-acquire) a database through the global registry.

    Usage:
        db = create("app.db", db_dir="/var/lib/app", allow_transaction=True)
        db = create(":memory:")
    """
    config = DatabaseConfig(
        db_name=db_name,
        db_dir=Path(db_dir) if db_dir is not None else None,
        db_version=db_version,
        upgrade_listener=upgrade_listener,
        debug=debug,
        allow_transaction=allow_transaction,
        **kwargs,
    )
    return database_registry.acquire(config)


def create_from_settings(
    settings: TablespineSettings | None = None,
    **overrides: Any,
) -> EntityDatabase:
    """Open the database described by ``TABLESPINE_*`` settings."""
    settings = settings or get_settings()
    return database_registry.acquire(DatabaseConfig.from_settings(settings, **overrides))


__all__ = [
    "DatabaseRegistry",
    "create",
    "create_from_settings",
    "database_registry",
]
