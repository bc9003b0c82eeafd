"""tablespine -- dataclass persistence over embedded SQLite.

Manifesto:
    Map plain dataclasses onto SQLite tables and run save / update /
    delete / find against them, with one live connection per database,
    lazy table creation and an optional transactional envelope around
    every mutation.

Architecture::

    Layer 1 -- Errors, logging, settings
        errors.py          PersistenceError / ConfigError / MappingError
        logging.py         structlog configuration
        settings.py        TABLESPINE_* settings (pydantic-settings)
        config.py          Per-database DatabaseConfig

    Layer 2 -- Collaborators
        entity.py          @entity registration, column(), EntityDescriptor
        sql/               SqlStatement, WhereBuilder, Selector, build_*
        dialect.py         SQLite fragments
        store.py           SQLiteStore, ResultCursor

    Layer 3 -- Orchestration
        schema.py          Verified-exists cache, lazy CREATE, drop_all
        hydration.py       Rows to entities / DbModel
        database.py        EntityDatabase
        registry.py        DatabaseRegistry, create()

Examples:
    >>> from dataclasses import dataclass
    >>> import tablespine
    >>> @tablespine.entity
    ... @dataclass
    ... class Note:
    ...     id: int | None = None
    ...     text: str = ""
    >>> db = tablespine.create(":memory:")
    >>> db.save_binding_id(Note(text="hi"))
    True

Tags:
    persistence, sqlite, dataclass, orm, tablespine
"""

from tablespine.config import DEFAULT_DB_NAME, MEMORY, DatabaseConfig
from tablespine.database import EntityDatabase
from tablespine.entity import (
    ColumnDescriptor,
    EntityDescriptor,
    column,
    describe,
    entity,
    is_entity,
    transient,
)
from tablespine.errors import (
    ConfigError,
    ErrorCategory,
    ErrorContext,
    MappingError,
    PersistenceError,
    TablespineError,
)
from tablespine.hydration import DbModel
from tablespine.logging import configure_logging, get_logger
from tablespine.registry import (
    DatabaseRegistry,
    create,
    create_from_settings,
    database_registry,
)
from tablespine.settings import TablespineSettings, get_settings
from tablespine.sql import (
    DbModelSelector,
    KeyValue,
    Selector,
    SqlStatement,
    WhereBuilder,
)
from tablespine.store import NO_ROW_INSERTED, ResultCursor, SQLiteStore

__version__ = "0.1.0"

__all__ = [
    "ColumnDescriptor",
    "ConfigError",
    "DEFAULT_DB_NAME",
    "DatabaseConfig",
    "DatabaseRegistry",
    "DbModel",
    "DbModelSelector",
    "EntityDatabase",
    "EntityDescriptor",
    "ErrorCategory",
    "ErrorContext",
    "KeyValue",
    "MEMORY",
    "MappingError",
    "NO_ROW_INSERTED",
    "PersistenceError",
    "ResultCursor",
    "SQLiteStore",
    "Selector",
    "SqlStatement",
    "TablespineError",
    "TablespineSettings",
    "WhereBuilder",
    "column",
    "configure_logging",
    "create",
    "create_from_settings",
    "database_registry",
    "describe",
    "entity",
    "get_logger",
    "get_settings",
    "is_entity",
    "transient",
    "__version__",
]
