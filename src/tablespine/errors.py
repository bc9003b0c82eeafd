"""
Structured error types for tablespine.

Every failure that crosses the orchestrator boundary is a
:class:`TablespineError`.  Store execution failures, cursor conversion
failures and binding-id batch failures all surface as the single
:class:`PersistenceError` kind, carrying the original driver exception as
``cause`` so callers never have to catch ``sqlite3`` types directly.

Manifesto:
    - **One persistence kind:** Callers catch ``PersistenceError``, not driver errors
    - **Rich context:** Errors carry database, table and SQL for logging
    - **Error chaining:** The original exception is preserved as ``cause``
    - **Programming errors stay distinct:** Bad mappings and bad config are
      not store failures and are never wrapped

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────┐
        │                     TablespineError                          │
        │            (category, context, cause)                        │
        ├─────────────────────────────────────────────────────────────┤
        │                                                              │
        │  PersistenceError    ConfigError         MappingError        │
        │  (DATABASE)          (CONFIG)            (VALIDATION)        │
        │                                                              │
        └─────────────────────────────────────────────────────────────┘

Examples:
    Wrapping a driver error:

    >>> import sqlite3
    >>> try:
    ...     raise sqlite3.OperationalError("no such table: item")
    ... except sqlite3.Error as e:
    ...     err = PersistenceError(str(e), cause=e).with_context(table="item")
    >>> err.context.table
    'item'
    >>> err.category.value
    'DATABASE'

Guardrails:
    ❌ DON'T: Let ``sqlite3.Error`` escape from the orchestrator
    ✅ DO: Wrap it in ``PersistenceError(..., cause=e)``

    ❌ DON'T: Wrap MappingError/ConfigError in PersistenceError
    ✅ DO: Let them propagate as-is

Tags:
    error-handling, exception-hierarchy, error-context, tablespine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    DATABASE = "DATABASE"         # Store execution, cursor conversion
    CONFIG = "CONFIG"             # Missing or invalid configuration
    VALIDATION = "VALIDATION"     # Entity mapping / registration problems
    INTERNAL = "INTERNAL"         # Bugs, unexpected state


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only the fields that are set are serialized by :meth:`to_dict`, so an
    error raised deep in the store carries exactly what is known at the
    point of failure.

    Attributes:
        database: Logical database name (``DatabaseConfig.db_name``)
        table: Table the failing statement targeted
        entity_type: Qualified name of the mapped dataclass
        sql: SQL text that failed
        metadata: Additional key-value pairs
    """

    database: str | None = None
    table: str | None = None
    entity_type: str | None = None
    sql: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["database", "table", "entity_type", "sql"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class TablespineError(Exception):
    """
    Base exception for all tablespine errors.

    Subclasses set ``default_category``; callers may override it per
    instance.  ``cause`` is chained as ``__cause__`` so tracebacks show the
    original driver exception.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> TablespineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise PersistenceError("insert failed").with_context(
                table="item",
                sql="INSERT INTO item ...",
            )
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class PersistenceError(TablespineError):
    """Store execution, cursor conversion or batch binding failure."""

    default_category = ErrorCategory.DATABASE


class ConfigError(TablespineError):
    """Configuration error.  Never a store failure."""

    default_category = ErrorCategory.CONFIG


class MappingError(TablespineError):
    """A type is not registered, or cannot be mapped onto a table."""

    default_category = ErrorCategory.VALIDATION

    def __init__(self, message: str, *, entity_type: type | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        if entity_type is not None:
            self.context.entity_type = entity_type.__qualname__


def wrap_persistence_error(
    exc: BaseException,
    *,
    sql: str | None = None,
    database: str | None = None,
) -> PersistenceError:
    """Translate an arbitrary store exception into :class:`PersistenceError`.

    An exception that already is a ``PersistenceError`` is returned unchanged
    so that nested wrapping never hides the original cause.
    """
    if isinstance(exc, PersistenceError):
        return exc
    error = PersistenceError(str(exc) or exc.__class__.__name__, cause=exc)
    if sql is not None:
        error.context.sql = sql
    if database is not None:
        error.context.database = database
    return error


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "TablespineError",
    "PersistenceError",
    "ConfigError",
    "MappingError",
    "wrap_persistence_error",
]
