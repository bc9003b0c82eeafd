"""
Entity metadata — how a dataclass maps onto a table.

Every persisted type is registered once with :func:`entity`.  Registration
walks the dataclass fields a single time and freezes the result into an
:class:`EntityDescriptor` (table name, ordered columns, primary key and
value converters) that both the statement builder and row hydration read.
Nothing is reflected at query time.

Manifesto:
    - **Explicit registration:** ``@entity`` on a dataclass, nothing implicit
    - **Built once:** Descriptors are computed at import, read-only afterwards
    - **One mutable bit:** The verified-exists flag, lock-guarded, set-only

Examples:
    >>> from dataclasses import dataclass
    >>> @entity(table="item")
    ... @dataclass
    ... class Item:
    ...     id: int | None = None
    ...     name: str = column("", unique=True)
    >>> d = describe(Item)
    >>> d.table_name, [c.name for c in d.columns]
    ('item', ['id', 'name'])
    >>> d.id.auto_increment
    True

Guardrails:
    ❌ DON'T: Map fields of arbitrary object types
    ✅ DO: Stick to int, float, str, bool, bytes, datetime, date, Decimal, Enum

    ❌ DON'T: Reset the verified flag after a drop
    ✅ DO: Clear the registry (or restart) to re-probe the catalog

Tags:
    entity, metadata, mapping, dataclass, tablespine
"""

from __future__ import annotations

import dataclasses
import enum
import re
import threading
import types
import typing
from collections.abc import Callable
from dataclasses import MISSING, dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any, TypeVar, Union

from tablespine.dialect import Dialect, SQLiteDialect
from tablespine.errors import MappingError

T = TypeVar("T")

_COLUMN_KEY = "tablespine.column"
_TRANSIENT_KEY = "tablespine.transient"


# ── Type adapters ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class _TypeAdapter:
    sql_type: str
    to_db: Callable[[Any], Any]
    from_db: Callable[[Any], Any]


def _bool_from_db(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


def _datetime_from_db(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _date_from_db(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _str_from_db(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


_ADAPTERS: dict[type, _TypeAdapter] = {
    bool: _TypeAdapter("INTEGER", lambda v: 1 if v else 0, _bool_from_db),
    int: _TypeAdapter("INTEGER", int, int),
    float: _TypeAdapter("REAL", float, float),
    str: _TypeAdapter("TEXT", str, _str_from_db),
    bytes: _TypeAdapter("BLOB", bytes, bytes),
    datetime: _TypeAdapter("TEXT", datetime.isoformat, _datetime_from_db),
    date: _TypeAdapter("TEXT", date.isoformat, _date_from_db),
    Decimal: _TypeAdapter("TEXT", str, lambda v: Decimal(str(v))),
}


def _enum_adapter(enum_type: type[enum.Enum]) -> _TypeAdapter:
    values = [member.value for member in enum_type]
    sql_type = "INTEGER" if values and all(isinstance(v, int) for v in values) else "TEXT"
    return _TypeAdapter(sql_type, lambda v: v.value, enum_type)


def _adapter_for(python_type: type) -> _TypeAdapter | None:
    if python_type in _ADAPTERS:
        return _ADAPTERS[python_type]
    if isinstance(python_type, type) and issubclass(python_type, enum.Enum):
        return _enum_adapter(python_type)
    return None


def to_db_value(value: Any) -> Any:
    """Convert an arbitrary Python value to something sqlite3 can bind."""
    if value is None:
        return None
    if isinstance(value, enum.Enum):
        return value.value
    # datetime before date: datetime is a date subclass
    for python_type in (bool, datetime, date, Decimal):
        if isinstance(value, python_type):
            return _ADAPTERS[python_type].to_db(value)
    return value


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    origin = typing.get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in typing.get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            return args[0], True
    return annotation, False


# ── Column options ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ColumnOptions:
    name: str | None = None
    nullable: bool = True
    unique: bool = False
    primary_key: bool = False
    auto_increment: bool | None = None


def column(
    default: Any = MISSING,
    *,
    default_factory: Any = MISSING,
    name: str | None = None,
    nullable: bool = True,
    unique: bool = False,
    primary_key: bool = False,
    auto_increment: bool | None = None,
) -> Any:
    """Declare a dataclass field with column options.

    Usage:
        name: str = column("", unique=True, nullable=False)
        code: str = column(name="item_code", primary_key=True)
    """
    options = ColumnOptions(
        name=name,
        nullable=nullable,
        unique=unique,
        primary_key=primary_key,
        auto_increment=auto_increment,
    )
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={_COLUMN_KEY: options},
    )


def transient(default: Any = MISSING, *, default_factory: Any = MISSING) -> Any:
    """Declare a dataclass field that is never persisted."""
    return dataclasses.field(
        default=default,
        default_factory=default_factory,
        metadata={_TRANSIENT_KEY: True},
    )


# ── Descriptors ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ColumnDescriptor:
    """One persisted field."""

    field_name: str
    name: str
    python_type: type
    sql_type: str
    nullable: bool
    unique: bool
    primary_key: bool
    auto_increment: bool
    _adapter: _TypeAdapter = dataclasses.field(repr=False, compare=False)

    def to_db(self, value: Any) -> Any:
        return None if value is None else self._adapter.to_db(value)

    def from_db(self, value: Any) -> Any:
        return None if value is None else self._adapter.from_db(value)

    def get_value(self, obj: Any) -> Any:
        """Read the field from ``obj`` and convert it for binding."""
        return self.to_db(getattr(obj, self.field_name))

    def set_value(self, obj: Any, db_value: Any) -> None:
        object.__setattr__(obj, self.field_name, self.from_db(db_value))

    def ddl(self, dialect: Dialect) -> str:
        if self.primary_key:
            if self.auto_increment:
                return f"{dialect.quote(self.name)} {dialect.auto_increment()}"
            return f"{dialect.quote(self.name)} {self.sql_type} PRIMARY KEY"
        parts = [dialect.quote(self.name), self.sql_type]
        if not self.nullable:
            parts.append("NOT NULL")
        if self.unique:
            parts.append("UNIQUE")
        return " ".join(parts)


class EntityDescriptor:
    """
    Static mapping of one dataclass onto one table.

    The verified-exists flag is recorded per owning database (the token of
    the :class:`~tablespine.database.EntityDatabase` that probed it), so one
    type used against two databases is probed once in each.  It is set-only.
    """

    def __init__(
        self,
        entity_type: type,
        table_name: str,
        columns: list[ColumnDescriptor],
    ) -> None:
        self.entity_type = entity_type
        self.table_name = table_name
        self.columns = columns
        self.id = next(c for c in columns if c.primary_key)
        self._by_name = {c.name: c for c in columns}
        self._init_fields = {
            f.name for f in dataclasses.fields(entity_type) if f.init
        }
        self._verified: set[str] = set()
        self._lock = threading.Lock()

    # -- Verified-exists flag ----------------------------------------------

    def is_verified(self, owner: str) -> bool:
        with self._lock:
            return owner in self._verified

    def mark_verified(self, owner: str) -> None:
        with self._lock:
            self._verified.add(owner)

    # -- Columns -----------------------------------------------------------

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnDescriptor | None:
        return self._by_name.get(name)

    # -- Primary key -------------------------------------------------------

    def get_id_value(self, obj: Any) -> Any:
        return getattr(obj, self.id.field_name)

    def has_id_value(self, obj: Any) -> bool:
        value = self.get_id_value(obj)
        if value is None or value == "":
            return False
        if self.id.auto_increment and isinstance(value, int) and value == 0:
            return False
        return True

    def set_id_value(self, obj: Any, value: Any) -> None:
        self.id.set_value(obj, value)

    # -- Construction ------------------------------------------------------

    def new_instance(self, row: dict[str, Any]) -> Any:
        """Build an entity from a column-name → stored-value mapping.

        Columns absent from ``row`` keep their dataclass defaults.
        """
        kwargs: dict[str, Any] = {}
        late: list[tuple[ColumnDescriptor, Any]] = []
        for col in self.columns:
            if col.name not in row:
                continue
            if col.field_name in self._init_fields:
                kwargs[col.field_name] = col.from_db(row[col.name])
            else:
                late.append((col, row[col.name]))
        obj = self.entity_type(**kwargs)
        for col, value in late:
            col.set_value(obj, value)
        return obj

    def __repr__(self) -> str:
        return f"EntityDescriptor({self.entity_type.__qualname__} -> {self.table_name!r})"


# ── Registration ─────────────────────────────────────────────────────────

_descriptors: dict[type, EntityDescriptor] = {}
_descriptors_lock = threading.Lock()


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def _build_column(
    entity_type: type,
    f: dataclasses.Field,
    annotation: Any,
    is_pk: bool,
) -> ColumnDescriptor:
    options: ColumnOptions = f.metadata.get(_COLUMN_KEY, ColumnOptions())
    python_type, _ = _unwrap_optional(annotation)
    adapter = _adapter_for(python_type)
    if adapter is None:
        raise MappingError(
            f"Unsupported type {annotation!r} for field {entity_type.__qualname__}.{f.name}",
            entity_type=entity_type,
        )

    auto_increment = False
    if is_pk:
        auto_increment = (
            options.auto_increment
            if options.auto_increment is not None
            else python_type is int
        )
        if auto_increment and python_type not in (int, str):
            raise MappingError(
                f"Auto-increment primary key {entity_type.__qualname__}.{f.name} "
                "must be int or str",
                entity_type=entity_type,
            )

    return ColumnDescriptor(
        field_name=f.name,
        name=options.name or f.name,
        python_type=python_type,
        sql_type=adapter.sql_type,
        nullable=options.nullable,
        unique=options.unique,
        primary_key=is_pk,
        auto_increment=auto_increment,
        _adapter=adapter,
    )


def _build_descriptor(entity_type: type, table: str | None, id_field: str) -> EntityDescriptor:
    if not dataclasses.is_dataclass(entity_type):
        raise MappingError(
            f"{entity_type.__qualname__} must be a dataclass to be registered",
            entity_type=entity_type,
        )

    hints = typing.get_type_hints(entity_type)
    persisted = [
        f for f in dataclasses.fields(entity_type)
        if not f.metadata.get(_TRANSIENT_KEY)
    ]

    marked = [
        f.name for f in persisted
        if f.metadata.get(_COLUMN_KEY, ColumnOptions()).primary_key
    ]
    if len(marked) > 1:
        raise MappingError(
            f"{entity_type.__qualname__} declares more than one primary key: {marked}",
            entity_type=entity_type,
        )
    if marked:
        pk_name = marked[0]
    elif any(f.name == id_field for f in persisted):
        pk_name = id_field
    else:
        raise MappingError(
            f"{entity_type.__qualname__} has no primary key field {id_field!r}",
            entity_type=entity_type,
        )

    columns = [
        _build_column(entity_type, f, hints[f.name], f.name == pk_name)
        for f in persisted
    ]
    return EntityDescriptor(
        entity_type,
        table or _snake_case(entity_type.__name__),
        columns,
    )


def entity(
    cls: type[T] | None = None,
    *,
    table: str | None = None,
    id: str = "id",  # noqa: A002
) -> Any:
    """Register a dataclass as a persisted entity.

    Works bare (``@entity``) or with options (``@entity(table="items")``).
    Re-registering a class replaces its descriptor.
    """

    def register(target: type[T]) -> type[T]:
        descriptor = _build_descriptor(target, table, id)
        with _descriptors_lock:
            _descriptors[target] = descriptor
        return target

    if cls is not None:
        return register(cls)
    return register


def describe(entity_type: type) -> EntityDescriptor:
    """Return the descriptor registered for ``entity_type``."""
    with _descriptors_lock:
        descriptor = _descriptors.get(entity_type)
    if descriptor is None:
        raise MappingError(
            f"{getattr(entity_type, '__qualname__', entity_type)!r} is not a registered entity",
            entity_type=entity_type if isinstance(entity_type, type) else None,
        )
    return descriptor


def describe_instance(obj: Any) -> EntityDescriptor:
    return describe(type(obj))


def is_entity(entity_type: Any) -> bool:
    with _descriptors_lock:
        return entity_type in _descriptors


__all__ = [
    "ColumnDescriptor",
    "ColumnOptions",
    "EntityDescriptor",
    "column",
    "describe",
    "describe_instance",
    "entity",
    "is_entity",
    "to_db_value",
    "transient",
]
