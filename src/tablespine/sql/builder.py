"""Turn entities and predicates into :class:`SqlStatement` objects.

Every function here is pure: it reads the entity's descriptor and field
values and returns SQL text plus bound args.  Nothing touches the store.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from tablespine.dialect import Dialect, SQLiteDialect
from tablespine.entity import EntityDescriptor, describe, describe_instance
from tablespine.errors import PersistenceError
from tablespine.sql.statement import KeyValue, SqlStatement
from tablespine.sql.where import WhereBuilder

_DEFAULT_DIALECT = SQLiteDialect()


def entity_to_key_values(entity: Any) -> list[KeyValue]:
    """Column/value pairs for every persisted field that carries a value.

    The primary key is included only when it has a value, so an
    auto-increment key is left for the engine to generate.
    """
    descriptor = describe_instance(entity)
    result: list[KeyValue] = []
    for col in descriptor.columns:
        if col.primary_key:
            if descriptor.has_id_value(entity):
                result.append(KeyValue(col.name, col.get_value(entity)))
            continue
        value = col.get_value(entity)
        if value is not None:
            result.append(KeyValue(col.name, value))
    return result


def _id_where(descriptor: EntityDescriptor, entity: Any) -> WhereBuilder:
    if not descriptor.has_id_value(entity):
        raise PersistenceError(
            f"this entity[{descriptor.entity_type.__qualname__}]'s id value is null"
        ).with_context(table=descriptor.table_name)
    return WhereBuilder.b(descriptor.id.name, "=", descriptor.id.get_value(entity))


def build_insert(entity: Any, dialect: Dialect = _DEFAULT_DIALECT) -> SqlStatement:
    descriptor = describe_instance(entity)
    table = dialect.quote(descriptor.table_name)
    key_values = entity_to_key_values(entity)
    if not key_values:
        return SqlStatement(f"INSERT INTO {table} DEFAULT VALUES")
    cols = ", ".join(dialect.quote(kv.key) for kv in key_values)
    sql = f"INSERT INTO {table} ({cols}) VALUES ({dialect.placeholders(len(key_values))})"
    return SqlStatement(sql, [kv.value for kv in key_values])


def build_update(
    entity: Any,
    where: WhereBuilder | None = None,
    columns: Sequence[str] | None = None,
    dialect: Dialect = _DEFAULT_DIALECT,
) -> SqlStatement:
    """``UPDATE`` every non-key column (or just ``columns``).

    Without ``where`` the row is addressed by the entity's own primary key.
    ``None`` field values are written as ``NULL``.
    """
    descriptor = describe_instance(entity)
    if where is None:
        where = _id_where(descriptor, entity)

    targets = [c for c in descriptor.columns if not c.primary_key]
    if columns is not None:
        wanted = set(columns)
        unknown = wanted - {c.name for c in targets}
        if unknown:
            raise PersistenceError(
                f"unknown or key columns for update: {sorted(unknown)}"
            ).with_context(table=descriptor.table_name)
        targets = [c for c in targets if c.name in wanted]
    if not targets:
        raise PersistenceError(
            f"nothing to update on {descriptor.entity_type.__qualname__}"
        ).with_context(table=descriptor.table_name)

    assignments = ", ".join(f"{dialect.quote(c.name)} = ?" for c in targets)
    statement = SqlStatement(
        f"UPDATE {dialect.quote(descriptor.table_name)} SET {assignments}",
        [c.get_value(entity) for c in targets],
    )
    if where:
        text, args = where.to_sql()
        statement.sql += f" WHERE {text}"
        statement.add_args(args)
    return statement


def build_delete(entity: Any, dialect: Dialect = _DEFAULT_DIALECT) -> SqlStatement:
    descriptor = describe_instance(entity)
    return build_delete_where(descriptor.entity_type, _id_where(descriptor, entity), dialect)


def build_delete_by_id(
    entity_type: type,
    id_value: Any,
    dialect: Dialect = _DEFAULT_DIALECT,
) -> SqlStatement:
    descriptor = describe(entity_type)
    if id_value is None:
        raise PersistenceError(
            f"this entity[{entity_type.__qualname__}]'s id value is null"
        ).with_context(table=descriptor.table_name)
    where = WhereBuilder.b(descriptor.id.name, "=", descriptor.id.to_db(id_value))
    return build_delete_where(entity_type, where, dialect)


def build_delete_where(
    entity_type: type,
    where: WhereBuilder | None = None,
    dialect: Dialect = _DEFAULT_DIALECT,
) -> SqlStatement:
    descriptor = describe(entity_type)
    statement = SqlStatement(f"DELETE FROM {dialect.quote(descriptor.table_name)}")
    if where:
        text, args = where.to_sql()
        statement.sql += f" WHERE {text}"
        statement.add_args(args)
    return statement


def build_create_table(entity_type: type, dialect: Dialect = _DEFAULT_DIALECT) -> SqlStatement:
    descriptor = describe(entity_type)
    # primary key first, then the rest in field order
    ordered = [descriptor.id] + [c for c in descriptor.columns if not c.primary_key]
    body = ", ".join(c.ddl(dialect) for c in ordered)
    return SqlStatement(
        f"CREATE TABLE IF NOT EXISTS {dialect.quote(descriptor.table_name)} ({body})"
    )


def build_query_by_example(entity: Any) -> WhereBuilder:
    """``col = value`` for every field of ``entity`` that carries a value."""
    where = WhereBuilder()
    for kv in entity_to_key_values(entity):
        where.and_(kv.key, "=", kv.value)
    return where


__all__ = [
    "build_create_table",
    "build_delete",
    "build_delete_by_id",
    "build_delete_where",
    "build_insert",
    "build_query_by_example",
    "build_update",
    "entity_to_key_values",
]
