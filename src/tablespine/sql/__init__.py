"""Statement builder: entities and predicates in, ``SqlStatement`` out."""

from tablespine.sql.builder import (
    build_create_table,
    build_delete,
    build_delete_by_id,
    build_delete_where,
    build_insert,
    build_query_by_example,
    build_update,
    entity_to_key_values,
)
from tablespine.sql.selector import DbModelSelector, Selector
from tablespine.sql.statement import KeyValue, SqlStatement
from tablespine.sql.where import WhereBuilder

__all__ = [
    "DbModelSelector",
    "KeyValue",
    "Selector",
    "SqlStatement",
    "WhereBuilder",
    "build_create_table",
    "build_delete",
    "build_delete_by_id",
    "build_delete_where",
    "build_insert",
    "build_query_by_example",
    "build_update",
    "entity_to_key_values",
]
