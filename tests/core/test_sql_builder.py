"""Tests for tablespine.sql — WhereBuilder, Selector, DbModelSelector, build_*."""

from datetime import datetime

import pytest

from tablespine.errors import MappingError, PersistenceError
from tablespine.sql import (
    DbModelSelector,
    KeyValue,
    Selector,
    SqlStatement,
    WhereBuilder,
    build_create_table,
    build_delete,
    build_delete_by_id,
    build_delete_where,
    build_insert,
    build_query_by_example,
    build_update,
    entity_to_key_values,
)
from tests._support.models import Account, AuditEvent, Item, Kind, Tag


class TestSqlStatement:
    def test_args_accumulate(self):
        stmt = SqlStatement("SELECT ?")
        assert not stmt.has_args()
        stmt.add_arg(1)
        stmt.add_args([2, 3])
        assert stmt.args == [1, 2, 3]
        assert stmt.has_args()

    def test_str_is_sql(self):
        assert str(SqlStatement("SELECT 1")) == "SELECT 1"


class TestWhereBuilder:
    def test_single_condition(self):
        assert WhereBuilder.b("name", "=", "a").to_sql() == ('"name" = ?', ["a"])

    def test_and_or(self):
        wb = WhereBuilder.b("name", "=", "a").and_("qty", ">", 1).or_("qty", "<", 0)
        assert wb.to_sql() == ('"name" = ? AND "qty" > ? OR "qty" < ?', ["a", 1, 0])

    def test_operator_aliases(self):
        assert WhereBuilder.b("a", "==", 1).to_sql()[0] == '"a" = ?'
        assert WhereBuilder.b("a", "<>", 1).to_sql()[0] == '"a" != ?'
        assert WhereBuilder.b("a", "not  like", "x%").to_sql()[0] == '"a" NOT LIKE ?'

    def test_none_renders_is_null(self):
        assert WhereBuilder.b("price", "=", None).to_sql() == ('"price" IS NULL', [])
        assert WhereBuilder.b("price", "!=", None).to_sql() == ('"price" IS NOT NULL', [])

    def test_in(self):
        assert WhereBuilder.b("id", "in", [1, 2]).to_sql() == ('"id" IN (?, ?)', [1, 2])

    def test_in_rejects_scalar(self):
        with pytest.raises(ValueError):
            WhereBuilder.b("id", "in", "12")

    def test_between(self):
        assert WhereBuilder.b("qty", "between", (1, 5)).to_sql() == (
            '"qty" BETWEEN ? AND ?',
            [1, 5],
        )

    def test_between_needs_pair(self):
        with pytest.raises(ValueError):
            WhereBuilder.b("qty", "between", [1])

    def test_unknown_operator(self):
        with pytest.raises(ValueError, match="Unsupported operator"):
            WhereBuilder.b("qty", "~", 1)

    def test_values_converted(self):
        ts = datetime(2024, 1, 1)
        text, args = WhereBuilder.b("kind", "=", Kind.DELETED).and_("happened_at", ">", ts).to_sql()
        assert args == ["deleted", "2024-01-01T00:00:00"]

    def test_expr_raw_and_nested(self):
        inner = WhereBuilder.b("qty", "=", 1).or_("qty", "=", 2)
        wb = WhereBuilder.b("name", "=", "a").expr(inner).expr("length(name) > ?", 3)
        assert wb.to_sql() == (
            '"name" = ? AND ("qty" = ? OR "qty" = ?) AND length(name) > ?',
            ["a", 1, 2, 3],
        )

    def test_empty_builder_is_falsy(self):
        wb = WhereBuilder.b()
        assert not wb
        assert len(wb) == 0
        assert wb.to_sql() == ("", [])

    def test_len_counts_conditions(self):
        assert len(WhereBuilder.b("a", "=", 1).or_("b", "=", 2)) == 2


class TestSelector:
    def test_select_all(self):
        assert Selector.from_(Item).to_statement().sql == 'SELECT * FROM "item"'

    def test_full_clause_order(self):
        stmt = (
            Selector.from_(Item)
            .where("name", "like", "a%")
            .and_("qty", ">", 0)
            .order_by("id", desc=True)
            .order_by("name")
            .limit(10)
            .offset(20)
            .to_statement()
        )
        assert stmt.sql == (
            'SELECT * FROM "item" WHERE "name" LIKE ? AND "qty" > ? '
            'ORDER BY "id" DESC, "name" LIMIT 10 OFFSET 20'
        )
        assert stmt.args == ["a%", 0]

    def test_offset_without_limit(self):
        assert Selector.from_(Item).offset(5).to_statement().sql.endswith("LIMIT -1 OFFSET 5")

    def test_where_accepts_builder(self):
        stmt = Selector.from_(Item).where(WhereBuilder.b("qty", "=", 3)).to_statement()
        assert stmt.sql == 'SELECT * FROM "item" WHERE "qty" = ?'

    def test_with_limit_leaves_original(self):
        sel = Selector.from_(Item)
        limited = sel.with_limit(1)
        assert limited.to_statement().sql.endswith("LIMIT 1")
        assert "LIMIT" not in sel.to_statement().sql

    def test_unregistered_type(self):
        with pytest.raises(MappingError):
            Selector.from_(dict)


class TestDbModelSelector:
    def test_projection_group_having(self):
        stmt = (
            DbModelSelector.from_(Item)
            .select("name", "COUNT(*) AS n")
            .where("qty", ">", 0)
            .group_by("name")
            .having(WhereBuilder.b("COUNT(*)", ">", 1))
            .order_by("n", desc=True)
            .to_statement()
        )
        assert stmt.sql == (
            'SELECT "name", COUNT(*) AS n FROM "item" WHERE "qty" > ? '
            'GROUP BY "name" HAVING COUNT(*) > ? ORDER BY "n" DESC'
        )
        assert stmt.args == [0, 1]

    def test_without_columns_selects_all(self):
        assert DbModelSelector.from_(Item).to_statement().sql == 'SELECT * FROM "item"'

    def test_with_limit_keeps_projection(self):
        sel = DbModelSelector.from_(Item).select("name")
        assert sel.with_limit(1).to_statement().sql == 'SELECT "name" FROM "item" LIMIT 1'


class TestKeyValues:
    def test_auto_increment_key_omitted_when_empty(self):
        kvs = entity_to_key_values(Item(name="a", qty=2))
        assert kvs == [KeyValue("name", "a"), KeyValue("qty", 2)]

    def test_key_included_when_set(self):
        kvs = entity_to_key_values(Item(id=4, name="a"))
        assert kvs[0] == KeyValue("id", 4)

    def test_none_fields_skipped_and_values_converted(self):
        kvs = entity_to_key_values(AuditEvent(kind=Kind.DELETED, active=False))
        assert dict(kvs) == {"kind": "deleted", "priority": 1, "active": 0}

    def test_recomputed_each_call(self):
        item = Item(name="a")
        first = entity_to_key_values(item)
        item.name = "b"
        assert entity_to_key_values(item) != first


class TestBuildStatements:
    def test_insert(self):
        stmt = build_insert(Item(name="a", qty=2))
        assert stmt.sql == 'INSERT INTO "item" ("name", "qty") VALUES (?, ?)'
        assert stmt.args == ["a", 2]

    def test_insert_with_renamed_column(self):
        stmt = build_insert(Account(code="A", owner="bob"))
        assert '"owner_name"' in stmt.sql

    def test_update_by_id_writes_nulls(self):
        stmt = build_update(Item(id=3, name="a"))
        assert stmt.sql == (
            'UPDATE "item" SET "name" = ?, "qty" = ?, "price" = ? WHERE "id" = ?'
        )
        assert stmt.args == ["a", 0, None, 3]

    def test_update_where_with_columns(self):
        stmt = build_update(Item(name="z"), WhereBuilder.b("qty", "=", 0), columns=["name"])
        assert stmt.sql == 'UPDATE "item" SET "name" = ? WHERE "qty" = ?'
        assert stmt.args == ["z", 0]

    def test_update_unknown_column(self):
        with pytest.raises(PersistenceError, match="unknown"):
            build_update(Item(id=1), columns=["nope"])

    def test_update_without_id(self):
        with pytest.raises(PersistenceError, match="id value is null"):
            build_update(Item(name="a"))

    def test_delete_by_entity(self):
        stmt = build_delete(Item(id=9))
        assert stmt.sql == 'DELETE FROM "item" WHERE "id" = ?'
        assert stmt.args == [9]

    def test_delete_without_id(self):
        with pytest.raises(PersistenceError, match="id value is null"):
            build_delete(Item())

    def test_delete_by_id_converts(self):
        stmt = build_delete_by_id(Account, "A-1")
        assert stmt.sql == 'DELETE FROM "account" WHERE "code" = ?'
        assert stmt.args == ["A-1"]

    def test_delete_by_none_id(self):
        with pytest.raises(PersistenceError):
            build_delete_by_id(Item, None)

    def test_delete_where_all_rows(self):
        assert build_delete_where(Item).sql == 'DELETE FROM "item"'

    def test_create_table(self):
        stmt = build_create_table(Tag)
        assert stmt.sql == (
            'CREATE TABLE IF NOT EXISTS "tags" '
            '("id" INTEGER PRIMARY KEY AUTOINCREMENT, "label" TEXT NOT NULL UNIQUE)'
        )

    def test_query_by_example(self):
        text, args = build_query_by_example(Item(name="a", qty=2)).to_sql()
        assert text == '"name" = ? AND "qty" = ?'
        assert args == ["a", 2]
