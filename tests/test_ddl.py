"""Tests for DDL generation."""

from schemascope.layers.ddl import (
    alter_column_sql,
    alter_table_sql,
    create_table_sql,
    format_column,
    generate_sql,
    generate_statements,
)
from schemascope.layers.diff import compare_layers
from schemascope.layers.models import (
    ColumnModification,
    Layer,
    SchemaDiff,
    TableModification,
)
from schemascope.schema.models import Column, ForeignKey, Index, Table


def _new_table() -> Table:
    return Table(
        name="new_t",
        columns=[
            Column(name="id", type="integer", nullable=False),
            Column(name="parent_id", type="integer"),
        ],
        primary_keys=["id"],
        foreign_keys=[
            ForeignKey(column="parent_id", references="parents.id", on_delete="CASCADE")
        ],
        indexes=[Index(name="new_t_parent_idx", columns=["parent_id"])],
    )


def _index_of(statements: list[str], prefix: str) -> int:
    for i, statement in enumerate(statements):
        if statement.startswith(prefix):
            return i
    raise AssertionError(f"no statement starts with {prefix!r}")


# ------------------------------------------------------------------
# Statement rendering
# ------------------------------------------------------------------


class TestFormatColumn:
    """Verify column definitions."""

    def test_type_uppercased(self) -> None:
        assert format_column(Column(name="email", type="text")) == "email TEXT"

    def test_not_null_and_default(self) -> None:
        column = Column(name="status", type="varchar", nullable=False, default="'new'")
        assert format_column(column) == "status VARCHAR NOT NULL DEFAULT 'new'"


class TestCreateTable:
    """Verify CREATE TABLE rendering."""

    def test_columns_and_primary_key(self) -> None:
        assert create_table_sql(_new_table()) == (
            "CREATE TABLE new_t (\n"
            "  id INTEGER NOT NULL,\n"
            "  parent_id INTEGER,\n"
            "  PRIMARY KEY (id)\n"
            ");"
        )

    def test_foreign_keys_not_inlined(self) -> None:
        assert "REFERENCES" not in create_table_sql(_new_table())


class TestAlterColumn:
    """Verify per-column ALTER statements."""

    def test_order_type_nullability_default(self) -> None:
        mod = ColumnModification(
            name="code",
            old_type="int",
            new_type="bigint",
            old_nullable=True,
            new_nullable=False,
            old_default=None,
            new_default="0",
        )

        assert alter_column_sql("items", mod) == [
            "ALTER TABLE items ALTER COLUMN code TYPE bigint;",
            "ALTER TABLE items ALTER COLUMN code SET NOT NULL;",
            "ALTER TABLE items ALTER COLUMN code SET DEFAULT 0;",
        ]

    def test_drop_not_null(self) -> None:
        mod = ColumnModification(name="note", old_nullable=False, new_nullable=True)
        assert alter_column_sql("items", mod) == [
            "ALTER TABLE items ALTER COLUMN note DROP NOT NULL;"
        ]

    def test_drop_default(self) -> None:
        mod = ColumnModification(name="status", old_default="'new'", new_default=None)
        assert alter_column_sql("items", mod) == [
            "ALTER TABLE items ALTER COLUMN status DROP DEFAULT;"
        ]

    def test_no_changes(self) -> None:
        assert alter_column_sql("items", ColumnModification(name="x")) == []


class TestAlterTable:
    """Verify statement order for a modified table."""

    def test_order(self) -> None:
        mod = TableModification(
            table_name="orders",
            added_columns=[Column(name="note", type="text")],
            removed_columns=["legacy"],
            modified_columns=[
                ColumnModification(name="total", old_type="int", new_type="numeric")
            ],
            added_foreign_keys=[ForeignKey(column="shop_id", references="shops.id")],
            removed_foreign_keys=[ForeignKey(column="store_id", references="stores.id")],
            added_indexes=[Index(name="orders_shop_idx", columns=["shop_id"])],
            removed_indexes=["orders_store_idx"],
        )

        assert alter_table_sql(mod) == [
            "ALTER TABLE orders ADD COLUMN note TEXT;",
            "ALTER TABLE orders DROP COLUMN legacy;",
            "ALTER TABLE orders ALTER COLUMN total TYPE numeric;",
            "ALTER TABLE orders ADD CONSTRAINT orders_shop_id_fkey\n"
            "  FOREIGN KEY (shop_id) REFERENCES shops(id);",
            "ALTER TABLE orders DROP CONSTRAINT IF EXISTS orders_store_id_fkey;",
            "CREATE INDEX orders_shop_idx ON orders (shop_id);",
            "DROP INDEX IF EXISTS orders_store_idx;",
        ]


# ------------------------------------------------------------------
# Whole-diff ordering
# ------------------------------------------------------------------


class TestGenerateStatements:
    """Verify cross-table statement ordering."""

    def test_drop_before_create_and_fk_after_create(self) -> None:
        diff = SchemaDiff(removed=["old_t"], added=[_new_table()])
        statements = generate_statements(diff)

        drop = _index_of(statements, "DROP TABLE IF EXISTS old_t")
        create = _index_of(statements, "CREATE TABLE new_t")
        fk = _index_of(statements, "ALTER TABLE new_t ADD CONSTRAINT new_t_parent_id_fkey")

        assert drop < create < fk

    def test_fk_clauses(self) -> None:
        statements = generate_statements(SchemaDiff(added=[_new_table()]))

        assert (
            "ALTER TABLE new_t ADD CONSTRAINT new_t_parent_id_fkey\n"
            "  FOREIGN KEY (parent_id) REFERENCES parents(id) ON DELETE CASCADE;"
        ) in statements

    def test_indexes_of_added_tables_last(self) -> None:
        statements = generate_statements(SchemaDiff(added=[_new_table()]))
        assert statements[-1] == "CREATE INDEX new_t_parent_idx ON new_t (parent_id);"

    def test_fks_deferred_until_all_tables_created(self) -> None:
        a = Table(
            name="a",
            columns=[Column(name="b_id", type="int")],
            foreign_keys=[ForeignKey(column="b_id", references="b.id")],
        )
        b = Table(name="b", columns=[Column(name="id", type="int")])
        statements = generate_statements(SchemaDiff(added=[a, b]))

        assert _index_of(statements, "CREATE TABLE b") < _index_of(
            statements, "ALTER TABLE a ADD CONSTRAINT"
        )

    def test_empty_diff(self) -> None:
        assert generate_statements(SchemaDiff()) == []
        assert generate_sql(SchemaDiff()) == ""


class TestGenerateSql:
    """Verify the rendered script."""

    def test_users_sessions_scenario(self) -> None:
        users = Table(
            name="users",
            columns=[
                Column(name="id", type="uuid", nullable=False),
                Column(name="email", type="text", nullable=False),
            ],
            primary_keys=["id"],
        )
        users_v2 = users.model_copy(deep=True)
        users_v2.columns.append(Column(name="phone", type="text"))
        sessions = Table(
            name="sessions",
            columns=[
                Column(name="id", type="uuid", nullable=False),
                Column(name="user_id", type="uuid", nullable=False),
            ],
            primary_keys=["id"],
            foreign_keys=[ForeignKey(column="user_id", references="users.id")],
        )

        diff = compare_layers(
            Layer(name="A", tables=[users]), Layer(name="B", tables=[users_v2, sessions])
        )
        sql = generate_sql(diff)

        assert sql == "\n\n".join(
            [
                "CREATE TABLE sessions (\n"
                "  id UUID NOT NULL,\n"
                "  user_id UUID NOT NULL,\n"
                "  PRIMARY KEY (id)\n"
                ");",
                "ALTER TABLE users ADD COLUMN phone TEXT;",
                "ALTER TABLE sessions ADD CONSTRAINT sessions_user_id_fkey\n"
                "  FOREIGN KEY (user_id) REFERENCES users(id);",
            ]
        )

    def test_diff_from_wire_payload(self) -> None:
        """A diff parsed from JSON renders the same as the in-memory model."""
        diff = SchemaDiff(
            modified=[
                TableModification(
                    table_name="items",
                    modified_columns=[
                        ColumnModification(name="qty", old_type="int", new_type="bigint")
                    ],
                )
            ]
        )
        restored = SchemaDiff.model_validate(diff.to_json_dict())

        assert generate_sql(restored) == generate_sql(diff)
        assert generate_sql(restored) == "ALTER TABLE items ALTER COLUMN qty TYPE bigint;"
