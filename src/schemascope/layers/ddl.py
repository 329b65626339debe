"""DDL generation from a layer diff.

Renders a ``SchemaDiff`` as an ordered list of PostgreSQL DDL statements.
Nothing is executed -- the output is text only.

Statement order:
1. ``DROP TABLE`` for removed tables
2. ``CREATE TABLE`` for added tables (columns and primary key only)
3. ``ALTER TABLE`` / index changes for modified tables
4. Foreign keys for added tables, after every ``CREATE TABLE`` so
   references between new tables resolve
5. Indexes for added tables

Usage:
    from schemascope.layers.ddl import generate_sql

    print(generate_sql(compare_layers(base, draft)))
"""

from schemascope.layers.models import ColumnModification, SchemaDiff, TableModification
from schemascope.schema.models import Column, ForeignKey, Index, Table

STATEMENT_SEPARATOR = "\n\n"


def constraint_name(table_name: str, column: str) -> str:
    """Name of the FK constraint owned by *column*.

    Example:
        >>> constraint_name("orders", "customer_id")
        'orders_customer_id_fkey'
    """
    return f"{table_name}_{column}_fkey"


def format_column(column: Column) -> str:
    """Render a column definition: ``name TYPE [NOT NULL] [DEFAULT expr]``.

    Example:
        >>> format_column(Column(name="email", type="text", nullable=False))
        'email TEXT NOT NULL'
    """
    definition = f"{column.name} {column.type.upper()}"

    if not column.nullable:
        definition += " NOT NULL"

    if column.default:
        definition += f" DEFAULT {column.default}"

    return definition


def create_table_sql(table: Table) -> str:
    """CREATE TABLE with columns and primary key; FKs and indexes are separate."""
    lines = [f"  {format_column(col)}" for col in table.columns]

    if table.primary_keys:
        lines.append(f"  PRIMARY KEY ({', '.join(table.primary_keys)})")

    body = ",\n".join(lines)
    return f"CREATE TABLE {table.name} (\n{body}\n);"


def drop_table_sql(table_name: str) -> str:
    return f"DROP TABLE IF EXISTS {table_name} CASCADE;"


def add_foreign_key_sql(table_name: str, fk: ForeignKey) -> str:
    """ALTER TABLE ... ADD CONSTRAINT ... FOREIGN KEY, with optional actions."""
    sql = f"ALTER TABLE {table_name} ADD CONSTRAINT {constraint_name(table_name, fk.column)}\n"
    sql += f"  FOREIGN KEY ({fk.column}) REFERENCES {fk.ref_table}({fk.ref_column})"

    if fk.on_delete:
        sql += f" ON DELETE {fk.on_delete}"

    if fk.on_update:
        sql += f" ON UPDATE {fk.on_update}"

    return sql + ";"


def drop_foreign_key_sql(table_name: str, fk: ForeignKey) -> str:
    return (
        f"ALTER TABLE {table_name} DROP CONSTRAINT IF EXISTS "
        f"{constraint_name(table_name, fk.column)};"
    )


def create_index_sql(table_name: str, index: Index) -> str:
    """Example:
    >>> create_index_sql("users", Index(name="users_email_key", columns=["email"], unique=True))
    'CREATE UNIQUE INDEX users_email_key ON users (email);'
    """
    unique = "UNIQUE " if index.unique else ""
    return f"CREATE {unique}INDEX {index.name} ON {table_name} ({', '.join(index.columns)});"


def drop_index_sql(index_name: str) -> str:
    return f"DROP INDEX IF EXISTS {index_name};"


def alter_column_sql(table_name: str, mod: ColumnModification) -> list[str]:
    """Type change, then nullability flip, then default change."""
    prefix = f"ALTER TABLE {table_name} ALTER COLUMN {mod.name}"
    statements: list[str] = []

    if mod.type_changed and mod.new_type and mod.new_type != mod.old_type:
        statements.append(f"{prefix} TYPE {mod.new_type};")

    if mod.nullable_changed and mod.new_nullable is not None and mod.new_nullable != mod.old_nullable:
        action = "DROP NOT NULL" if mod.new_nullable else "SET NOT NULL"
        statements.append(f"{prefix} {action};")

    if mod.default_changed and mod.new_default != mod.old_default:
        if mod.new_default:
            statements.append(f"{prefix} SET DEFAULT {mod.new_default};")
        else:
            statements.append(f"{prefix} DROP DEFAULT;")

    return statements


def alter_table_sql(mod: TableModification) -> list[str]:
    """Statements for one modified table, in dependency-safe order."""
    table = mod.table_name
    statements: list[str] = []

    for col in mod.added_columns:
        statements.append(f"ALTER TABLE {table} ADD COLUMN {format_column(col)};")

    for col_name in mod.removed_columns:
        statements.append(f"ALTER TABLE {table} DROP COLUMN {col_name};")

    for col_mod in mod.modified_columns:
        statements.extend(alter_column_sql(table, col_mod))

    for fk in mod.added_foreign_keys:
        statements.append(add_foreign_key_sql(table, fk))

    for fk in mod.removed_foreign_keys:
        statements.append(drop_foreign_key_sql(table, fk))

    for index in mod.added_indexes:
        statements.append(create_index_sql(table, index))

    for index_name in mod.removed_indexes:
        statements.append(drop_index_sql(index_name))

    return statements


def generate_statements(diff: SchemaDiff) -> list[str]:
    """Render *diff* as an ordered list of DDL statements.

    Drops come before creates so same-named objects never collide, and
    foreign keys on new tables are added only after all new tables exist.
    """
    statements: list[str] = []

    for table_name in diff.removed:
        statements.append(drop_table_sql(table_name))

    for table in diff.added:
        statements.append(create_table_sql(table))

    for mod in diff.modified:
        statements.extend(alter_table_sql(mod))

    for table in diff.added:
        for fk in table.foreign_keys:
            statements.append(add_foreign_key_sql(table.name, fk))

    for table in diff.added:
        for index in table.indexes:
            statements.append(create_index_sql(table.name, index))

    return statements


def generate_sql(diff: SchemaDiff) -> str:
    """Render *diff* as DDL text, statements separated by a blank line.

    Example:
        >>> generate_sql(SchemaDiff(removed=["legacy"]))
        'DROP TABLE IF EXISTS legacy CASCADE;'
    """
    return STATEMENT_SEPARATOR.join(generate_statements(diff))
