"""Structural diff between two layers.

Pure logic -- compares table sets by name and, for tables present in both
layers, their columns (by name), foreign keys (by ``(column, references)``)
and indexes (by name).

A change to ``on_delete``/``on_update`` on an otherwise identical foreign
key is not reported, and a same-named index with different columns is not
reported as modified.

Usage:
    from schemascope.layers.diff import compare_layers

    diff = compare_layers(base_layer, draft_layer)
    if not diff.is_empty:
        print(generate_sql(diff))
"""

from typing import Protocol

from schemascope.layers.models import ColumnModification, SchemaDiff, TableModification
from schemascope.schema.models import Column, Table


class HasTables(Protocol):
    """Anything carrying a list of tables (``Layer``, ``SchemaSnapshot``)."""

    tables: list[Table]


def compare_columns(base: Column, draft: Column) -> ColumnModification | None:
    """Return the changed attributes of a column, or None if unchanged.

    Example:
        >>> mod = compare_columns(Column(name="a", type="int"), Column(name="a", type="bigint"))
        >>> (mod.old_type, mod.new_type)
        ('int', 'bigint')
        >>> compare_columns(Column(name="a", type="int"), Column(name="a", type="int")) is None
        True
    """
    changes: dict[str, object] = {}

    if base.type != draft.type:
        changes["old_type"] = base.type
        changes["new_type"] = draft.type

    if base.nullable != draft.nullable:
        changes["old_nullable"] = base.nullable
        changes["new_nullable"] = draft.nullable

    if base.default != draft.default:
        changes["old_default"] = base.default
        changes["new_default"] = draft.default

    if not changes:
        return None
    return ColumnModification(name=draft.name, **changes)


def compare_tables(base: Table, draft: Table) -> TableModification:
    """Compare two versions of the same table."""
    base_columns = {col.name: col for col in base.columns}
    draft_columns = {col.name: col for col in draft.columns}

    added_columns = [col for col in draft.columns if col.name not in base_columns]
    removed_columns = [col.name for col in base.columns if col.name not in draft_columns]

    modified_columns: list[ColumnModification] = []
    for col in draft.columns:
        base_col = base_columns.get(col.name)
        if base_col is None:
            continue
        col_mod = compare_columns(base_col, col)
        if col_mod is not None:
            modified_columns.append(col_mod)

    base_fks = {fk.identity for fk in base.foreign_keys}
    draft_fks = {fk.identity for fk in draft.foreign_keys}

    base_indexes = {idx.name for idx in base.indexes}
    draft_indexes = {idx.name for idx in draft.indexes}

    return TableModification(
        table_name=draft.name,
        added_columns=added_columns,
        removed_columns=removed_columns,
        modified_columns=modified_columns,
        added_foreign_keys=[fk for fk in draft.foreign_keys if fk.identity not in base_fks],
        removed_foreign_keys=[fk for fk in base.foreign_keys if fk.identity not in draft_fks],
        added_indexes=[idx for idx in draft.indexes if idx.name not in base_indexes],
        removed_indexes=[idx.name for idx in base.indexes if idx.name not in draft_indexes],
    )


def compare_layers(base: HasTables, draft: HasTables) -> SchemaDiff:
    """Compute the diff that turns *base* into *draft*.

    Returns:
        ``SchemaDiff`` with:

        - ``added``: full tables present only in *draft* (draft order)
        - ``removed``: names of tables present only in *base* (base order)
        - ``modified``: non-empty ``TableModification`` per shared table

    Comparing a layer with itself always yields an empty diff.
    """
    base_tables = {table.name: table for table in base.tables}
    draft_tables = {table.name: table for table in draft.tables}

    added: list[Table] = []
    modified: list[TableModification] = []

    for name, draft_table in draft_tables.items():
        base_table = base_tables.get(name)
        if base_table is None:
            added.append(draft_table)
            continue
        mod = compare_tables(base_table, draft_table)
        if mod.has_changes:
            modified.append(mod)

    removed = [name for name in base_tables if name not in draft_tables]

    return SchemaDiff(added=added, removed=removed, modified=modified)
