"""Pydantic models for the schema model and diagnostics.

This module contains schema-domain models:
- Schema models: Column, ForeignKey, Index, Table, Relationship,
  SchemaSnapshot
- Diagnostic models: TypeMismatch, MissingIndex, HealthFactors,
  TableHealth, DiagnosticSummary, DiagnosticResult
- Stats model: TableStats

Field names are snake_case; JSON keys are camelCase via field aliases.
Dump with ``model_dump(mode="json", by_alias=True)`` to produce the wire
format.  Both spellings are accepted on input.

Layer and diff models live in schemascope.layers.models.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

RelationshipKind = Literal["one-to-one", "one-to-many", "many-to-many"]


class WireModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Dump to a JSON-ready dict using wire (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True)


# ============================================================================
# Schema Models
# ============================================================================


class Column(WireModel):
    """A table column.

    Example:
        >>> col = Column(name="id", type="uuid")
        >>> col.nullable
        True
    """

    name: str
    type: str
    nullable: bool = True
    default: str | None = None
    is_primary_key: bool = Field(default=False, alias="isPrimaryKey")


class ForeignKey(WireModel):
    """A foreign key owned by a single column.

    ``references`` is encoded as ``table.column``.

    Example:
        >>> fk = ForeignKey(column="user_id", references="users.id")
        >>> fk.ref_table, fk.ref_column
        ('users', 'id')
    """

    column: str
    references: str
    on_delete: str | None = Field(default=None, alias="onDelete")
    on_update: str | None = Field(default=None, alias="onUpdate")

    @property
    def ref_table(self) -> str:
        return self.references.split(".", 1)[0]

    @property
    def ref_column(self) -> str:
        parts = self.references.split(".", 1)
        return parts[1] if len(parts) > 1 else ""

    @property
    def identity(self) -> tuple[str, str]:
        """Stable identity used for de-duplication and diffing."""
        return (self.column, self.references)


class Index(WireModel):
    """A table index."""

    name: str
    columns: list[str] = Field(default_factory=list)
    unique: bool = False


class Table(WireModel):
    """A table with its columns, foreign keys, and indexes."""

    name: str
    schema_name: str = Field(default="public", alias="schema")
    columns: list[Column] = Field(default_factory=list)
    foreign_keys: list[ForeignKey] = Field(default_factory=list, alias="foreignKeys")
    indexes: list[Index] = Field(default_factory=list)
    primary_keys: list[str] = Field(default_factory=list, alias="primaryKeys")
    row_count: int | None = Field(default=None, alias="rowCount")
    size_bytes: int | None = Field(default=None, alias="sizeBytes")

    def get_column(self, name: str) -> Column | None:
        """Return the column called *name*, or None."""
        for column in self.columns:
            if column.name == name:
                return column
        return None


class Relationship(WireModel):
    """A relationship derived from one foreign key."""

    from_table: str = Field(alias="from")
    to_table: str = Field(alias="to")
    from_column: str = Field(alias="fromColumn")
    to_column: str = Field(alias="toColumn")
    kind: RelationshipKind = Field(default="one-to-many", alias="type")


class SchemaSnapshot(WireModel):
    """Complete schema model.

    ``relationships`` is derived from ``tables`` on every access and is
    never stored; a ``relationships`` key in input data is ignored.
    """

    tables: list[Table] = Field(default_factory=list)
    schemas: list[str] = Field(default_factory=lambda: ["public"])

    @computed_field  # type: ignore[prop-decorator]
    @property
    def relationships(self) -> list[Relationship]:
        return derive_relationships(self.tables)

    def get_table(self, name: str) -> Table | None:
        """Return the table called *name*, or None."""
        for table in self.tables:
            if table.name == name:
                return table
        return None


# ============================================================================
# Relationship derivation
# ============================================================================


def _is_one_to_one(table: Table, column: str) -> bool:
    """FK column is a PK or covered by a single-column unique index."""
    if column in table.primary_keys:
        return True
    return any(idx.unique and idx.columns == [column] for idx in table.indexes)


def is_junction_table(table: Table) -> bool:
    """Return True if *table* looks like a many-to-many junction table.

    A junction table has at least two foreign keys and no more than two
    columns beyond its foreign-key columns.
    """
    fk_count = len(table.foreign_keys)
    return fk_count >= 2 and len(table.columns) <= fk_count + 2


def derive_relationships(tables: list[Table]) -> list[Relationship]:
    """Derive one relationship per foreign key, in table order.

    Example:
        >>> users = Table(name="users", primary_keys=["id"])
        >>> posts = Table(
        ...     name="posts",
        ...     foreign_keys=[ForeignKey(column="user_id", references="users.id")],
        ... )
        >>> [r.kind for r in derive_relationships([users, posts])]
        ['one-to-many']
    """
    relationships: list[Relationship] = []
    for table in tables:
        for fk in table.foreign_keys:
            kind: RelationshipKind = (
                "one-to-one" if _is_one_to_one(table, fk.column) else "one-to-many"
            )
            relationships.append(
                Relationship(
                    from_table=table.name,
                    to_table=fk.ref_table,
                    from_column=fk.column,
                    to_column=fk.ref_column,
                    kind=kind,
                )
            )
    return relationships


# ============================================================================
# Diagnostic Models
# ============================================================================


class TypeMismatch(WireModel):
    """A foreign key whose column type differs from the referenced column."""

    table: str
    column: str
    column_type: str = Field(alias="columnType")
    referenced_table: str = Field(alias="referencedTable")
    referenced_column: str = Field(alias="referencedColumn")
    referenced_type: str = Field(alias="referencedType")


class MissingIndex(WireModel):
    """A foreign key column with no covering index."""

    table: str
    column: str
    reason: str = "Foreign key column not indexed"


class HealthFactors(WireModel):
    indexed_fks: bool = True
    cycles: bool = False
    orphans: bool = False
    type_mismatch: bool = False


class TableHealth(WireModel):
    """Health score for a single table."""

    table: str
    score: int
    factors: HealthFactors = Field(default_factory=HealthFactors)
    issues: list[str] = Field(default_factory=list)


class DiagnosticSummary(WireModel):
    total_tables: int = Field(default=0, alias="totalTables")
    total_relationships: int = Field(default=0, alias="totalRelationships")
    total_issues: int = Field(default=0, alias="totalIssues")
    average_health: int = Field(default=0, alias="averageHealth")


class DiagnosticResult(WireModel):
    """Result of ``analyze()``.

    Example:
        >>> result = DiagnosticResult()
        >>> result.format_report()
        'No issues found (0 tables)'
    """

    orphan_tables: list[str] = Field(default_factory=list, alias="orphanTables")
    circular_dependencies: list[list[str]] = Field(
        default_factory=list, alias="circularDependencies"
    )
    type_mismatches: list[TypeMismatch] = Field(
        default_factory=list, alias="typeMismatches"
    )
    missing_indexes: list[MissingIndex] = Field(
        default_factory=list, alias="missingIndexes"
    )
    health_scores: list[TableHealth] = Field(default_factory=list, alias="healthScores")
    summary: DiagnosticSummary = Field(default_factory=DiagnosticSummary)

    def format_report(self) -> str:
        """Format the diagnostics as a human-readable report."""
        if self.summary.total_issues == 0:
            return f"No issues found ({self.summary.total_tables} tables)"

        lines = [
            f"{self.summary.total_issues} issue(s) across "
            f"{self.summary.total_tables} tables "
            f"(average health {self.summary.average_health})"
        ]

        if self.orphan_tables:
            lines.append(f"\n  Orphan tables ({len(self.orphan_tables)}):")
            for table in self.orphan_tables:
                lines.append(f"    - {table}")

        if self.circular_dependencies:
            lines.append(f"\n  Circular dependencies ({len(self.circular_dependencies)}):")
            for cycle in self.circular_dependencies:
                lines.append(f"    - {' -> '.join(cycle)}")

        if self.type_mismatches:
            lines.append(f"\n  Type mismatches ({len(self.type_mismatches)}):")
            for tm in self.type_mismatches:
                lines.append(
                    f"    - {tm.table}.{tm.column} ({tm.column_type}) -> "
                    f"{tm.referenced_table}.{tm.referenced_column} ({tm.referenced_type})"
                )

        if self.missing_indexes:
            lines.append(f"\n  Missing indexes ({len(self.missing_indexes)}):")
            for mi in self.missing_indexes:
                lines.append(f"    - {mi.table}.{mi.column}")

        return "\n".join(lines)


# ============================================================================
# Stats Model
# ============================================================================


class TableStats(WireModel):
    """Activity and size statistics for a table."""

    table_name: str = Field(alias="tableName")
    row_count: int = Field(default=0, alias="rowCount")
    size_bytes: int = Field(default=0, alias="sizeBytes")
    index_size_bytes: int = Field(default=0, alias="indexSizeBytes")
    sequential_scans: int = Field(default=0, alias="sequentialScans")
    index_scans: int = Field(default=0, alias="indexScans")
    tuples_inserted: int = Field(default=0, alias="tuplesInserted")
    tuples_updated: int = Field(default=0, alias="tuplesUpdated")
    tuples_deleted: int = Field(default=0, alias="tuplesDeleted")
