"""Schema diagnostics: orphans, cycles, type mismatches, missing indexes.

Pure logic -- no I/O, no database connections.  ``analyze()`` is a
deterministic function of its input and keeps no state between calls, so
it is safe to call concurrently.

Usage:
    from schemascope.schema.analyzer import analyze
    from schemascope.schema.parser import load_schema_file

    result = analyze(load_schema_file("export.json"))
    print(result.format_report())
"""

import math
from collections import Counter

from schemascope.schema.graph import DependencyGraph
from schemascope.schema.models import (
    DiagnosticResult,
    DiagnosticSummary,
    HealthFactors,
    MissingIndex,
    Relationship,
    SchemaSnapshot,
    Table,
    TableHealth,
    TypeMismatch,
)

# Canonical names for verbose PostgreSQL type spellings
TYPE_ALIASES: dict[str, str] = {
    "character varying": "varchar",
    "character": "char",
    "timestamp without time zone": "timestamp",
    "timestamp with time zone": "timestamptz",
    "time without time zone": "time",
    "time with time zone": "timetz",
    "double precision": "float8",
    "integer": "int4",
    "smallint": "int2",
    "bigint": "int8",
    "boolean": "bool",
    "user-defined": "custom",
}

ORPHAN_PENALTY = 20
CYCLE_PENALTY = 15
TYPE_MISMATCH_PENALTY = 25
MISSING_INDEX_PENALTY = 10
PRIMARY_KEY_BONUS = 5
INDEX_COVERAGE_BONUS = 5


def normalize_type(data_type: str) -> str:
    """Normalize a declared column type for comparison.

    Example:
        >>> normalize_type("Character Varying")
        'varchar'
        >>> normalize_type("  UUID ")
        'uuid'
    """
    normalized = data_type.lower().strip()
    return TYPE_ALIASES.get(normalized, normalized)


# ------------------------------------------------------------------
# Individual checks
# ------------------------------------------------------------------


def find_orphan_tables(
    tables: list[Table], relationships: list[Relationship]
) -> list[str]:
    """Tables with no outbound foreign keys and no inbound relationships."""
    referenced: set[str] = {rel.to_table for rel in relationships}
    return [
        table.name
        for table in tables
        if not table.foreign_keys and table.name not in referenced
    ]


def _dfs_cycle(
    graph: DependencyGraph,
    node: str,
    visited: set[str],
    on_stack: set[str],
    path: list[str],
) -> list[str] | None:
    """Depth-first search returning the first cycle reachable from *node*.

    Returns as soon as one cycle is found; remaining successors of the
    nodes on the current path are not explored.
    """
    visited.add(node)
    on_stack.add(node)
    path.append(node)

    for successor in graph.successors(node):
        if successor not in visited:
            cycle = _dfs_cycle(graph, successor, visited, on_stack, path)
            if cycle is not None:
                return cycle
        elif successor in on_stack:
            start = path.index(successor)
            return path[start:] + [successor]

    path.pop()
    on_stack.discard(node)
    return None


def find_circular_dependencies(graph: DependencyGraph) -> list[list[str]]:
    """Find foreign-key cycles, one per DFS root at most.

    Each cycle is closed (its first table is repeated at the end).  Cycles
    over the same set of tables are reported once, keeping the first found.
    """
    cycles: list[list[str]] = []
    visited: set[str] = set()

    for root in graph.nodes():
        if root in visited:
            continue
        cycle = _dfs_cycle(graph, root, visited, set(), [])
        if cycle is not None:
            cycles.append(cycle)

    unique: list[list[str]] = []
    seen: set[tuple[str, ...]] = set()
    for cycle in cycles:
        key = tuple(sorted(set(cycle)))
        if key in seen:
            continue
        seen.add(key)
        unique.append(cycle)
    return unique


def find_type_mismatches(tables: list[Table]) -> list[TypeMismatch]:
    """Foreign keys whose normalized column type differs from the target's.

    Foreign keys whose source or target column cannot be resolved are
    skipped.
    """
    by_name = {table.name: table for table in tables}
    mismatches: list[TypeMismatch] = []

    for table in tables:
        for fk in table.foreign_keys:
            referenced_table = by_name.get(fk.ref_table)
            if referenced_table is None:
                continue

            source = table.get_column(fk.column)
            target = referenced_table.get_column(fk.ref_column)
            if source is None or target is None:
                continue

            if normalize_type(source.type) != normalize_type(target.type):
                mismatches.append(
                    TypeMismatch(
                        table=table.name,
                        column=fk.column,
                        column_type=source.type,
                        referenced_table=fk.ref_table,
                        referenced_column=fk.ref_column,
                        referenced_type=target.type,
                    )
                )

    return mismatches


def find_missing_indexes(tables: list[Table]) -> list[MissingIndex]:
    """Foreign key columns not covered by any index and not a primary key.

    Primary key columns are assumed to be indexed by the database engine.
    """
    missing: list[MissingIndex] = []
    for table in tables:
        indexed: set[str] = {col for idx in table.indexes for col in idx.columns}
        for fk in table.foreign_keys:
            if fk.column in indexed or fk.column in table.primary_keys:
                continue
            missing.append(MissingIndex(table=table.name, column=fk.column))
    return missing


def calculate_health_scores(
    tables: list[Table],
    orphans: list[str],
    cycles: list[list[str]],
    type_mismatches: list[TypeMismatch],
    missing_indexes: list[MissingIndex],
) -> list[TableHealth]:
    """Score each table from 0 to 100.

    Deductions and bonuses are applied in a fixed order and the total is
    clamped once at the end.
    """
    orphan_set = set(orphans)
    cycle_members = {name for cycle in cycles for name in cycle}
    mismatch_tables = {tm.table for tm in type_mismatches}
    missing_counts = Counter(mi.table for mi in missing_indexes)

    scores: list[TableHealth] = []
    for table in tables:
        is_orphan = table.name in orphan_set
        in_cycle = table.name in cycle_members
        has_mismatch = table.name in mismatch_tables
        missing_count = missing_counts.get(table.name, 0)

        issues: list[str] = []
        score = 100

        if is_orphan:
            issues.append("Orphan table (no relationships)")
            score -= ORPHAN_PENALTY

        if in_cycle:
            issues.append("Part of circular dependency")
            score -= CYCLE_PENALTY

        if has_mismatch:
            issues.append("Foreign key type mismatch")
            score -= TYPE_MISMATCH_PENALTY

        if missing_count:
            issues.append(f"{missing_count} foreign key(s) without index")
            score -= MISSING_INDEX_PENALTY * missing_count

        if table.primary_keys:
            score += PRIMARY_KEY_BONUS

        if len(table.indexes) > len(table.foreign_keys):
            score += INDEX_COVERAGE_BONUS

        scores.append(
            TableHealth(
                table=table.name,
                score=max(0, min(100, score)),
                factors=HealthFactors(
                    indexed_fks=missing_count == 0,
                    cycles=in_cycle,
                    orphans=is_orphan,
                    type_mismatch=has_mismatch,
                ),
                issues=issues,
            )
        )

    return scores


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def analyze(schema: SchemaSnapshot) -> DiagnosticResult:
    """Run all diagnostic checks over *schema*.

    Never raises for dangling references: a foreign key whose target is
    missing is left out of the type-mismatch check but may still appear
    as a missing index or as part of a cycle.

    Examples:
        >>> from schemascope.schema.models import Table
        >>> result = analyze(SchemaSnapshot(tables=[Table(name="audit_log")]))
        >>> result.orphan_tables
        ['audit_log']
        >>> result.health_scores[0].score
        80
    """
    tables = schema.tables
    relationships = schema.relationships
    graph = DependencyGraph.from_relationships(
        [table.name for table in tables], relationships
    )

    orphans = find_orphan_tables(tables, relationships)
    cycles = find_circular_dependencies(graph)
    type_mismatches = find_type_mismatches(tables)
    missing_indexes = find_missing_indexes(tables)
    health_scores = calculate_health_scores(
        tables, orphans, cycles, type_mismatches, missing_indexes
    )

    total_issues = (
        len(orphans) + len(cycles) + len(type_mismatches) + len(missing_indexes)
    )
    average = (
        sum(h.score for h in health_scores) / len(health_scores)
        if health_scores
        else 0
    )

    return DiagnosticResult(
        orphan_tables=orphans,
        circular_dependencies=cycles,
        type_mismatches=type_mismatches,
        missing_indexes=missing_indexes,
        health_scores=health_scores,
        summary=DiagnosticSummary(
            total_tables=len(tables),
            total_relationships=len(relationships),
            total_issues=total_issues,
            # round half up
            average_health=math.floor(average + 0.5),
        ),
    )
