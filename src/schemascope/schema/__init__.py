"""Schema model, ingestion, dependency graph, diagnostics and introspection.

Usage:
    from schemascope.schema import analyze, load_schema_file
    from schemascope.schema import DependencyGraph, SchemaIntrospector
"""

from schemascope.schema.analyzer import analyze, normalize_type
from schemascope.schema.graph import DependencyGraph
from schemascope.schema.introspector import SchemaIntrospector
from schemascope.schema.models import (
    Column,
    DiagnosticResult,
    ForeignKey,
    Index,
    MissingIndex,
    Relationship,
    SchemaSnapshot,
    Table,
    TableHealth,
    TableStats,
    TypeMismatch,
    derive_relationships,
    is_junction_table,
)
from schemascope.schema.parser import (
    load_schema_file,
    parse_export_rows,
    parse_payload,
    parse_schema,
)

__all__ = [
    "analyze",
    "normalize_type",
    "DependencyGraph",
    "SchemaIntrospector",
    "Column",
    "ForeignKey",
    "Index",
    "Table",
    "Relationship",
    "SchemaSnapshot",
    "DiagnosticResult",
    "TypeMismatch",
    "MissingIndex",
    "TableHealth",
    "TableStats",
    "derive_relationships",
    "is_junction_table",
    "load_schema_file",
    "parse_export_rows",
    "parse_payload",
    "parse_schema",
]
