"""schemascope: relational schema diagnostics, layer diffs, and DDL synthesis.

Ingests a schema (tables, columns, foreign keys, indexes), reports
structural weaknesses, stores versioned snapshots ("layers"), diffs them,
and renders the diff as ordered DDL.

Usage:
    from schemascope import analyze, load_schema_file
    from schemascope import LayerStore, compare_layers, generate_sql
    from schemascope import SchemaService
"""

__version__ = "0.1.0"

# Errors
from schemascope.errors import (
    LayerNotFoundError,
    LayerStorageError,
    MalformedSchemaError,
    SchemascopeError,
)

# Schema
from schemascope.schema.analyzer import analyze
from schemascope.schema.graph import DependencyGraph
from schemascope.schema.models import (
    Column,
    DiagnosticResult,
    ForeignKey,
    Index,
    Relationship,
    SchemaSnapshot,
    Table,
)
from schemascope.schema.parser import load_schema_file, parse_payload

# Layers
from schemascope.layers.ddl import generate_sql
from schemascope.layers.diff import compare_layers
from schemascope.layers.models import Layer, SchemaDiff
from schemascope.layers.store import LayerStore

# Service
from schemascope.service import OperationResult, SchemaService

__all__ = [
    # Errors
    "SchemascopeError",
    "MalformedSchemaError",
    "LayerNotFoundError",
    "LayerStorageError",
    # Schema
    "analyze",
    "DependencyGraph",
    "Column",
    "ForeignKey",
    "Index",
    "Table",
    "Relationship",
    "SchemaSnapshot",
    "DiagnosticResult",
    "load_schema_file",
    "parse_payload",
    # Layers
    "Layer",
    "SchemaDiff",
    "LayerStore",
    "compare_layers",
    "generate_sql",
    # Service
    "SchemaService",
    "OperationResult",
]
