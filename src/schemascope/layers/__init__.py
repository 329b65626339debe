"""Layer snapshots, structural diffs, and DDL generation.

Usage:
    from schemascope.layers import LayerStore, compare_layers, generate_sql
"""

from schemascope.layers.ddl import generate_sql, generate_statements
from schemascope.layers.diff import compare_layers
from schemascope.layers.models import (
    ColumnModification,
    Layer,
    SchemaDiff,
    TableModification,
)
from schemascope.layers.store import LayerStore, generate_layer_id

__all__ = [
    "Layer",
    "SchemaDiff",
    "TableModification",
    "ColumnModification",
    "LayerStore",
    "generate_layer_id",
    "compare_layers",
    "generate_sql",
    "generate_statements",
]
