"""Service surface over the analyzer, layer store, diff engine and DDL.

Every operation returns an ``OperationResult`` instead of raising, so any
RPC or HTTP layer can map it directly: ``success`` with ``data``, or a
failure with ``error`` (and ``not_found`` for unknown layer ids).

Usage:
    from schemascope.layers.store import LayerStore
    from schemascope.service import SchemaService

    store = LayerStore("./layers")
    store.load()
    service = SchemaService(store)

    result = service.diff_layers(base_id, draft_id)
    if result.success:
        sql = service.export_sql(result.data).data
"""

import logging
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ValidationError

from schemascope.errors import LayerNotFoundError, MalformedSchemaError, SchemascopeError
from schemascope.layers.ddl import generate_sql
from schemascope.layers.diff import compare_layers
from schemascope.layers.models import Layer, SchemaDiff
from schemascope.layers.store import LayerStore
from schemascope.schema.analyzer import analyze
from schemascope.schema.models import DiagnosticResult, SchemaSnapshot
from schemascope.schema.parser import normalize_tables, parse_payload

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OperationResult(BaseModel, Generic[T]):
    """Outcome of a service operation.

    Example:
        >>> OperationResult[bool](success=True, data=True).data
        True
    """

    success: bool
    data: T | None = None
    error: str | None = None
    not_found: bool = False

    @classmethod
    def ok(cls, data: T) -> "OperationResult[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, not_found: bool = False) -> "OperationResult[T]":
        return cls(success=False, error=error, not_found=not_found)


class SchemaService:
    """Diagnostics, layer management, diffing and SQL export."""

    def __init__(self, store: LayerStore):
        self._store = store

    @property
    def store(self) -> LayerStore:
        return self._store

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_diagnostics(
        self, schema: SchemaSnapshot | dict | list
    ) -> OperationResult[DiagnosticResult]:
        """Analyze a schema model or a raw schema payload."""
        try:
            snapshot = schema if isinstance(schema, SchemaSnapshot) else parse_payload(schema)
        except MalformedSchemaError as e:
            return OperationResult.fail(str(e))
        return OperationResult.ok(analyze(snapshot))

    # ------------------------------------------------------------------
    # Layers
    # ------------------------------------------------------------------

    def save_layer(self, layer: Layer | dict[str, Any]) -> OperationResult[Layer]:
        """Save a new layer or update an existing one.

        Primary-key flags are re-derived and duplicate foreign keys dropped
        before the layer is stored.
        """
        if not isinstance(layer, Layer):
            try:
                layer = Layer.model_validate(layer)
            except ValidationError as e:
                return OperationResult.fail(f"Invalid layer: {e}")

        layer = layer.model_copy(deep=True)
        normalize_tables(layer.tables)
        try:
            return OperationResult.ok(self._store.save(layer))
        except SchemascopeError as e:
            logger.error(f"Error saving layer: {e}")
            return OperationResult.fail(str(e))

    def import_schema(
        self,
        payload: Any,
        name: str = "Imported Schema",
        description: str | None = "Schema imported from JSON",
    ) -> OperationResult[Layer]:
        """Ingest a schema export and save it as a new layer."""
        try:
            snapshot = parse_payload(payload)
        except MalformedSchemaError as e:
            return OperationResult.fail(str(e))

        return self.save_layer(
            Layer(
                name=name,
                description=description,
                base_schema=snapshot.schemas[0] if snapshot.schemas else None,
                tables=snapshot.tables,
            )
        )

    def get_layer(self, layer_id: str) -> OperationResult[Layer]:
        layer = self._store.get(layer_id)
        if layer is None:
            return OperationResult.fail(str(LayerNotFoundError(layer_id)), not_found=True)
        return OperationResult.ok(layer)

    def list_layers(self) -> OperationResult[list[Layer]]:
        return OperationResult.ok(self._store.list())

    def delete_layer(self, layer_id: str) -> OperationResult[bool]:
        """Delete a layer; ``not_found`` is set when the id is unknown."""
        try:
            deleted = self._store.delete(layer_id)
        except SchemascopeError as e:
            logger.error(f"Error deleting layer: {e}")
            return OperationResult.fail(str(e))

        if not deleted:
            return OperationResult.fail(str(LayerNotFoundError(layer_id)), not_found=True)
        return OperationResult.ok(True)

    # ------------------------------------------------------------------
    # Diff and export
    # ------------------------------------------------------------------

    def diff_layers(self, base_id: str, draft_id: str) -> OperationResult[SchemaDiff]:
        """Diff two stored layers; ``not_found`` if either id is unknown."""
        base = self._store.get(base_id)
        if base is None:
            return OperationResult.fail(str(LayerNotFoundError(base_id)), not_found=True)

        draft = self._store.get(draft_id)
        if draft is None:
            return OperationResult.fail(str(LayerNotFoundError(draft_id)), not_found=True)

        return OperationResult.ok(compare_layers(base, draft))

    def export_sql(self, diff: SchemaDiff | dict[str, Any]) -> OperationResult[str]:
        """Render a diff (model or JSON payload) as DDL text."""
        if not isinstance(diff, SchemaDiff):
            try:
                diff = SchemaDiff.model_validate(diff)
            except ValidationError as e:
                return OperationResult.fail(f"Invalid diff: {e}")
        return OperationResult.ok(generate_sql(diff))
