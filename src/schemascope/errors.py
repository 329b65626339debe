"""Exception hierarchy for schemascope.

Analysis never raises for unresolved references -- those are omitted from
the affected report category.  The exceptions below cover the three failure
kinds that do surface to callers:

- ``MalformedSchemaError``: ingested schema JSON is missing required fields
- ``LayerNotFoundError``: a layer id does not resolve
- ``LayerStorageError``: layer persistence I/O failed
"""


class SchemascopeError(Exception):
    """Base class for all schemascope errors."""

    pass


class MalformedSchemaError(SchemascopeError):
    """Raised when an ingested schema payload fails validation."""

    pass


class LayerNotFoundError(SchemascopeError):
    """Raised when a layer id is not present in the store."""

    def __init__(self, layer_id: str):
        self.layer_id = layer_id
        super().__init__(f"Layer not found: {layer_id}")


class LayerStorageError(SchemascopeError):
    """Raised when a layer cannot be written to or removed from disk."""

    pass
