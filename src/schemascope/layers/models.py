"""Pydantic models for layers and layer diffs."""

from datetime import datetime, timezone
from typing import Annotated, Any

from pydantic import (
    Field,
    SerializerFunctionWrapHandler,
    StringConstraints,
    field_validator,
    model_serializer,
)

from schemascope.schema.models import Column, ForeignKey, Index, Table, WireModel

# Layer ids double as file names in the layers directory.
LAYER_ID_PATTERN = r"^[A-Za-z0-9_-]+$"


class Layer(WireModel):
    """A named, timestamped snapshot of a schema's tables.

    ``id``, ``created_at`` and ``updated_at`` are assigned by
    ``LayerStore.save()``.  Ids are limited to letters, digits, ``_`` and
    ``-``; timestamps without a timezone are taken as UTC.

    Example:
        >>> layer = Layer(name="baseline")
        >>> layer.id is None
        True
    """

    id: Annotated[str, StringConstraints(pattern=LAYER_ID_PATTERN)] | None = None
    name: str
    description: str | None = None
    base_schema: str | None = Field(default=None, alias="baseSchema")
    tables: list[Table] = Field(default_factory=list)
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class ColumnModification(WireModel):
    """Changed attributes of a column present in both layers.

    Only the changed ``old_*``/``new_*`` pairs are set; unset pairs are
    left out of the serialized form.
    """

    name: str
    old_type: str | None = Field(default=None, alias="oldType")
    new_type: str | None = Field(default=None, alias="newType")
    old_nullable: bool | None = Field(default=None, alias="oldNullable")
    new_nullable: bool | None = Field(default=None, alias="newNullable")
    old_default: str | None = Field(default=None, alias="oldDefault")
    new_default: str | None = Field(default=None, alias="newDefault")

    @model_serializer(mode="wrap")
    def _omit_unchanged(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        for field_name, field in type(self).model_fields.items():
            if field_name == "name" or field_name in self.model_fields_set:
                continue
            data.pop(field_name, None)
            if field.alias:
                data.pop(field.alias, None)
        return data

    @property
    def type_changed(self) -> bool:
        return "new_type" in self.model_fields_set

    @property
    def nullable_changed(self) -> bool:
        return "new_nullable" in self.model_fields_set

    @property
    def default_changed(self) -> bool:
        return "new_default" in self.model_fields_set or "old_default" in self.model_fields_set


class TableModification(WireModel):
    """Structural changes to a table present in both layers."""

    table_name: str = Field(alias="tableName")
    added_columns: list[Column] = Field(default_factory=list, alias="addedColumns")
    removed_columns: list[str] = Field(default_factory=list, alias="removedColumns")
    modified_columns: list[ColumnModification] = Field(
        default_factory=list, alias="modifiedColumns"
    )
    added_foreign_keys: list[ForeignKey] = Field(
        default_factory=list, alias="addedForeignKeys"
    )
    removed_foreign_keys: list[ForeignKey] = Field(
        default_factory=list, alias="removedForeignKeys"
    )
    added_indexes: list[Index] = Field(default_factory=list, alias="addedIndexes")
    removed_indexes: list[str] = Field(default_factory=list, alias="removedIndexes")

    @property
    def has_changes(self) -> bool:
        """True if any of the change lists is non-empty."""
        return bool(
            self.added_columns
            or self.removed_columns
            or self.modified_columns
            or self.added_foreign_keys
            or self.removed_foreign_keys
            or self.added_indexes
            or self.removed_indexes
        )


class SchemaDiff(WireModel):
    """Structural delta from a base layer to a draft layer.

    Example:
        >>> SchemaDiff().is_empty
        True
    """

    added: list[Table] = Field(default_factory=list)
    removed: list[str] = Field(default_factory=list)
    modified: list[TableModification] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)

    @property
    def change_count(self) -> int:
        return len(self.added) + len(self.removed) + len(self.modified)
