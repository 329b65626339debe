"""Schema ingestion: strict validation of schema JSON and export rows.

Two input shapes are accepted:

1. The schema model itself (``{"tables": [...], "schemas": [...]}``), as
   produced by ``SchemaSnapshot.to_json_dict()`` or by the introspector.
2. Flat ``information_schema`` export rows, one per column, as dumped by a
   database export tool::

       [
           {"table_name": "orders", "column_name": "customer_id",
            "data_type": "integer", "is_nullable": "NO",
            "foreign_table": "customers", "foreign_column": "id"},
           ...
       ]

Both paths fail fast with ``MalformedSchemaError`` rather than returning a
partially populated model.

Usage:
    from schemascope.schema.parser import load_schema_file

    schema = load_schema_file("export.json")
"""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from schemascope.errors import MalformedSchemaError
from schemascope.schema.models import Column, ForeignKey, SchemaSnapshot, Table

# Keys every export row must carry
REQUIRED_ROW_KEYS = ("table_name", "column_name", "data_type")


def _format_validation_error(error: ValidationError) -> str:
    """Flatten pydantic errors into ``loc: msg`` lines."""
    lines = []
    for err in error.errors():
        loc = ".".join(str(part) for part in err["loc"])
        lines.append(f"{loc}: {err['msg']}")
    return "; ".join(lines)


def normalize_tables(tables: list[Table]) -> list[Table]:
    """Recompute derived column flags and drop duplicate foreign keys.

    ``Column.is_primary_key`` is derived from ``Table.primary_keys``;
    foreign keys are de-duplicated by ``(column, references)``.
    """
    for table in tables:
        pk_set = set(table.primary_keys)
        for column in table.columns:
            column.is_primary_key = column.name in pk_set

        seen: set[tuple[str, str]] = set()
        unique_fks: list[ForeignKey] = []
        for fk in table.foreign_keys:
            if fk.identity in seen:
                continue
            seen.add(fk.identity)
            unique_fks.append(fk)
        table.foreign_keys = unique_fks
    return tables


def parse_schema(payload: Any) -> SchemaSnapshot:
    """Validate a schema-model payload into a ``SchemaSnapshot``.

    Args:
        payload: Decoded JSON object with a ``tables`` list and optional
            ``schemas`` list.  A ``relationships`` key is ignored; it is
            always recomputed from the tables.

    Returns:
        Validated ``SchemaSnapshot``.

    Raises:
        MalformedSchemaError: If the payload is not an object or any table,
            column, foreign key, or index is missing a required field.
    """
    if not isinstance(payload, dict):
        raise MalformedSchemaError(
            f"Schema payload must be an object, got {type(payload).__name__}"
        )
    if "tables" not in payload:
        raise MalformedSchemaError("Schema payload is missing 'tables'")

    try:
        snapshot = SchemaSnapshot.model_validate(payload)
    except ValidationError as e:
        raise MalformedSchemaError(
            f"Invalid schema: {_format_validation_error(e)}"
        ) from e

    normalize_tables(snapshot.tables)

    if "schemas" not in payload:
        snapshot.schemas = sorted({t.schema_name for t in snapshot.tables}) or ["public"]

    return snapshot


def parse_export_rows(rows: Any) -> SchemaSnapshot:
    """Group flat export rows into a ``SchemaSnapshot``.

    Each row describes one column.  Rows for the same ``table_name`` are
    merged in order; a row with ``foreign_table`` and ``foreign_column``
    adds a foreign key on that column (duplicates suppressed).  A missing
    ``table_schema`` defaults to ``"public"``.

    Raises:
        MalformedSchemaError: If *rows* is not a list of objects or a row is
            missing one of ``table_name``, ``column_name``, ``data_type``.
    """
    if not isinstance(rows, list):
        raise MalformedSchemaError(
            f"Export must be a list of rows, got {type(rows).__name__}"
        )

    tables: dict[str, Table] = {}

    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise MalformedSchemaError(f"Row {i} is not an object")

        missing = [key for key in REQUIRED_ROW_KEYS if not row.get(key)]
        if missing:
            raise MalformedSchemaError(
                f"Row {i} is missing required field(s): {', '.join(missing)}"
            )

        table_name = row["table_name"]
        table = tables.get(table_name)
        if table is None:
            table = Table(
                name=table_name,
                schema_name=row.get("table_schema") or "public",
            )
            tables[table_name] = table

        column_name = row["column_name"]
        table.columns.append(
            Column(
                name=column_name,
                type=row["data_type"],
                nullable=row.get("is_nullable", "YES") == "YES",
                default=row.get("column_default"),
            )
        )

        if row.get("is_primary_key") and column_name not in table.primary_keys:
            table.primary_keys.append(column_name)

        if row.get("foreign_table") and row.get("foreign_column"):
            table.foreign_keys.append(
                ForeignKey(
                    column=column_name,
                    references=f"{row['foreign_table']}.{row['foreign_column']}",
                )
            )

    table_list = normalize_tables(list(tables.values()))
    schemas = sorted({t.schema_name for t in table_list}) or ["public"]
    return SchemaSnapshot(tables=table_list, schemas=schemas)


def parse_payload(payload: Any) -> SchemaSnapshot:
    """Dispatch on payload shape: list -> export rows, object -> schema model."""
    if isinstance(payload, list):
        return parse_export_rows(payload)
    return parse_schema(payload)


def load_schema_file(path: str | Path) -> SchemaSnapshot:
    """Load a schema from a JSON file.

    Raises:
        FileNotFoundError: If the file does not exist.
        MalformedSchemaError: If the file is not valid JSON or fails
            validation.
    """
    schema_path = Path(path)
    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")

    try:
        payload = json.loads(schema_path.read_text())
    except json.JSONDecodeError as e:
        raise MalformedSchemaError(f"{schema_path.name} is not valid JSON: {e}") from e

    return parse_payload(payload)
