"""Pydantic models for schemascope configuration."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator


class LayersSettings(BaseModel):
    """Where layer snapshots are stored."""

    dir: str = "./layers"


class DatabaseSettings(BaseModel):
    """Connection used by the ``introspect`` command."""

    url: str | None = None
    schema_name: str = Field(default="public", alias="schema")
    connect_timeout: int = 10
    excluded_tables: list[str] | None = None

    model_config = {"populate_by_name": True}


class LoggingSettings(BaseModel):
    """Root log level; names are case-insensitive."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class AppConfig(BaseModel):
    """Complete configuration from schemascope.toml."""

    layers: LayersSettings = Field(default_factory=LayersSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
