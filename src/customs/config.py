"""Pydantic models for the export configuration file.

The configuration is an operator-trusted input: table names, column names
and filter predicates are pasted into SQL verbatim. Never build a config
from end-user input.

Examples
--------
Minimal YAML::

    trace_filters:
      - name: user_id
        match_columns: ["user_id", "userid"]
        source:
          db: petstore
          table: users
          column: id
          filter: region = 'EU'

    databases:
      petstore:
        tables:
          users:
            transforms:
              - column: email
                kind: email_hash
          user_pref_types: {}

    >>> config = load_config("config.yaml")
    >>> list(config.databases["petstore"].tables)
    ['users', 'user_pref_types']
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from customs.constants import (
    DEFAULT_FILTER,
    DEFAULT_FOREIGN_COLUMN,
    DEFAULT_LOCALE,
    TransformKind,
)
from customs.exceptions import ConfigError

__all__ = [
    "DatabaseConfig",
    "ExportConfig",
    "RelatedTableConfig",
    "TableConfig",
    "TraceFilterConfig",
    "TraceFilterSource",
    "TransformConfig",
    "load_config",
]


class _Model(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class TransformConfig(_Model):
    """One column rule."""

    column: str = Field(..., min_length=1, description="Column to transform")
    kind: TransformKind = Field(..., description="Transform kind")
    config: str | None = Field(None, description="First free-form parameter")
    config2: str | None = Field(None, description="Second free-form parameter")


class RelatedTableConfig(_Model):
    """Only export rows referencing a (filtered) row in another table.

    ``column`` lives on the exported table, ``foreign_column`` on ``table``.
    """

    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    foreign_column: str = DEFAULT_FOREIGN_COLUMN


class TableConfig(_Model):
    """Export settings for one table. Every field is optional."""

    order_column: str | None = None
    filter: str | None = Field(None, description="Raw SQL predicate")
    transforms: list[TransformConfig] = Field(default_factory=list)
    related_only: RelatedTableConfig | None = None

    @field_validator("transforms", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @property
    def row_filter(self) -> str:
        """Configured predicate, or the always-true predicate."""
        return self.filter or DEFAULT_FILTER


class TraceFilterSource(_Model):
    """Column whose filtered distinct values back a trace filter."""

    db: str = Field(..., min_length=1)
    table: str = Field(..., min_length=1)
    column: str = Field(..., min_length=1)
    filter: str = DEFAULT_FILTER


class TraceFilterConfig(_Model):
    """A named, reusable constraint joinable against any matching table."""

    name: str = Field(..., min_length=1)
    source: TraceFilterSource
    match_columns: list[str] = Field(default_factory=list)


class DatabaseConfig(_Model):
    """Tables to export from one database, in export order."""

    tables: dict[str, TableConfig] = Field(default_factory=dict)
    trace_filters: list[TraceFilterConfig] = Field(default_factory=list)

    @field_validator("tables", mode="before")
    @classmethod
    def _empty_tables(cls, value: Any) -> Any:
        # `users:` with no body parses as None; treat it as `users: {}`
        if isinstance(value, dict):
            return {name: ({} if body is None else body) for name, body in value.items()}
        return value

    @field_validator("trace_filters", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class ExportConfig(_Model):
    """Root configuration."""

    databases: dict[str, DatabaseConfig]
    trace_filters: list[TraceFilterConfig] = Field(default_factory=list)
    locale: str = DEFAULT_LOCALE

    @field_validator("trace_filters", mode="before")
    @classmethod
    def _none_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


def load_config(path: str | Path) -> ExportConfig:
    """
    Load and validate an export configuration file.

    Parameters
    ----------
    path : str | Path
        YAML file (``.yaml``/``.yml`` or any other suffix) or JSON file
        (``.json``)

    Returns
    -------
    ExportConfig
        Validated configuration

    Raises
    ------
    ConfigError
        If the file is missing, cannot be parsed, or violates the schema
    """
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Could not open config file: {path}")

    try:
        with path.open("r", encoding="utf-8") as fh:
            if path.suffix.lower() == ".json":
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping at the top level")

    try:
        return ExportConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}:\n{e}") from e
