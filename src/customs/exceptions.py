"""Exception hierarchy for customs."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = [
    "ColumnNotFoundError",
    "ConfigError",
    "CustomsError",
    "TraceFilterError",
    "TransformConfigError",
]


class CustomsError(Exception):
    """Base class for all fatal export errors."""


class ConfigError(CustomsError):
    """Raised when the configuration file cannot be loaded or is invalid.

    Examples
    --------
    >>> try:
    ...     config = load_config("missing.yaml")
    ... except ConfigError as e:
    ...     print(f"Bad config: {e}")
    """


class ColumnNotFoundError(ConfigError):
    """Raised when a configured column does not exist in a table.

    Parameters
    ----------
    db_name : str
        Database the table lives in
    table_name : str
        Table that was searched
    column : str
        Column name that could not be resolved
    columns : Sequence[str]
        Every column the table actually has, in schema order
    """

    def __init__(
        self, db_name: str, table_name: str, column: str, columns: Sequence[str]
    ) -> None:
        self.db_name = db_name
        self.table_name = table_name
        self.column = column
        self.columns = list(columns)
        super().__init__(
            f"Failed to find column named {column!r} in {db_name}.{table_name}. "
            f"Columns: {self.columns}"
        )


class TransformConfigError(ConfigError):
    """Raised when a transform's config string cannot be used."""


class TraceFilterError(CustomsError):
    """Raised when a trace filter is referenced before it is materialized."""
