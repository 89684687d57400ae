"""Schema introspection from a single sample row."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from loguru import logger

from customs.constants import DEFAULT_ORDER_COLUMN
from customs.db.engine import run_sql
from customs.exceptions import ColumnNotFoundError

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

    from customs.db.dialect import SqlDialect

__all__ = ["TableInfo"]


@dataclass(frozen=True)
class TableInfo:
    """
    Introspected schema of one table.

    Column order and declared types come verbatim from the result metadata
    of ``SELECT * ... LIMIT 1``, independent of any configured filter.

    Attributes
    ----------
    db_name : str
        Database (schema) the table lives in
    table_name : str
        Table name
    column_names : list[str]
        Columns in schema order
    column_types : list[Any]
        DBAPI type code per column (``None`` where the driver reports none)
    columns_by_name : dict[str, int]
        Column name to position in ``column_names``
    row_count : int
        Rows matching the export query; filled in by the exporter
    """

    db_name: str
    table_name: str
    column_names: list[str]
    column_types: list[Any]
    columns_by_name: dict[str, int] = field(default_factory=dict)
    row_count: int = 0

    def __post_init__(self) -> None:
        if not self.columns_by_name:
            object.__setattr__(
                self,
                "columns_by_name",
                {name: i for i, name in enumerate(self.column_names)},
            )

    @classmethod
    def fetch(
        cls, conn: Connection, dialect: SqlDialect, db_name: str, table_name: str
    ) -> TableInfo | None:
        """
        Introspect a table.

        Parameters
        ----------
        conn : Connection
            Export connection
        dialect : SqlDialect
            Quoting helper for the connection
        db_name : str
            Database the table lives in
        table_name : str
            Table to introspect

        Returns
        -------
        TableInfo | None
            Schema information, or None when the table has no rows (there is
            nothing to export)
        """
        sql = f"SELECT * FROM {dialect.table(db_name, table_name)} LIMIT 1"
        result = run_sql(conn, sql)
        names = list(result.keys())
        description = result.cursor.description if result.cursor else None
        types = [col[1] for col in description] if description else [None] * len(names)
        row = result.first()
        if row is None:
            return None

        logger.debug(f"{db_name}.{table_name} columns: {names}")
        return cls(
            db_name=db_name,
            table_name=table_name,
            column_names=names,
            column_types=types,
        )

    @property
    def qualified_name(self) -> str:
        return f"{self.db_name}.{self.table_name}"

    def has_column(self, column_name: str) -> bool:
        return column_name in self.columns_by_name

    def column_index(self, column_name: str) -> int:
        """
        Position of a column in exported rows.

        Raises
        ------
        ColumnNotFoundError
            If the table has no such column; the message lists every known
            column
        """
        try:
            return self.columns_by_name[column_name]
        except KeyError:
            raise ColumnNotFoundError(
                self.db_name, self.table_name, column_name, self.column_names
            ) from None

    def order_column(self, configured: str | None = None) -> str:
        """Configured column, else ``id`` when present, else the first column."""
        if configured:
            self.column_index(configured)
            return configured
        if self.has_column(DEFAULT_ORDER_COLUMN):
            return DEFAULT_ORDER_COLUMN
        return self.column_names[0]

    def with_row_count(self, row_count: int) -> TableInfo:
        return replace(self, row_count=row_count)
