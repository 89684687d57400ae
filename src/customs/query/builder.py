"""Compose the count and select statements for one exported table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from customs.config import TableConfig
from customs.constants import DEFAULT_FILTER
from customs.db.table_info import TableInfo
from customs.query.join_filter import JoinFilter

if TYPE_CHECKING:
    from customs.config import DatabaseConfig
    from customs.db.dialect import SqlDialect
    from customs.query.trace_filter import TraceFilterList, TraceFilterSession

__all__ = ["QueryBuilder", "TableQuery"]

# Alias suffix for the related-only subquery and the trace joins inside it
RELATED_SCOPE = "related"


@dataclass(frozen=True)
class TableQuery:
    """
    Fully composed export query for one table.

    Attributes
    ----------
    info : TableInfo
        Introspected schema of the exported table
    source : str
        FROM target: the table, or a derived table applying its row filter
    join_filter : JoinFilter
        Trace filter and related-table joins with their predicates
    order_column : str
        Column rows are ordered by
    dialect : SqlDialect
        Quoting helper
    """

    info: TableInfo
    source: str
    join_filter: JoinFilter
    order_column: str
    dialect: SqlDialect

    @property
    def from_where(self) -> str:
        parts = [f"FROM {self.source}"]
        joins = self.join_filter.join_string()
        if joins:
            parts.append(joins)
        parts.append(f"WHERE {self.join_filter.filter_string()}")
        return " ".join(parts)

    def count_sql(self) -> str:
        return f"SELECT COUNT(*) {self.from_where}"

    def select_sql(self) -> str:
        table = self.dialect.quote(self.info.table_name)
        order = self.dialect.column(self.info.table_name, self.order_column)
        return f"SELECT {table}.* {self.from_where} ORDER BY {order} ASC"


class QueryBuilder:
    """
    Builds :class:`TableQuery` objects for the tables of one database.

    Parameters
    ----------
    session : TraceFilterSession
        Connection, dialect and trace filter materialization state
    db_name : str
        Database being exported
    database : DatabaseConfig
        Its configuration; consulted for related tables' row filters
    """

    def __init__(
        self, session: TraceFilterSession, db_name: str, database: DatabaseConfig
    ) -> None:
        self.session = session
        self.db_name = db_name
        self.database = database

    @property
    def dialect(self) -> SqlDialect:
        return self.session.dialect

    def filtered_source(self, table_name: str, row_filter: str) -> str:
        """
        Table reference with ``row_filter`` applied.

        The predicate runs inside a derived table aliased to the bare table
        name, so its unqualified columns cannot clash with joined columns
        and outer references of the form ``table.column`` keep working.
        """
        table = self.dialect.table(self.db_name, table_name)
        if row_filter.strip() == DEFAULT_FILTER:
            return table
        return f"(SELECT * FROM {table} WHERE {row_filter}) AS {self.dialect.quote(table_name)}"

    def related_keys(
        self, table_name: str, column: str, row_filter: str, join_filter: JoinFilter
    ) -> str:
        """
        Distinct values of ``column`` over the filtered rows of a related table.

        Joining the distinct keys rather than the table itself lets every
        exported row match at most once, even when ``column`` is not unique.
        """
        parts = [
            f"SELECT DISTINCT {self.dialect.column(table_name, column)} "
            f"AS {self.dialect.quote(column)}",
            f"FROM {self.filtered_source(table_name, row_filter)}",
        ]
        joins = join_filter.join_string()
        if joins:
            parts.append(joins)
        parts.append(f"WHERE {join_filter.filter_string()}")
        return " ".join(parts)

    def introspect(self, table_name: str) -> TableInfo | None:
        return TableInfo.fetch(self.session.conn, self.dialect, self.db_name, table_name)

    def build(
        self, table_name: str, table: TableConfig, trace_filters: TraceFilterList
    ) -> TableQuery | None:
        """
        Compose the export query for one table.

        Parameters
        ----------
        table_name : str
            Table to export
        table : TableConfig
            Its configuration
        trace_filters : TraceFilterList
            Global and database-scoped filters, already materialized

        Returns
        -------
        TableQuery | None
            The query, or None when the table (or its related table) is empty

        Raises
        ------
        ColumnNotFoundError
            If the order column or a related-table column does not exist
        """
        info = self.introspect(table_name)
        if info is None:
            logger.warning(f"Table is empty, not writing; {self.db_name}.{table_name}")
            return None

        jf = trace_filters.build_join_filter(info, self.session)

        related = table.related_only
        if related is not None:
            related_info = self.introspect(related.table)
            if related_info is None:
                logger.warning(
                    f"Related table {self.db_name}.{related.table} is empty, "
                    f"not writing; {self.db_name}.{table_name}"
                )
                return None
            info.column_index(related.column)
            related_info.column_index(related.foreign_column)

            related_table = self.database.tables.get(related.table) or TableConfig()
            related_jf = JoinFilter()
            if trace_filters:
                related_jf = trace_filters.build_join_filter(
                    related_info, self.session, RELATED_SCOPE
                )
            keys = self.related_keys(
                related.table, related.foreign_column, related_table.row_filter, related_jf
            )
            alias = self.dialect.quote(f"{related.table}__{RELATED_SCOPE}")
            foreign = f"{alias}.{self.dialect.quote(related.foreign_column)}"
            jf.add(
                f"LEFT JOIN ({keys}) AS {alias} "
                f"ON {self.dialect.column(table_name, related.column)} = {foreign}",
                f"{foreign} IS NOT NULL",
            )

        return TableQuery(
            info=info,
            source=self.filtered_source(table_name, table.row_filter),
            join_filter=jf,
            order_column=info.order_column(table.order_column),
            dialect=self.dialect,
        )
