"""Export orchestration from configured databases down to transformed CSV rows."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from customs.constants import OutputKind
from customs.db.dialect import SqlDialect
from customs.db.engine import run_sql
from customs.exceptions import ConfigError
from customs.query.builder import QueryBuilder
from customs.query.trace_filter import TraceFilterList, TraceFilterSession
from customs.transforms.plan import TransformPlan
from customs.transforms.random_source import RandomSource

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

    from customs.config import DatabaseConfig, ExportConfig, TableConfig
    from customs.export.output import Output
    from customs.export.progress import ProgressReporter

__all__ = ["ExportStats", "Exporter", "TableResult"]


@dataclass
class TableResult:
    """Outcome of exporting one table."""

    db_name: str
    table_name: str
    rows: int = 0
    skipped: bool = False
    path: Path | None = None

    @property
    def qualified_name(self) -> str:
        return f"{self.db_name}.{self.table_name}"


@dataclass
class ExportStats:
    """Per-table outcomes of a run, in export order."""

    tables: list[TableResult] = field(default_factory=list)

    @property
    def tables_exported(self) -> int:
        return sum(1 for t in self.tables if not t.skipped)

    @property
    def tables_skipped(self) -> int:
        return sum(1 for t in self.tables if t.skipped)

    @property
    def rows_written(self) -> int:
        return sum(t.rows for t in self.tables)


class Exporter:
    """
    Export every configured table over a single connection.

    Tables are processed one at a time in configuration order. Global trace
    filters are materialized for the whole run, database-scoped ones for the
    duration of their database; both are torn down on every exit path.

    Parameters
    ----------
    conn : Connection
        The one connection used for the whole run
    config : ExportConfig
        Validated configuration
    output : Output
        Sink for table headers and rows
    progress : ProgressReporter
        Progress implementation chosen for the output mode

    Examples
    --------
    >>> with get_connection(engine) as conn:
    ...     output = Output.create(OutputKind.DIR, Path("trunk"))
    ...     stats = Exporter(conn, config, output, NullProgress()).run()
    """

    def __init__(
        self,
        conn: Connection,
        config: ExportConfig,
        output: Output,
        progress: ProgressReporter,
    ) -> None:
        self.conn = conn
        self.config = config
        self.output = output
        self.progress = progress
        self.session = TraceFilterSession(conn, SqlDialect.for_connection(conn))
        self.global_filters = TraceFilterList.from_config(config.trace_filters)

    def run(self) -> ExportStats:
        stats = ExportStats()
        with self.global_filters.materialized(self.session):
            for db_name, database in self.config.databases.items():
                stats.tables.extend(self.export_database(db_name, database))
        logger.info(
            f"Exported {stats.tables_exported} tables ({stats.rows_written} rows), "
            f"skipped {stats.tables_skipped}"
        )
        return stats

    def export_database(self, db_name: str, database: DatabaseConfig) -> list[TableResult]:
        """
        Export the tables of one database.

        Raises
        ------
        ConfigError
            If a database-scoped trace filter reuses a global filter's name
        """
        db_filters = TraceFilterList.from_config(database.trace_filters)
        global_names = {tf.name for tf in self.global_filters}
        for tf in db_filters:
            if tf.name in global_names:
                raise ConfigError(
                    f"Trace filter {tf.name!r} in database {db_name!r} "
                    "has the same name as a global trace filter"
                )

        trace_filters = self.global_filters.append(db_filters)
        builder = QueryBuilder(self.session, db_name, database)
        results = []
        with db_filters.materialized(self.session):
            for table_name, table in database.tables.items():
                results.append(self.export_table(builder, table_name, table, trace_filters))
        return results

    def export_table(
        self,
        builder: QueryBuilder,
        table_name: str,
        table: TableConfig,
        trace_filters: TraceFilterList,
    ) -> TableResult:
        """
        Export one table.

        Raises
        ------
        ColumnNotFoundError
            If a transform, order or related column does not exist
        TransformConfigError
            If a transform's parameters are invalid
        """
        db_name = builder.db_name
        query = builder.build(table_name, table, trace_filters)
        if query is None:
            return TableResult(db_name, table_name, skipped=True)

        plan = TransformPlan.build(query.info, table.transforms)
        row_count = run_sql(self.conn, query.count_sql()).scalar_one()
        info = query.info.with_row_count(row_count)
        source = RandomSource.for_table(db_name, table_name, self.config.locale)

        with self.output.writer(db_name, table_name) as writer, self.progress.task(
            info.qualified_name, info.row_count
        ) as update:
            writer.write_header(info.column_names)
            result = run_sql(self.conn, query.select_sql(), stream=True)
            try:
                for row in result:
                    writer.write_row(plan.apply(source, list(row)))
                    update(writer.rows_written)
            finally:
                result.close()

        path = None
        if self.output.kind is OutputKind.DIR:
            path = self.output.path_for(db_name, table_name)
        return TableResult(db_name, table_name, rows=writer.rows_written, path=path)
