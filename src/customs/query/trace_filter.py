"""Trace filters: named column subsets materialized as temporary views.

A trace filter takes the distinct values of one column (``source.column``)
from the rows of ``source.table`` that pass ``source.filter``. Any exported
table holding one of the filter's ``match_columns`` is then restricted to
rows whose match column appears in that set::

    LEFT JOIN <view> AS <alias> ON <table>.<match_column> = <alias>.id
    ... WHERE <alias>.id IS NOT NULL

Which views currently exist, and where, is tracked by a
:class:`TraceFilterSession` owned by the exporter and passed explicitly to
every call. Filter objects themselves never change.

On MySQL the view is a temporary table, which a statement may open only
once. Each join there reads its own temporary copy named after the join
alias, created on first use and dropped together with the filter.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger

from customs.constants import TRACE_VIEW_PREFIX
from customs.db.engine import run_sql
from customs.exceptions import TraceFilterError
from customs.query.join_filter import JoinFilter

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

    from customs.config import TraceFilterConfig
    from customs.db.dialect import SqlDialect
    from customs.db.table_info import TableInfo

__all__ = ["TraceFilter", "TraceFilterList", "TraceFilterSession"]

_UNSAFE_CHARS = re.compile(r"[^0-9A-Za-z_]")


@dataclass
class TraceFilterSession:
    """
    Materialization state of trace filter views on one connection.

    Attributes
    ----------
    conn : Connection
        The export connection; views are scoped to it
    dialect : SqlDialect
        Quoting and DDL helper for ``conn``
    locations : dict[str, str | None]
        Filter name to the database its view was created in (``None`` for
        backends whose temporary objects are not database-qualified)
    copies : dict[str, list[str]]
        Filter name to the per-join copies of its view (MySQL only)
    """

    conn: Connection
    dialect: SqlDialect
    locations: dict[str, str | None] = field(default_factory=dict)
    copies: dict[str, list[str]] = field(default_factory=dict)

    def is_materialized(self, name: str) -> bool:
        return name in self.locations


@dataclass(frozen=True)
class TraceFilter:
    """Engine-side view of one configured trace filter."""

    config: TraceFilterConfig

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def view_name(self) -> str:
        """Deterministic temporary view identifier (unquoted)."""
        return TRACE_VIEW_PREFIX + _UNSAFE_CHARS.sub("_", self.config.name)

    def alias(self, table_name: str, scope: str = "") -> str:
        """Join alias for this filter when joined from ``table_name``.

        ``scope`` tells apart joins of the same table within one statement,
        such as a table and its own related-only subquery.
        """
        alias = f"{self.view_name}__{_UNSAFE_CHARS.sub('_', table_name)}"
        if scope:
            alias = f"{alias}__{_UNSAFE_CHARS.sub('_', scope)}"
        return alias

    def view_ref(self, session: TraceFilterSession) -> str:
        """
        Quoted reference to the materialized view.

        Raises
        ------
        TraceFilterError
            If the view is not currently materialized on ``session``
        """
        if not session.is_materialized(self.name):
            raise TraceFilterError(
                f"Trace filter {self.name!r} is referenced before it was set up"
            )
        return session.dialect.table(session.locations[self.name], self.view_name)

    def join_ref(self, session: TraceFilterSession, alias: str) -> str:
        """
        Quoted reference to join under ``alias``.

        The view itself where the backend can reopen temporary objects,
        otherwise a copy named ``alias``, created the first time it is
        asked for.

        Raises
        ------
        TraceFilterError
            If the view is not currently materialized on ``session``
        """
        view = self.view_ref(session)
        dialect = session.dialect
        if dialect.reopens_temp_objects:
            return view

        target = dialect.table(session.locations[self.name], alias)
        copies = session.copies.setdefault(self.name, [])
        if alias not in copies:
            for sql in dialect.copy_temp_table(target, view):
                run_sql(session.conn, sql)
            copies.append(alias)
        return target

    def _drop_copies(self, session: TraceFilterSession, location: str | None) -> None:
        dialect = session.dialect
        for alias in session.copies.pop(self.name, []):
            run_sql(session.conn, dialect.drop_temp_view(dialect.table(location, alias)))

    def materialize(self, session: TraceFilterSession) -> int:
        """
        Create or replace the view on ``session``.

        Returns
        -------
        int
            Number of distinct values in the view
        """
        logger.info(f"Setting up trace filter '{self.name}'")
        dialect = session.dialect
        source = self.config.source

        location = source.db if dialect.qualifies_temp_objects else None
        target = dialect.table(location, self.view_name)
        column = dialect.quote(source.column)
        select_sql = (
            f"SELECT DISTINCT {column} AS id "
            f"FROM {dialect.table(source.db, source.table)} "
            f"WHERE {source.filter} "
            f"ORDER BY id ASC"
        )
        # copies of a previous materialization hold stale values
        self._drop_copies(session, session.locations.get(self.name, location))
        for sql in dialect.create_temp_view(target, select_sql):
            run_sql(session.conn, sql)
        session.locations[self.name] = location

        count = run_sql(session.conn, f"SELECT COUNT(*) FROM {target}").scalar_one()
        logger.info(f"Trace filter '{self.name}' matched {count} rows")
        return count

    def dematerialize(self, session: TraceFilterSession) -> None:
        """Drop the view and its copies. Safe when it was never materialized."""
        dialect = session.dialect
        if self.name in session.locations:
            location = session.locations.pop(self.name)
        else:
            location = self.config.source.db if dialect.qualifies_temp_objects else None
        self._drop_copies(session, location)
        run_sql(
            session.conn,
            dialect.drop_temp_view(dialect.table(location, self.view_name)),
        )
        logger.debug(f"Dropped trace filter '{self.name}'")

    def match_column(self, info: TableInfo) -> str | None:
        """
        Column of ``info`` this filter constrains, if any.

        The filter's own source table matches on the source column; any
        other table matches on the first of ``match_columns`` it has.
        """
        source = self.config.source
        if info.db_name == source.db and info.table_name == source.table:
            return source.column
        for column in self.config.match_columns:
            if info.has_column(column):
                return column
        return None

    def build_join_filter(
        self, info: TableInfo, session: TraceFilterSession, scope: str = ""
    ) -> JoinFilter:
        jf = JoinFilter()
        match_column = self.match_column(info)
        if match_column is None:
            return jf

        dialect = session.dialect
        name = self.alias(info.table_name, scope)
        alias = dialect.quote(name)
        jf.add(
            f"LEFT JOIN {self.join_ref(session, name)} AS {alias} "
            f"ON {dialect.column(info.table_name, match_column)} = {alias}.id",
            f"{alias}.id IS NOT NULL",
        )
        return jf


class TraceFilterList(Sequence):
    """Immutable ordered collection of trace filters."""

    def __init__(self, filters: Iterable[TraceFilter] = ()) -> None:
        self._filters = tuple(filters)

    @classmethod
    def from_config(cls, configs: Iterable[TraceFilterConfig]) -> TraceFilterList:
        return cls(TraceFilter(config) for config in configs)

    def __getitem__(self, index):
        return self._filters[index]

    def __len__(self) -> int:
        return len(self._filters)

    def __repr__(self) -> str:
        return f"TraceFilterList({[tf.name for tf in self._filters]!r})"

    def append(self, other: Iterable[TraceFilter]) -> TraceFilterList:
        """New list holding this list's filters followed by ``other``'s."""
        return TraceFilterList((*self._filters, *other))

    def build_join_filter(
        self, info: TableInfo, session: TraceFilterSession, scope: str = ""
    ) -> JoinFilter:
        jf = JoinFilter()
        for tf in self._filters:
            jf.append(tf.build_join_filter(info, session, scope))
        return jf

    @contextmanager
    def materialized(self, session: TraceFilterSession) -> Iterator[TraceFilterList]:
        """Materialize every filter, dropping them again on exit."""
        done: list[TraceFilter] = []
        try:
            for tf in self._filters:
                done.append(tf)
                tf.materialize(session)
            yield self
        finally:
            for tf in reversed(done):
                tf.dematerialize(session)
