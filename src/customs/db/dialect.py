"""SQL text helpers that differ between database backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Dialect

__all__ = ["SqlDialect"]


@dataclass(frozen=True)
class SqlDialect:
    """
    Identifier quoting and temporary-object DDL for one backend.

    Configured names are quoted, never escaped beyond what the backend's
    quoting requires; the configuration is trusted input.

    Parameters
    ----------
    dialect : Dialect
        SQLAlchemy dialect of the export connection
    """

    dialect: Dialect

    @classmethod
    def for_connection(cls, conn: Connection) -> SqlDialect:
        return cls(conn.dialect)

    @property
    def name(self) -> str:
        return self.dialect.name

    @property
    def qualifies_temp_objects(self) -> bool:
        """Whether temporary objects live inside a named database.

        MySQL temporary tables belong to a database and can be referenced
        as ``db.name``; SQLite and PostgreSQL keep them in a session-only
        schema that is searched first.
        """
        return self.name in ("mysql", "mariadb")

    @property
    def reopens_temp_objects(self) -> bool:
        """Whether one statement may reference a temporary object twice.

        MySQL refuses to open the same temporary table twice in a statement
        (ERROR 1137), so each join of a trace filter needs its own copy.
        """
        return not self.qualifies_temp_objects

    def quote(self, identifier: str) -> str:
        return self.dialect.identifier_preparer.quote_identifier(identifier)

    def table(self, db_name: str | None, table_name: str) -> str:
        """Quoted, optionally database-qualified, table reference."""
        if db_name:
            return f"{self.quote(db_name)}.{self.quote(table_name)}"
        return self.quote(table_name)

    def column(self, table_name: str, column_name: str) -> str:
        return f"{self.quote(table_name)}.{self.quote(column_name)}"

    def create_temp_view(self, name: str, select_sql: str) -> list[str]:
        """Statements that create or replace a session-scoped view."""
        if self.qualifies_temp_objects:
            # MySQL has no temporary views; a temporary table is the closest
            return [
                f"DROP TEMPORARY TABLE IF EXISTS {name}",
                f"CREATE TEMPORARY TABLE {name} AS {select_sql}",
            ]
        if self.name == "sqlite":
            return [
                f"DROP VIEW IF EXISTS {name}",
                f"CREATE TEMP VIEW {name} AS {select_sql}",
            ]
        return [f"CREATE OR REPLACE TEMP VIEW {name} AS {select_sql}"]

    def copy_temp_table(self, name: str, source: str) -> list[str]:
        """Statements that replace temporary table ``name`` with a copy of ``source``."""
        return [
            f"DROP TEMPORARY TABLE IF EXISTS {name}",
            f"CREATE TEMPORARY TABLE {name} AS SELECT * FROM {source}",
        ]

    def drop_temp_view(self, name: str) -> str:
        if self.qualifies_temp_objects:
            return f"DROP TEMPORARY TABLE IF EXISTS {name}"
        return f"DROP VIEW IF EXISTS {name}"
