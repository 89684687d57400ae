"""Database package for customs."""

from __future__ import annotations

__all__ = [
    "SqlDialect",
    "TableInfo",
    "get_connection",
    "get_engine",
    "run_sql",
]

from .dialect import SqlDialect
from .engine import get_connection, get_engine, run_sql
from .table_info import TableInfo
