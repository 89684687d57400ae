"""SQL composition: join/filter accumulation, trace filters, table queries."""

from __future__ import annotations

__all__ = [
    "JoinFilter",
    "QueryBuilder",
    "TableQuery",
    "TraceFilter",
    "TraceFilterList",
    "TraceFilterSession",
]

from .builder import QueryBuilder, TableQuery
from .join_filter import JoinFilter
from .trace_filter import TraceFilter, TraceFilterList, TraceFilterSession
