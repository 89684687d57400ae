"""Export orchestration and output sinks."""

from __future__ import annotations

__all__ = [
    "BarProgress",
    "ExportStats",
    "Exporter",
    "NullProgress",
    "Output",
    "ProgressReporter",
    "TableResult",
    "TableWriter",
    "serialize_value",
]

from .exporter import Exporter, ExportStats, TableResult
from .output import Output, TableWriter
from .progress import BarProgress, NullProgress, ProgressReporter
from .serialize import serialize_value
