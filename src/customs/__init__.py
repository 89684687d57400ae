"""customs: export database tables to CSV with row filtering and pseudonymization."""

from __future__ import annotations

__version__ = "0.1.0"

__all__ = [
    "ExportConfig",
    "Exporter",
    "Output",
    "TransformKind",
    "load_config",
]

from .config import ExportConfig, load_config
from .constants import TransformKind
from .export import Exporter, Output
