"""Utility functions for customs."""

from __future__ import annotations

__all__ = [
    "HASH_CHARSET",
    "content_hash",
    "hash_to_charset",
    "table_seed",
]

from .hashing import HASH_CHARSET, content_hash, hash_to_charset, table_seed
