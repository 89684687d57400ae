"""Hashing utilities for seeds and hash-derived pseudonyms."""

from __future__ import annotations

import hashlib

__all__ = ["HASH_CHARSET", "content_hash", "hash_to_charset", "table_seed"]

HASH_CHARSET = "abcdefghijklmnopqrstuvwxyz0123456789"


def table_seed(db_name: str, table_name: str) -> int:
    """
    64-bit seed for a table's deterministic random source.

    Parameters
    ----------
    db_name : str
        Database name
    table_name : str
        Table name

    Returns
    -------
    int
        Unsigned 64-bit integer derived from ``"<db_name>.<table_name>"``

    Examples
    --------
    >>> table_seed("petstore", "users") == table_seed("petstore", "users")
    True
    >>> table_seed("petstore", "users") == table_seed("petstore", "pets")
    False
    """
    key = f"{db_name}.{table_name}".encode()
    return int.from_bytes(hashlib.blake2b(key, digest_size=8).digest(), "little")


def content_hash(data: bytes) -> int:
    """128-bit content hash of ``data`` as an unsigned integer."""
    return int.from_bytes(hashlib.blake2b(data, digest_size=16).digest(), "big")


def hash_to_charset(data: bytes, length: int, charset: str = HASH_CHARSET) -> str:
    """
    Derive a short string from the content hash of ``data``.

    Takes the first ``length`` bytes of the hash's little-endian
    representation and maps each byte modulo ``len(charset)`` onto
    ``charset``.

    Parameters
    ----------
    data : bytes
        Input to hash
    length : int
        Output length, at most 16
    charset : str, optional
        Output alphabet, by default lowercase letters and digits

    Returns
    -------
    str
        ``length`` characters drawn from ``charset``

    Examples
    --------
    >>> hash_to_charset(b"bob@example.org", 11) == hash_to_charset(b"bob@example.org", 11)
    True
    >>> len(hash_to_charset(b"", 6))
    6
    """
    if not 0 <= length <= 16:
        raise ValueError(f"length must be between 0 and 16, got {length}")
    digest = content_hash(data).to_bytes(16, "little")
    return "".join(charset[b % len(charset)] for b in digest[:length])
