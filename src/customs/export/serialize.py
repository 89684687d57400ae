"""Text rendering of database values for delimited output."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Any

__all__ = ["NULL_REPRESENTATION", "serialize_row", "serialize_value"]

# Representation of NULL values in CSV
NULL_REPRESENTATION = ""


def _format_duration(value: timedelta) -> str:
    # MySQL TIME columns arrive as timedelta and may exceed 24h or be negative
    sign = "-" if value < timedelta(0) else ""
    value = abs(value)
    total_seconds = value.days * 86400 + value.seconds
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.microseconds:
        text += f".{value.microseconds:06d}"
    return text


def serialize_value(value: Any) -> str:
    """
    Render one value as a CSV field.

    Parameters
    ----------
    value : Any
        Value as returned by the driver (or produced by a transform)

    Returns
    -------
    str
        Field text; bytes are decoded with ``surrogateescape`` so the
        original byte sequence is restored when the file is written with
        the same error handler

    Examples
    --------
    >>> serialize_value(None)
    ''
    >>> serialize_value(datetime(2024, 1, 2, 3, 4, 5))
    '2024-01-02 03:04:05'
    >>> serialize_value(timedelta(hours=30, minutes=1))
    '30:01:00'
    """
    if value is None:
        return NULL_REPRESENTATION
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", "surrogateescape")
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, datetime):
        return value.isoformat(sep=" ")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, timedelta):
        return _format_duration(value)
    if isinstance(value, Decimal):
        return format(value, "f")
    return str(value)


def serialize_row(values: list[Any]) -> list[str]:
    return [serialize_value(v) for v in values]
