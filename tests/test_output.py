"""Tests for value serialization, CSV writing and progress reporting."""

from __future__ import annotations

import io
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import pytest
from rich.console import Console

from customs.constants import OutputKind
from customs.export import BarProgress, NullProgress, Output, TableWriter, serialize_value
from customs.export.progress import make_progress


class TestSerializeValue:
    """Test rendering driver values as CSV fields."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, ""),
            ("text", "text"),
            (42, "42"),
            (True, "1"),
            (False, "0"),
            (Decimal("12.50"), "12.50"),
            (Decimal("1E+2"), "100"),
            (datetime(2024, 1, 2, 3, 4, 5), "2024-01-02 03:04:05"),
            (date(2024, 1, 2), "2024-01-02"),
            (time(3, 4, 5), "03:04:05"),
            (timedelta(hours=30, minutes=1), "30:01:00"),
            (-timedelta(minutes=90), "-01:30:00"),
            (timedelta(seconds=1, microseconds=5), "00:00:01.000005"),
        ],
    )
    def test_values(self, value, expected):
        assert serialize_value(value) == expected

    def test_invalid_utf8_bytes_round_trip(self, tmp_path):
        raw = b"caf\xe9"
        output = Output(OutputKind.DIR, tmp_path)
        with output.writer("db", "t") as writer:
            writer.write_row([raw])

        assert (tmp_path / "db.t.csv").read_bytes() == raw + b"\n"


class TestTableWriter:
    """Test CSV quoting and row counting."""

    def test_quoting(self):
        fh = io.StringIO()
        writer = TableWriter(fh)

        writer.write_header(["id", "note"])
        writer.write_row([1, 'says "hi", twice'])
        writer.write_row([2, "line\nbreak"])

        assert fh.getvalue() == 'id,note\n1,"says ""hi"", twice"\n2,"line\nbreak"\n'
        assert writer.rows_written == 2


class TestProgress:
    """Test the progress reporters."""

    def test_null_progress(self):
        with NullProgress().task("db.t", 10) as update:
            update(5)

    def test_bar_progress(self):
        console = Console(file=io.StringIO(), force_terminal=False)
        with BarProgress(console, min_rows=1).task("db.t", 10) as update:
            for count in range(1, 11):
                update(count)

    def test_small_table_has_no_bar(self):
        out = io.StringIO()
        with BarProgress(Console(file=out)).task("db.t", 100) as update:
            update(100)
        assert out.getvalue() == ""

    def test_reporter_follows_output_kind(self):
        console = Console(file=io.StringIO())
        assert isinstance(make_progress(OutputKind.STDOUT, console), NullProgress)
        assert isinstance(make_progress(OutputKind.DIR, console), BarProgress)
        assert isinstance(Output(OutputKind.DIR, ".").progress(console), BarProgress)
