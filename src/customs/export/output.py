"""Output sinks: one CSV file per table, or everything on stdout."""

from __future__ import annotations

import csv
import gzip
import io
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, BinaryIO

from loguru import logger

from customs.constants import OutputKind
from customs.export.progress import ProgressReporter, make_progress
from customs.export.serialize import serialize_row

if TYPE_CHECKING:
    from rich.console import Console

__all__ = ["Output", "TableWriter"]

ENCODING = "utf-8"
# Restores raw bytes that were decoded with surrogateescape
ERRORS = "surrogateescape"


class TableWriter:
    """CSV writer for one table: a header record followed by rows."""

    def __init__(self, fh: IO[str]) -> None:
        self._writer = csv.writer(fh, lineterminator="\n")
        self.rows_written = 0

    def write_header(self, column_names: Sequence[str]) -> None:
        self._writer.writerow(column_names)

    def write_row(self, values: list[Any]) -> None:
        self._writer.writerow(serialize_row(values))
        self.rows_written += 1


class Output:
    """
    Destination for exported tables.

    Parameters
    ----------
    kind : OutputKind
        ``dir`` writes ``<db>.<table>.csv`` files, ``stdout`` concatenates
        every table on standard output
    directory : Path
        Target directory for ``dir`` output
    compress : bool, optional
        Gzip files in ``dir`` mode (``.csv.gz``), by default False
    stream : BinaryIO | None, optional
        Binary stream for ``stdout`` mode, by default ``sys.stdout.buffer``
    """

    def __init__(
        self,
        kind: OutputKind,
        directory: Path,
        compress: bool = False,
        stream: BinaryIO | None = None,
    ) -> None:
        self.kind = OutputKind(kind)
        self.directory = Path(directory)
        self.compress = compress
        self._stream = stream

    @classmethod
    def create(
        cls,
        kind: OutputKind,
        directory: Path,
        compress: bool = False,
        stream: BinaryIO | None = None,
    ) -> Output:
        """Build an output, creating the target directory for ``dir`` mode."""
        output = cls(kind, directory, compress, stream)
        if output.kind is OutputKind.DIR and not output.directory.is_dir():
            logger.info(f"Creating directory {output.directory}")
            output.directory.mkdir(parents=True, exist_ok=True)
        return output

    def path_for(self, db_name: str, table_name: str) -> Path:
        ext = "csv.gz" if self.compress else "csv"
        return self.directory / f"{db_name}.{table_name}.{ext}"

    def progress(self, console: Console) -> ProgressReporter:
        return make_progress(self.kind, console)

    @contextmanager
    def writer(self, db_name: str, table_name: str) -> Iterator[TableWriter]:
        """
        Open the sink for one table.

        Raises
        ------
        OSError
            If the destination file cannot be created or written
        """
        if self.kind is OutputKind.STDOUT:
            stream = self._stream if self._stream is not None else sys.stdout.buffer
            fh = io.TextIOWrapper(
                stream, encoding=ENCODING, errors=ERRORS, newline="", write_through=True
            )
            try:
                fh.write(f"## {db_name}.{table_name}\n")
                yield TableWriter(fh)
                fh.flush()
            finally:
                # Leave the underlying stream open for the next table
                fh.detach()
            return

        path = self.path_for(db_name, table_name)
        logger.info(f"Creating file {path}")
        if self.compress:
            fh = gzip.open(path, "wt", encoding=ENCODING, errors=ERRORS, newline="")
        else:
            fh = open(path, "w", encoding=ENCODING, errors=ERRORS, newline="")
        with fh:
            yield TableWriter(fh)
