"""Progress reporting for table exports.

Two implementations, picked once per run from the output mode: stdout
exports carry CSV on stdout and report nothing, directory exports draw a
rich progress bar.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from loguru import logger
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeRemainingColumn,
)

from customs.constants import OutputKind

__all__ = ["BarProgress", "NullProgress", "ProgressReporter", "make_progress"]

Update = Callable[[int], None]

# Tables at or below this many rows finish too fast to need a bar
SMALL_TABLE_ROWS = 100


def _noop(count: int) -> None:
    pass


class ProgressReporter(ABC):
    """Reports rows written for one table at a time."""

    @abstractmethod
    @contextmanager
    def task(self, label: str, total: int) -> Iterator[Update]:
        """Yield a callable taking the number of rows written so far."""


class NullProgress(ProgressReporter):
    @contextmanager
    def task(self, label: str, total: int) -> Iterator[Update]:
        yield _noop


class BarProgress(ProgressReporter):
    """
    Rich progress bar per table.

    Parameters
    ----------
    console : Console
        Console to draw on (stderr)
    min_rows : int, optional
        Tables with at most this many rows get a log line instead of a bar
    """

    def __init__(self, console: Console, min_rows: int = SMALL_TABLE_ROWS) -> None:
        self.console = console
        self.min_rows = min_rows

    @contextmanager
    def task(self, label: str, total: int) -> Iterator[Update]:
        if total <= self.min_rows:
            logger.info(f"{label} is pretty small, no progress bar needed")
            yield _noop
            return

        with Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeRemainingColumn(),
            console=self.console,
        ) as progress:
            task_id = progress.add_task(label, total=total)
            yield lambda count: progress.update(task_id, completed=count)


def make_progress(kind: OutputKind, console: Console) -> ProgressReporter:
    if OutputKind(kind) is OutputKind.STDOUT:
        return NullProgress()
    return BarProgress(console)
