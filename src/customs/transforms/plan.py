"""Per-table transform plan: configured rules bound to column positions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from customs.exceptions import TransformConfigError
from customs.transforms.engine import ColumnTransform

if TYPE_CHECKING:
    from customs.config import ExportConfig, TransformConfig
    from customs.db.table_info import TableInfo
    from customs.transforms.random_source import RandomSource

__all__ = ["TransformPlan", "compile_transforms"]


@dataclass(frozen=True)
class TransformPlan:
    """
    Transforms of one table, resolved against its schema.

    Building the plan resolves every column and validates every transform
    parameter, so a misconfigured table fails before any row is read.

    Attributes
    ----------
    steps : tuple[tuple[int, ColumnTransform], ...]
        Column position and compiled transform, in configured order
    """

    steps: tuple[tuple[int, ColumnTransform], ...] = ()

    @classmethod
    def build(cls, info: TableInfo, transforms: Sequence[TransformConfig]) -> TransformPlan:
        """
        Raises
        ------
        ColumnNotFoundError
            If a transform names a column the table does not have
        TransformConfigError
            If a transform's parameters are invalid
        """
        return cls(
            tuple(
                (info.column_index(t.column), ColumnTransform.from_config(t))
                for t in transforms
            )
        )

    def apply(self, source: RandomSource, row: list[Any]) -> list[Any]:
        """Transform ``row`` in place and return it."""
        for index, transform in self.steps:
            row[index] = transform.apply(source, row[index])
        return row

    def __len__(self) -> int:
        return len(self.steps)


def compile_transforms(config: ExportConfig) -> int:
    """
    Compile every configured transform without touching a database.

    Column existence is only known once a table is introspected; this
    catches the remaining configuration errors up front.

    Returns
    -------
    int
        Number of transforms compiled

    Raises
    ------
    TransformConfigError
        If a transform's parameters are invalid; the message names the
        database, table and column
    """
    count = 0
    for db_name, database in config.databases.items():
        for table_name, table in database.tables.items():
            for transform in table.transforms:
                try:
                    ColumnTransform.from_config(transform)
                except TransformConfigError as e:
                    raise TransformConfigError(
                        f"{db_name}.{table_name}.{transform.column}: {e}"
                    ) from e
                count += 1
    return count
