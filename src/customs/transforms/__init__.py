"""Column pseudonymization transforms."""

from __future__ import annotations

__all__ = [
    "ColumnTransform",
    "RandomSource",
    "TransformPlan",
    "apply_transform",
    "compile_transforms",
    "is_empty",
]

from .engine import ColumnTransform, apply_transform, is_empty
from .plan import TransformPlan, compile_transforms
from .random_source import RandomSource
