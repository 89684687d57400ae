"""Deduplicating accumulator for join clauses and WHERE predicates."""

from __future__ import annotations

from dataclasses import dataclass, field

from customs.constants import DEFAULT_FILTER

__all__ = ["JoinFilter"]


@dataclass
class JoinFilter:
    """
    Join clauses and filter predicates contributed by several sources.

    ``add`` records fragments unconditionally; ``append`` merges another
    accumulator and skips any fragment whose exact text is already present,
    so overlapping trace filter sets never join the same view twice.

    Examples
    --------
    >>> jf = JoinFilter()
    >>> jf.add("LEFT JOIN v ON t.a = v.id", "v.id IS NOT NULL")
    >>> jf.append(jf.copy()).join_string()
    'LEFT JOIN v ON t.a = v.id'
    >>> JoinFilter().filter_string()
    '1'
    """

    joins: list[str] = field(default_factory=list)
    filters: list[str] = field(default_factory=list)

    def add(self, join: str, predicate: str) -> None:
        self.joins.append(join)
        self.filters.append(predicate)

    def add_predicate(self, predicate: str) -> None:
        self.filters.append(predicate)

    def append(self, other: JoinFilter) -> JoinFilter:
        """Merge ``other`` into this accumulator and return self."""
        for join in other.joins:
            if join not in self.joins:
                self.joins.append(join)
        for predicate in other.filters:
            if predicate not in self.filters:
                self.filters.append(predicate)
        return self

    def copy(self) -> JoinFilter:
        return JoinFilter(list(self.joins), list(self.filters))

    def join_string(self) -> str:
        return " ".join(self.joins)

    def filter_string(self) -> str:
        """Predicates ANDed as one parenthesized group; ``1`` when empty."""
        if not self.filters:
            return DEFAULT_FILTER
        return "(" + " AND ".join(self.filters) + ")"

    def __bool__(self) -> bool:
        return bool(self.joins or self.filters)
