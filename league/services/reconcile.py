"""Roster reconciliation: minimal add/remove diff between two selections."""
from __future__ import annotations

from typing import Iterable, NamedTuple


class RosterDiff(NamedTuple):
    """Players to enter and players to drop so that ``current`` becomes ``desired``."""

    to_add: frozenset[str]
    to_remove: frozenset[str]

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove

    def apply(self, current: Iterable[str]) -> frozenset[str]:
        return (frozenset(current) | self.to_add) - self.to_remove


def diff(desired: Iterable[str], current: Iterable[str]) -> RosterDiff:
    """Compute the roster diff. Pure and total; ``diff(s, s)`` is empty."""
    desired = frozenset(desired)
    current = frozenset(current)
    return RosterDiff(to_add=desired - current, to_remove=current - desired)
