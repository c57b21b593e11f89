"""Client-local roster selection state and candidate search."""
from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence, TypeVar


class Candidate(Protocol):
    id: str
    display_name: str
    handle: Optional[str]


C = TypeVar("C", bound=Candidate)


class RosterSelector:
    """Set of selected player IDs, independent of when it gets persisted."""

    def __init__(self, selected: Iterable[str] = ()):
        self._selected: set[str] = set(selected)

    @property
    def selected(self) -> frozenset[str]:
        return frozenset(self._selected)

    def is_selected(self, player_id: str) -> bool:
        return player_id in self._selected

    def toggle(self, player_id: str) -> bool:
        """Flip membership. Returns the new state."""
        if player_id in self._selected:
            self._selected.discard(player_id)
            return False
        self._selected.add(player_id)
        return True

    def mark(self, player_id: str, checked: bool) -> None:
        if checked:
            self._selected.add(player_id)
        else:
            self._selected.discard(player_id)

    def set(self, player_ids: Iterable[str]) -> None:
        """Bulk replace the selection."""
        self._selected = set(player_ids)

    def reset(self, confirmed: Iterable[str]) -> None:
        """Absorb a freshly observed server-confirmed selection."""
        self.set(confirmed)

    def __len__(self) -> int:
        return len(self._selected)

    def __contains__(self, player_id: object) -> bool:
        return player_id in self._selected


def matches_query(candidate: Candidate, query: str) -> bool:
    needle = (query or "").strip().lower()
    if not needle:
        return True
    return needle in candidate.display_name.lower() or needle in (candidate.handle or "").lower()


def filter_candidates(candidates: Sequence[C], query: str) -> list[C]:
    """Case-insensitive substring search on name or handle. Never touches selection."""
    return [c for c in candidates if matches_query(c, query)]
