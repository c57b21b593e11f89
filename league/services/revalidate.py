"""Path invalidation after roster mutations."""
from __future__ import annotations

import logging
from collections import deque
from typing import Callable

logger = logging.getLogger("league.revalidate")

Listener = Callable[[str], None]


def admin_entries_path(event_id: str) -> str:
    return f"/admin/events/{event_id}/entries"


def public_event_path(event_id: str) -> str:
    return f"/events/{event_id}"


class Revalidator:
    """Collects invalidated view paths and fans them out to listeners."""

    def __init__(self, history: int = 200):
        self._listeners: list[Listener] = []
        self.recent: deque[str] = deque(maxlen=history)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener. Returns an unsubscribe callable."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def revalidate_path(self, path: str) -> None:
        self.recent.append(path)
        logger.debug("Revalidate %s", path)
        for listener in list(self._listeners):
            try:
                listener(path)
            except Exception:
                logger.exception("Revalidation listener failed for %s", path)

    def entries_changed(self, event_id: str, public: bool = True) -> None:
        """Admin entries view always; the public event view when the roster itself changed."""
        self.revalidate_path(admin_entries_path(event_id))
        if public:
            self.revalidate_path(public_event_path(event_id))
