"""Optimistic roster sync.

Two ways of pushing a roster selection to the entries store:

* ``ImmediateSyncController`` commits every checkbox toggle straight away and
  rolls the local selection back if the request fails. Each toggle carries a
  per-player sequence token; a response that is no longer the latest for its
  player is dropped, so a slow failure can never undo a newer toggle.
* ``BatchSyncController`` only edits the local selection until ``submit``,
  which sends one bulk add and one bulk remove computed from a single diff.
  Each half that succeeds is folded into the confirmed state straight away, so
  a retry after a partial failure only resends what is still missing.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional

import pydantic
from pydantic import BaseModel, field_validator

from league.services.errors import AuthorizationError, LeagueError, ValidationError, require_id
from league.services.gateway import EntryGateway, EntryRecord
from league.services.reconcile import RosterDiff, diff
from league.services.roster import RosterSelector

logger = logging.getLogger("league.sync")

GENERIC_FAILURE = "Could not save the roster. Try again."


class SyncRequest(BaseModel):
    """Desired roster for one event."""

    event_id: str
    desired_player_ids: list[str] = []

    @field_validator("event_id")
    @classmethod
    def event_id_required(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("event_id is required")
        return v

    @field_validator("desired_player_ids")
    @classmethod
    def player_ids_present(cls, v: list[str]) -> list[str]:
        cleaned = [p.strip() for p in v]
        if any(not p for p in cleaned):
            raise ValueError("player ids must be non-empty")
        return sorted(set(cleaned))

    @classmethod
    def from_form(cls, data: Mapping) -> "SyncRequest":
        """Build from a loose key/value bundle, raising the league ValidationError."""
        try:
            return cls.model_validate(dict(data))
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            where = ".".join(str(p) for p in first.get("loc", ())) or "request"
            raise ValidationError(f"Invalid {where}: {first.get('msg')}") from e


# --- Strategy A: commit on every toggle ---


class ToggleState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"


class ToggleStatus(str, Enum):
    SAVED = "saved"
    REVERTED = "reverted"
    STALE = "stale"  # superseded by a newer toggle of the same player
    DISCARDED = "discarded"  # controller closed before the response arrived


@dataclass(frozen=True)
class ToggleOutcome:
    player_id: str
    checked: bool
    status: ToggleStatus
    error: Optional[str] = None


class ImmediateSyncController:
    """Tentative local change, confirmation from the store, inverse change on failure."""

    def __init__(self, gateway: EntryGateway, event_id: str, confirmed: Iterable[str] = ()):
        self.event_id = require_id(event_id, "event id")
        self._gateway = gateway
        confirmed = set(confirmed)
        self.selection = RosterSelector(confirmed)
        self._confirmed: set[str] = confirmed
        self._issued: dict[str, int] = {}
        self._resolved: dict[str, int] = {}
        self._tasks: set[asyncio.Task] = set()
        self.reverted: set[str] = set()
        self._closed = False

    @property
    def confirmed(self) -> frozenset[str]:
        return frozenset(self._confirmed)

    @property
    def saving(self) -> bool:
        return bool(self._tasks)

    def state(self, player_id: str) -> ToggleState:
        if self._issued.get(player_id, 0) > self._resolved.get(player_id, 0):
            return ToggleState.PENDING
        return ToggleState.IDLE

    def absorb(self, confirmed: Iterable[str]) -> None:
        """A fresh server-confirmed selection replaces local state."""
        confirmed = set(confirmed)
        self._confirmed = set(confirmed)
        self.selection.reset(confirmed)
        self.reverted.clear()

    def close(self) -> None:
        """Stop applying results; in-flight requests are not cancelled."""
        self._closed = True

    def toggle(self, player_id: str, checked: Optional[bool] = None) -> asyncio.Task:
        """Apply the change locally now and commit it in the background.

        Must be called from a running event loop. The returned task resolves to
        a ``ToggleOutcome`` and never raises.
        """
        player_id = require_id(player_id, "player id")
        if checked is None:
            checked = not self.selection.is_selected(player_id)
        self.selection.mark(player_id, checked)
        self.reverted.discard(player_id)
        token = self._issued.get(player_id, 0) + 1
        self._issued[player_id] = token
        task = asyncio.get_running_loop().create_task(self._commit(player_id, checked, token))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait until nothing is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def _commit(self, player_id: str, checked: bool, token: int) -> ToggleOutcome:
        try:
            if checked:
                await self._gateway.add_entry(self.event_id, player_id)
            else:
                await self._gateway.remove_entry(self.event_id, player_id)
        except Exception as e:
            if not isinstance(e, LeagueError):
                logger.exception("Unexpected failure syncing player %s", player_id)
            return self._fail(player_id, checked, token, e)
        finally:
            self._resolved[player_id] = max(self._resolved.get(player_id, 0), token)
        # The store did apply it, whether or not the user has moved on since
        if checked:
            self._confirmed.add(player_id)
        else:
            self._confirmed.discard(player_id)
        if self._closed:
            return ToggleOutcome(player_id, checked, ToggleStatus.DISCARDED)
        if token != self._issued.get(player_id):
            return ToggleOutcome(player_id, checked, ToggleStatus.STALE)
        return ToggleOutcome(player_id, checked, ToggleStatus.SAVED)

    def _fail(self, player_id: str, checked: bool, token: int, error: Exception) -> ToggleOutcome:
        message = getattr(error, "message", None) or str(error)
        if self._closed:
            return ToggleOutcome(player_id, checked, ToggleStatus.DISCARDED, message)
        if token != self._issued.get(player_id):
            newest_done = self._resolved.get(player_id, 0) >= self._issued[player_id]
            in_store = player_id in self._confirmed
            if newest_done and self.selection.is_selected(player_id) != in_store:
                # Every request for this player has answered; show what the store has
                self.selection.mark(player_id, in_store)
                self.reverted.add(player_id)
                logger.info("Resynced player %s in %s after late failure: %s", player_id, self.event_id, message)
                return ToggleOutcome(player_id, checked, ToggleStatus.REVERTED, message)
            logger.debug("Dropping stale failure for %s (token %d)", player_id, token)
            return ToggleOutcome(player_id, checked, ToggleStatus.STALE, message)
        self.selection.mark(player_id, not checked)
        self.reverted.add(player_id)
        logger.info("Reverted %s for player %s in %s: %s", "add" if checked else "remove", player_id, self.event_id, message)
        return ToggleOutcome(player_id, checked, ToggleStatus.REVERTED, message)


# --- Strategy B: batch submit ---


@dataclass
class SubmitResult:
    ok: bool
    added: frozenset[str] = frozenset()
    removed: frozenset[str] = frozenset()
    calls: int = 0
    message: str = "Saved"
    authorization_failed: bool = False
    pending: RosterDiff = field(default_factory=lambda: RosterDiff(frozenset(), frozenset()))


class BatchSyncController:
    """Local edits until submit; one exchange per non-empty side of the diff."""

    def __init__(self, gateway: EntryGateway, event_id: str):
        self.event_id = require_id(event_id, "event id")
        self._gateway = gateway
        self.selection = RosterSelector()
        self._entry_ids: dict[str, str] = {}  # player_id -> entry id, server-confirmed
        self._lock = asyncio.Lock()
        self.saving = False
        self.last_error: Optional[str] = None

    @property
    def confirmed(self) -> frozenset[str]:
        return frozenset(self._entry_ids)

    async def load(self) -> None:
        self.absorb(await self._gateway.list_entries(self.event_id))

    def absorb(self, entries: Iterable[EntryRecord]) -> None:
        """Take a fresh server-confirmed roster and reset local edits to it."""
        self._entry_ids = {e.player_id: e.id for e in entries}
        self.selection.reset(self._entry_ids)
        self.last_error = None

    def toggle(self, player_id: str) -> bool:
        return self.selection.toggle(require_id(player_id, "player id"))

    def set(self, player_ids: Iterable[str]) -> None:
        self.selection.set(require_id(p, "player id") for p in player_ids)

    def pending_diff(self) -> RosterDiff:
        return diff(self.selection.selected, self._entry_ids)

    async def submit(self) -> SubmitResult:
        """Push the current selection. Never clears local edits on failure."""
        async with self._lock:
            self.saving = True
            try:
                result = await self._submit()
            finally:
                self.saving = False
            self.last_error = None if result.ok else result.message
            return result

    async def _submit(self) -> SubmitResult:
        d = self.pending_diff()
        if d.is_empty:
            return SubmitResult(ok=True)
        # Resolve removals now; the store is not re-queried mid-submit
        remove_entry_ids = sorted(self._entry_ids[pid] for pid in d.to_remove)
        added: set[str] = set()
        removed: set[str] = set()
        calls = 0
        try:
            if d.to_add:
                calls += 1
                rows = await self._gateway.bulk_add(self.event_id, sorted(d.to_add))
                for row in rows:
                    if row.player_id in d.to_add:
                        self._entry_ids[row.player_id] = row.id
                        added.add(row.player_id)
            if d.to_remove:
                calls += 1
                await self._gateway.bulk_remove(remove_entry_ids)
                for pid in d.to_remove:
                    self._entry_ids.pop(pid, None)
                removed = set(d.to_remove)
        except AuthorizationError as e:
            logger.warning("Roster submit for %s rejected: %s", self.event_id, e.message)
            return self._partial(added, removed, calls, e.message, authorization_failed=True)
        except LeagueError as e:
            logger.warning("Roster submit for %s failed: %s", self.event_id, e.message)
            return self._partial(added, removed, calls, GENERIC_FAILURE)
        except Exception:
            logger.exception("Unexpected failure saving roster for %s", self.event_id)
            return self._partial(added, removed, calls, GENERIC_FAILURE)
        logger.info("Roster for %s saved: +%d -%d", self.event_id, len(added), len(removed))
        return SubmitResult(ok=True, added=frozenset(added), removed=frozenset(removed), calls=calls)

    def _partial(
        self, added: set[str], removed: set[str], calls: int, message: str, authorization_failed: bool = False
    ) -> SubmitResult:
        return SubmitResult(
            ok=False,
            added=frozenset(added),
            removed=frozenset(removed),
            calls=calls,
            message=message,
            authorization_failed=authorization_failed,
            pending=self.pending_diff(),
        )


async def reconcile_roster(gateway: EntryGateway, request: SyncRequest) -> SubmitResult:
    """Server-side batch reconcile of one event's roster to ``request``."""
    controller = BatchSyncController(gateway, request.event_id)
    await controller.load()
    controller.set(request.desired_player_ids)
    return await controller.submit()
