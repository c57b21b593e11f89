"""API routes for events, players, entries and roster sync."""
from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import config
from league.models import Event, Player
from league.models.event import to_cents
from league.services.gateway import EntryRecord, SqlEntryGateway
from league.services.players import find_player, get_or_create_player
from league.services.revalidate import Revalidator
from league.services.roster import filter_candidates
from league.services.sync import SyncRequest, reconcile_roster
from web.api.utils import money_label
from web.deps import get_gateway, get_revalidator, get_session_factory

logger = logging.getLogger("league.api")

router = APIRouter(prefix="/api", tags=["events"])


# --- Pydantic schemas ---


class EventCreate(BaseModel):
    title: str
    event_date: Optional[date] = None
    venue: Optional[str] = None
    buy_in: float = 0  # pounds, as typed in the form
    rake: float = 0


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    event_date: date
    venue: Optional[str]
    buy_in_cents: int
    rake_cents: Optional[int]


class PlayerCreate(BaseModel):
    display_name: str
    handle: Optional[str] = None


class PlayerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    display_name: str
    handle: Optional[str]


class EntryCreate(BaseModel):
    player_id: str


class ExistingPlayerEntry(BaseModel):
    handle_or_name: str


class EntryWithPlayer(EntryRecord):
    """Entry row plus the player columns the admin table shows."""

    display_name: str
    handle: Optional[str] = None


class QuickAddResponse(BaseModel):
    entry: EntryRecord
    player: PlayerResponse


class BulkAddRequest(BaseModel):
    player_ids: list[str]


class BulkRemoveRequest(BaseModel):
    entry_ids: list[str]


class RosterCandidate(PlayerResponse):
    selected: bool = False


class RosterUpdate(BaseModel):
    desired_player_ids: list[str] = []


async def _require_event(session: AsyncSession, event_id: str) -> Event:
    event = await session.get(Event, event_id)
    if not event:
        raise HTTPException(404, "Event not found")
    return event


async def _require_players(session: AsyncSession, player_ids: list[str]) -> None:
    if not player_ids:
        return
    result = await session.execute(select(Player.id).where(Player.id.in_(player_ids)))
    unknown = set(player_ids) - {row[0] for row in result.fetchall()}
    if unknown:
        raise HTTPException(404, f"Player not found: {', '.join(sorted(unknown))}")


# --- Events ---


@router.get("/events")
async def list_events(session_factory: async_sessionmaker = Depends(get_session_factory)):
    """List events, newest first."""
    async with session_factory() as session:
        result = await session.execute(select(Event).order_by(Event.event_date.desc(), Event.created_at.desc()))
        return [
            {**EventResponse.model_validate(e).model_dump(), "buy_in_label": money_label(e.buy_in_cents)}
            for e in result.scalars().all()
        ]


@router.post("/events")
async def create_event(
    body: EventCreate,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    revalidator: Revalidator = Depends(get_revalidator),
):
    """Create an event. Buy-in and rake arrive in pounds and are stored in pence."""
    title = body.title.strip()
    if not title or not body.event_date:
        raise HTTPException(400, "Title and Date are required.")
    async with session_factory() as session:
        event = Event(
            title=title,
            event_date=body.event_date,
            venue=(body.venue or "").strip() or None,
            buy_in_cents=to_cents(body.buy_in),
            rake_cents=to_cents(body.rake),
        )
        session.add(event)
        await session.commit()
        await session.refresh(event)
        logger.info("Created event %s (%s)", event.title, event.id)
    revalidator.revalidate_path("/admin/events")
    revalidator.revalidate_path("/events")
    return EventResponse.model_validate(event)


# --- Players ---


@router.get("/players")
async def list_players(q: str = "", session_factory: async_sessionmaker = Depends(get_session_factory)):
    """All players by display name, optionally filtered by name or handle."""
    async with session_factory() as session:
        result = await session.execute(
            select(Player).order_by(Player.display_name, Player.id).limit(config.PLAYER_LIST_LIMIT)
        )
        players = list(result.scalars().all())
    return [PlayerResponse.model_validate(p) for p in filter_candidates(players, q)]


@router.post("/players")
async def create_player(body: PlayerCreate, session_factory: async_sessionmaker = Depends(get_session_factory)):
    """Create a player, or return the one that already owns the handle."""
    async with session_factory() as session:
        player = await get_or_create_player(session, body.display_name, body.handle)
        return PlayerResponse.model_validate(player)


# --- Entries ---


@router.get("/events/{event_id}/entries")
async def list_entries(
    event_id: str,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    gateway: SqlEntryGateway = Depends(get_gateway),
):
    """Entries in creation order, with player name and handle."""
    async with session_factory() as session:
        await _require_event(session, event_id)
    entries = await gateway.list_entries(event_id)
    ids = list({e.player_id for e in entries})
    players_by_id = {}
    if ids:
        async with session_factory() as session:
            result = await session.execute(select(Player).where(Player.id.in_(ids)))
            players_by_id = {p.id: p for p in result.scalars().all()}
    rows = []
    for e in entries:
        player = players_by_id.get(e.player_id)
        rows.append(
            EntryWithPlayer(
                **e.model_dump(),
                display_name=player.display_name if player else "Unknown",
                handle=player.handle if player else None,
            )
        )
    return rows


@router.post("/events/{event_id}/entries")
async def add_entry(
    event_id: str,
    body: EntryCreate,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    gateway: SqlEntryGateway = Depends(get_gateway),
):
    """Enter a player. Entering someone twice is not an error."""
    async with session_factory() as session:
        await _require_event(session, event_id)
        await _require_players(session, [body.player_id])
    return await gateway.add_entry(event_id, body.player_id)


@router.post("/events/{event_id}/entries/existing")
async def add_existing_player(
    event_id: str,
    body: ExistingPlayerEntry,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    gateway: SqlEntryGateway = Depends(get_gateway),
):
    """Enter an existing player by @handle (any case) or exact display name."""
    async with session_factory() as session:
        await _require_event(session, event_id)
        player = await find_player(session, body.handle_or_name)
    entry = await gateway.add_entry(event_id, player.id)
    return QuickAddResponse(entry=entry, player=PlayerResponse.model_validate(player))


@router.post("/events/{event_id}/entries/new-player")
async def create_and_add_player(
    event_id: str,
    body: PlayerCreate,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    gateway: SqlEntryGateway = Depends(get_gateway),
):
    """Create a player (or reuse one by handle) and enter them."""
    async with session_factory() as session:
        await _require_event(session, event_id)
        player = await get_or_create_player(session, body.display_name, body.handle)
    entry = await gateway.add_entry(event_id, player.id)
    return QuickAddResponse(entry=entry, player=PlayerResponse.model_validate(player))


@router.delete("/events/{event_id}/players/{player_id}/entry")
async def remove_player_entry(event_id: str, player_id: str, gateway: SqlEntryGateway = Depends(get_gateway)):
    """Remove a player from an event's roster."""
    deleted = await gateway.remove_entry(event_id, player_id)
    return {"ok": True, "deleted": deleted}


@router.post("/events/{event_id}/entries/bulk-add")
async def bulk_add_entries(
    event_id: str,
    body: BulkAddRequest,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    gateway: SqlEntryGateway = Depends(get_gateway),
):
    """Enter several players in one call. Returns the entries for all of them."""
    async with session_factory() as session:
        await _require_event(session, event_id)
        await _require_players(session, sorted(set(body.player_ids)))
    return await gateway.bulk_add(event_id, body.player_ids)


@router.post("/entries/bulk-remove")
async def bulk_remove_entries(body: BulkRemoveRequest, gateway: SqlEntryGateway = Depends(get_gateway)):
    """Delete entries by entry id."""
    deleted = await gateway.bulk_remove(body.entry_ids)
    return {"ok": True, "deleted": deleted}


@router.delete("/entries/{entry_id}")
async def remove_entry(entry_id: str, gateway: SqlEntryGateway = Depends(get_gateway)):
    deleted = await gateway.remove_entry_by_id(entry_id)
    return {"ok": True, "deleted": deleted}


@router.post("/entries/{entry_id}/rebuy")
async def increment_rebuy(entry_id: str, gateway: SqlEntryGateway = Depends(get_gateway)):
    return await gateway.increment_rebuy(entry_id)


@router.post("/entries/{entry_id}/addon")
async def toggle_addon(entry_id: str, gateway: SqlEntryGateway = Depends(get_gateway)):
    return await gateway.toggle_addon(entry_id)


# --- Roster (checkbox view) ---


@router.get("/events/{event_id}/roster")
async def get_roster(
    event_id: str,
    q: str = "",
    session_factory: async_sessionmaker = Depends(get_session_factory),
    gateway: SqlEntryGateway = Depends(get_gateway),
):
    """Candidate players with their server-confirmed selection, filtered by name or handle."""
    async with session_factory() as session:
        await _require_event(session, event_id)
        result = await session.execute(
            select(Player).order_by(Player.display_name, Player.id).limit(config.PLAYER_LIST_LIMIT)
        )
        players = list(result.scalars().all())
    selected = {e.player_id for e in await gateway.list_entries(event_id)}
    candidates = [
        RosterCandidate(id=p.id, display_name=p.display_name, handle=p.handle, selected=p.id in selected)
        for p in filter_candidates(players, q)
    ]
    return {
        "event_id": event_id,
        "selected_count": len(selected),
        "selected_player_ids": sorted(selected),
        "candidates": candidates,
    }


@router.put("/events/{event_id}/roster")
async def update_roster(
    event_id: str,
    body: RosterUpdate,
    session_factory: async_sessionmaker = Depends(get_session_factory),
    gateway: SqlEntryGateway = Depends(get_gateway),
):
    """Reconcile the event's entries to exactly ``desired_player_ids``."""
    request = SyncRequest.from_form({"event_id": event_id, "desired_player_ids": body.desired_player_ids})
    async with session_factory() as session:
        await _require_event(session, event_id)
        await _require_players(session, request.desired_player_ids)
    result = await reconcile_roster(gateway, request)
    content = {
        "ok": result.ok,
        "added": sorted(result.added),
        "removed": sorted(result.removed),
        "calls": result.calls,
        "message": result.message,
    }
    if not result.ok:
        return JSONResponse(status_code=403 if result.authorization_failed else 503, content=content)
    return content

