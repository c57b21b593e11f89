"""Public results API: per-event standings and league totals (read from database views)."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker

from league.models import Event, Player, event_standings, league_totals
from web.api.routes import EventResponse
from web.api.utils import handle_label, money_label, player_label
from web.deps import get_session_factory

router = APIRouter(prefix="/api", tags=["standings"])


@router.get("/events/{event_id}")
async def get_event(event_id: str, session_factory: async_sessionmaker = Depends(get_session_factory)):
    """Event details with results. Prize pool is the sum of payouts."""
    async with session_factory() as session:
        event = await session.get(Event, event_id)
        if not event:
            raise HTTPException(404, "Event not found")
        result = await session.execute(
            select(event_standings)
            .where(event_standings.c.event_id == event_id)
            .order_by(event_standings.c.finish_place.asc().nulls_last(), event_standings.c.display_name)
        )
        rows = result.mappings().all()
    standings = [
        {
            "entry_id": r["entry_id"],
            "finish_place": r["finish_place"],
            "display_name": r["display_name"],
            "handle": handle_label(r["handle"]),
            "cash_cents": r["cash_cents"] or 0,
            "cash_label": money_label(r["cash_cents"]),
        }
        for r in rows
    ]
    prize_pool = sum(r["cash_cents"] for r in standings)
    return {
        "event": EventResponse.model_validate(event),
        "entrants": len(standings),
        "prize_pool_cents": prize_pool,
        "prize_pool_label": money_label(prize_pool),
        "standings": standings,
    }


@router.get("/standings")
async def get_league_standings(session_factory: async_sessionmaker = Depends(get_session_factory)):
    """League table ordered by points. Missing totals count as zero."""
    async with session_factory() as session:
        result = await session.execute(
            select(league_totals).order_by(league_totals.c.total_points.desc().nulls_last())
        )
        totals = result.mappings().all()
        ids = [t["player_id"] for t in totals]
        players_by_id = {}
        if ids:
            players = await session.execute(select(Player).where(Player.id.in_(ids)))
            players_by_id = {p.id: p for p in players.scalars().all()}
    rows = []
    for rank, t in enumerate(totals, start=1):
        player = players_by_id.get(t["player_id"])
        rows.append({
            "rank": rank,
            "player_id": t["player_id"],
            "display_name": player_label(player, t["player_id"]),
            "handle": handle_label(player.handle if player else None),
            "total_points": t["total_points"] or 0,
            "wins": t["wins"] or 0,
            "podiums": t["podiums"] or 0,
        })
    return rows
