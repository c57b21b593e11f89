"""Player lookup and creation used by the quick-add forms."""
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from league.models import Player
from league.services.errors import NotFoundError, ValidationError, classify_db_error

logger = logging.getLogger("league.players")


def normalize_handle(handle: Optional[str]) -> Optional[str]:
    """Strip whitespace and a leading '@'. Empty becomes None."""
    if handle is None:
        return None
    handle = handle.strip().lstrip("@").strip()
    return handle or None


async def get_player_by_handle(session: AsyncSession, handle: str) -> Optional[Player]:
    """Case-insensitive handle lookup."""
    result = await session.execute(
        select(Player).where(func.lower(Player.handle) == handle.lower()).limit(1)
    )
    return result.scalar_one_or_none()


async def find_player(session: AsyncSession, handle_or_name: str) -> Player:
    """Resolve '@handle' or an exact display name. Handle wins."""
    text = (handle_or_name or "").strip()
    if not text:
        raise ValidationError("Missing data.")
    handle = normalize_handle(text)
    if handle:
        player = await get_player_by_handle(session, handle)
        if player:
            return player
    result = await session.execute(
        select(Player).where(Player.display_name == text).order_by(Player.id).limit(1)
    )
    player = result.scalar_one_or_none()
    if not player:
        raise NotFoundError("Player not found.")
    return player


async def get_or_create_player(session: AsyncSession, display_name: str, handle: Optional[str] = None) -> Player:
    """Reuse the player owning ``handle`` if any, otherwise create one."""
    display_name = (display_name or "").strip()
    if not display_name:
        raise ValidationError("Display name is required.")
    handle = normalize_handle(handle)
    if handle:
        existing = await get_player_by_handle(session, handle)
        if existing:
            return existing
    player = Player(display_name=display_name, handle=handle)
    session.add(player)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        # Lost a race for the same handle
        existing = await get_player_by_handle(session, handle) if handle else None
        if existing:
            return existing
        raise classify_db_error(e, "create players") from e
    logger.info("Created player %s (%s)", player.display_name, player.id)
    return player
