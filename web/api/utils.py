"""Shared API utilities."""
from typing import Optional

import config
from league.models import Player


def player_label(player: Player | None, player_id: str) -> str:
    """Return human-readable name for a player. Falls back to a short ID for rows the views know but players don't."""
    if not player:
        return player_id[:8] if player_id else "Unknown"
    name = (player.display_name or "").strip()
    return name or "Unknown"


def handle_label(handle: Optional[str]) -> str:
    return f"@{handle}" if handle else ""


def money_label(cents: int | None) -> str:
    """Minor units to a display string, e.g. 2050 -> '£20.50'."""
    symbol = {"GBP": "£", "EUR": "€", "USD": "$"}.get(config.LEAGUE_CURRENCY, "")
    value = (cents or 0) / 100
    if symbol:
        return f"{symbol}{value:,.2f}"
    return f"{value:,.2f} {config.LEAGUE_CURRENCY}"
