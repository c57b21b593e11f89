"""Database models."""
from league.models.base import Base, init_db
from league.models.player import Player
from league.models.event import Event
from league.models.entry import Entry
from league.models.views import event_standings, league_totals

__all__ = [
    "Base",
    "Player",
    "Event",
    "Entry",
    "event_standings",
    "league_totals",
    "init_db",
]
