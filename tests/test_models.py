"""Tests for model helpers."""
from datetime import date

import pytest

from league.models import Entry, Event, Player
from league.models.base import utcnow
from league.models.event import to_cents


@pytest.mark.parametrize(
    "amount,cents",
    [(None, 0), (0, 0), (20, 2000), (20.5, 2050), (0.125, 13), (2.675, 268), (1.005, 101)],
)
def test_to_cents_rounds_half_up(amount, cents):
    assert to_cents(amount) == cents


def test_utcnow_is_naive_utc():
    now = utcnow()
    assert now.tzinfo is None


@pytest.mark.asyncio
async def test_created_at_defaults(session_factory):
    async with session_factory() as session:
        event = Event(title="Monthly Main", event_date=date(2025, 4, 1))
        player = Player(display_name="Ann")
        session.add_all([event, player])
        await session.flush()
        entry = Entry(event_id=event.id, player_id=player.id)
        session.add(entry)
        await session.commit()
        assert event.created_at is not None
        assert entry.created_at >= event.created_at
