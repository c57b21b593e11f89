"""Pytest configuration and fixtures for API and sync tests."""
import os

# Set test env BEFORE any imports that use config
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LEAGUE_CURRENCY"] = "GBP"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import create_async_engine

from league.models.base import init_db, session_factory_for
from league.services.errors import GatewayError
from league.services.gateway import EntryRecord
from league.services.revalidate import Revalidator
from web.api.main import app
from web.deps import get_session_factory

# The real views live in the production database; these stand-ins give the
# public endpoints something with the same columns to read.
_TEST_SCHEMA = [
    "CREATE TABLE test_results (entry_id VARCHAR(36) PRIMARY KEY, finish_place INTEGER, cash_cents INTEGER)",
    """
    CREATE VIEW v_event_standings AS
    SELECT e.event_id AS event_id, e.id AS entry_id, r.finish_place AS finish_place,
           COALESCE(r.cash_cents, 0) AS cash_cents, p.display_name AS display_name, p.handle AS handle
    FROM entries e
    JOIN players p ON p.id = e.player_id
    LEFT JOIN test_results r ON r.entry_id = e.id
    """,
    """
    CREATE VIEW v_league_totals AS
    SELECT e.player_id AS player_id,
           SUM(CASE r.finish_place WHEN 1 THEN 10 WHEN 2 THEN 6 WHEN 3 THEN 4 ELSE 1 END) AS total_points,
           SUM(CASE WHEN r.finish_place = 1 THEN 1 ELSE 0 END) AS wins,
           SUM(CASE WHEN r.finish_place <= 3 THEN 1 ELSE 0 END) AS podiums
    FROM entries e
    LEFT JOIN test_results r ON r.entry_id = e.id
    GROUP BY e.player_id
    """,
]


@pytest.fixture
async def session_factory(tmp_path):
    """Fresh SQLite file database per test, with tables and stand-in views."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'league-test.db'}")
    await init_db(engine)
    async with engine.begin() as conn:
        for sql in _TEST_SCHEMA:
            await conn.execute(text(sql))
    yield session_factory_for(engine)
    await engine.dispose()


@pytest.fixture
def revalidator():
    app.state.revalidator = Revalidator()
    return app.state.revalidator


@pytest.fixture
async def client(session_factory, revalidator):
    """Async HTTP client for testing the API."""
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def event_id(client):
    r = await client.post(
        "/api/events",
        json={"title": "Weekly League #12", "event_date": "2025-03-14", "venue": "Clubhouse", "buy_in": 20, "rake": 2},
    )
    assert r.status_code == 200, r.text
    return r.json()["id"]


@pytest.fixture
async def players(client):
    """Three players keyed by a short name: ann (@ann), bob (@Bobby), cat (no handle)."""
    created = {}
    for key, name, handle in [("ann", "Ann Archer", "ann"), ("bob", "Bob Baker", "Bobby"), ("cat", "Cat Cole", None)]:
        r = await client.post("/api/players", json={"display_name": name, "handle": handle})
        assert r.status_code == 200, r.text
        created[key] = r.json()["id"]
    return created


class FakeGateway:
    """In-memory EntryGateway that records calls and can be told to fail."""

    def __init__(self, event_id="ev-1", player_ids=()):
        self.event_id = event_id
        self.rows = {pid: EntryRecord(id=f"entry-{pid}", event_id=event_id, player_id=pid) for pid in player_ids}
        self.calls = []
        self.failures = {}  # op name -> exception to raise on every call

    def _check(self, op, *args):
        self.calls.append((op, *args))
        if op in self.failures:
            raise self.failures[op]

    def call_names(self):
        return [c[0] for c in self.calls]

    async def list_entries(self, event_id):
        self._check("list_entries", event_id)
        return list(self.rows.values())

    async def add_entry(self, event_id, player_id):
        self._check("add_entry", event_id, player_id)
        row = self.rows.setdefault(player_id, EntryRecord(id=f"entry-{player_id}", event_id=event_id, player_id=player_id))
        return row

    async def remove_entry(self, event_id, player_id):
        self._check("remove_entry", event_id, player_id)
        return 1 if self.rows.pop(player_id, None) else 0

    async def remove_entry_by_id(self, entry_id):
        return await self.bulk_remove([entry_id])

    async def bulk_add(self, event_id, player_ids):
        player_ids = list(player_ids)
        self._check("bulk_add", event_id, player_ids)
        return [await self.add_entry_silently(event_id, pid) for pid in player_ids]

    async def add_entry_silently(self, event_id, player_id):
        return self.rows.setdefault(player_id, EntryRecord(id=f"entry-{player_id}", event_id=event_id, player_id=player_id))

    async def bulk_remove(self, entry_ids):
        entry_ids = list(entry_ids)
        self._check("bulk_remove", entry_ids)
        doomed = [pid for pid, row in self.rows.items() if row.id in entry_ids]
        for pid in doomed:
            del self.rows[pid]
        return len(doomed)

    async def increment_rebuy(self, entry_id):
        raise GatewayError("not used in these tests")

    async def toggle_addon(self, entry_id):
        raise GatewayError("not used in these tests")


@pytest.fixture
def make_gateway():
    """Factory: make_gateway(event_id="ev-1", player_ids=("a", "b"))."""
    return FakeGateway
