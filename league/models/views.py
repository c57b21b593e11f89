"""Read-only standings views.

Scoring, payouts and league totals are computed by database views that are
managed outside this service. They are declared on their own ``MetaData`` so
``init_db`` never tries to create them.
"""
from sqlalchemy import Column, Integer, MetaData, String, Table

view_metadata = MetaData()

event_standings = Table(
    "v_event_standings",
    view_metadata,
    Column("event_id", String(36)),
    Column("entry_id", String(36)),
    Column("finish_place", Integer, nullable=True),
    Column("cash_cents", Integer),
    Column("display_name", String(128)),
    Column("handle", String(64), nullable=True),
)

league_totals = Table(
    "v_league_totals",
    view_metadata,
    Column("player_id", String(36)),
    Column("total_points", Integer, nullable=True),
    Column("wins", Integer, nullable=True),
    Column("podiums", Integer, nullable=True),
)

