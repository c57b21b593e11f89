"""Event model."""
from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import Date, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from league.models.base import Base, new_id, utcnow


def to_cents(amount: float | None) -> int:
    """Convert a pounds amount from a form (e.g. 20.5) to whole pence."""
    if not amount:
        return 0
    return int((Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class Event(Base):
    """A league night. Money columns are in minor units (pence)."""

    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(128), nullable=False)
    event_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    venue: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    buy_in_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    rake_cents: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    entries = relationship(
        "Entry", back_populates="event", cascade="all, delete-orphan"
    )
