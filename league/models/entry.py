"""Entry model - player registered for an event."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from league.models.base import Base, new_id, utcnow

DEFAULT_BUYINS = 1


class Entry(Base):
    """One player's registration in one event, with buy-in counters."""

    __tablename__ = "entries"
    __table_args__ = (
        UniqueConstraint("event_id", "player_id", name="uq_entries_event_player"),
        CheckConstraint("buyins >= 1", name="ck_entries_buyins"),
        CheckConstraint("rebuys >= 0", name="ck_entries_rebuys"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    player_id: Mapped[str] = mapped_column(ForeignKey("players.id", ondelete="CASCADE"), nullable=False)
    buyins: Mapped[int] = mapped_column(Integer, nullable=False, default=DEFAULT_BUYINS)
    rebuys: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    addon: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    event: Mapped["Event"] = relationship("Event", back_populates="entries")
    player: Mapped["Player"] = relationship("Player", back_populates="entries")
