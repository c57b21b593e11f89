"""Player model."""
from __future__ import annotations

from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from league.models.base import Base, new_id


class Player(Base):
    """League player. Handle is unique when set; lookups by handle ignore case."""

    __tablename__ = "players"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    handle: Mapped[Optional[str]] = mapped_column(String(64), unique=True, nullable=True)

    entries = relationship(
        "Entry", back_populates="player", cascade="all, delete-orphan"
    )
