"""Persistence gateway for event entries (SQL implementation)."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Iterable, Optional, Protocol

from pydantic import BaseModel, ConfigDict
from sqlalchemy import delete, not_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from league.models import Entry
from league.models.entry import DEFAULT_BUYINS
from league.services.errors import LeagueError, NotFoundError, classify_db_error, require_id
from league.services.revalidate import Revalidator

logger = logging.getLogger("league.gateway")


class EntryRecord(BaseModel):
    """Persisted entry row as seen by the sync core."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    event_id: str
    player_id: str
    buyins: int = DEFAULT_BUYINS
    rebuys: int = 0
    addon: bool = False


class EntryGateway(Protocol):
    """Operations the roster core needs from the entries store."""

    async def list_entries(self, event_id: str) -> list[EntryRecord]: ...

    async def add_entry(self, event_id: str, player_id: str) -> Optional[EntryRecord]: ...

    async def remove_entry(self, event_id: str, player_id: str) -> int: ...

    async def remove_entry_by_id(self, entry_id: str) -> int: ...

    async def bulk_add(self, event_id: str, player_ids: Iterable[str]) -> list[EntryRecord]: ...

    async def bulk_remove(self, entry_ids: Iterable[str]) -> int: ...

    async def increment_rebuy(self, entry_id: str) -> EntryRecord: ...

    async def toggle_addon(self, entry_id: str) -> EntryRecord: ...


def _clean_ids(ids: Iterable[str], name: str) -> list[str]:
    return sorted({require_id(i, name) for i in ids})


class SqlEntryGateway:
    """EntryGateway over SQLAlchemy async sessions. One session per operation."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        revalidator: Optional[Revalidator] = None,
    ):
        self._session_factory = session_factory
        self._revalidator = revalidator

    @asynccontextmanager
    async def _session(self, action: str):
        async with self._session_factory() as session:
            try:
                yield session
            except LeagueError:
                raise
            except SQLAlchemyError as e:
                await session.rollback()
                logger.warning("Failed to %s: %s", action, e)
                raise classify_db_error(e, action) from e

    def _changed(self, event_id: str, public: bool = True) -> None:
        if self._revalidator is not None:
            self._revalidator.entries_changed(event_id, public=public)

    async def _entries_for(self, session: AsyncSession, event_id: str, player_ids: list[str]) -> list[Entry]:
        result = await session.execute(
            select(Entry)
            .where(Entry.event_id == event_id, Entry.player_id.in_(player_ids))
            .order_by(Entry.created_at, Entry.id)
        )
        return list(result.scalars().all())

    async def list_entries(self, event_id: str) -> list[EntryRecord]:
        event_id = require_id(event_id, "event id")
        async with self._session("load entries") as session:
            result = await session.execute(
                select(Entry).where(Entry.event_id == event_id).order_by(Entry.created_at, Entry.id)
            )
            return [EntryRecord.model_validate(e) for e in result.scalars().all()]

    async def add_entry(self, event_id: str, player_id: str) -> Optional[EntryRecord]:
        """Insert one entry. An existing entry for the pair counts as success."""
        event_id = require_id(event_id, "event id")
        player_id = require_id(player_id, "player id")
        async with self._session("add entries") as session:
            entry = Entry(event_id=event_id, player_id=player_id)
            session.add(entry)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                existing = await self._entries_for(session, event_id, [player_id])
                if not existing:
                    raise
                logger.debug("Player %s already entered in %s", player_id, event_id)
                entry = existing[0]
            self._changed(event_id)
            return EntryRecord.model_validate(entry)

    async def remove_entry(self, event_id: str, player_id: str) -> int:
        event_id = require_id(event_id, "event id")
        player_id = require_id(player_id, "player id")
        async with self._session("remove entries") as session:
            result = await session.execute(
                delete(Entry).where(Entry.event_id == event_id, Entry.player_id == player_id)
            )
            await session.commit()
            self._changed(event_id)
            return result.rowcount or 0

    async def remove_entry_by_id(self, entry_id: str) -> int:
        return await self.bulk_remove([entry_id])

    async def bulk_add(self, event_id: str, player_ids: Iterable[str]) -> list[EntryRecord]:
        """Insert one entry per player not already entered. Returns all rows for ``player_ids``."""
        event_id = require_id(event_id, "event id")
        ids = _clean_ids(player_ids, "player id")
        if not ids:
            return []
        async with self._session("add entries") as session:
            # One retry covers a concurrent writer entering some of the same players
            for attempt in range(2):
                existing = {e.player_id for e in await self._entries_for(session, event_id, ids)}
                missing = [pid for pid in ids if pid not in existing]
                if not missing:
                    break
                session.add_all([Entry(event_id=event_id, player_id=pid) for pid in missing])
                try:
                    await session.commit()
                    break
                except IntegrityError:
                    await session.rollback()
                    if attempt:
                        raise
                    logger.info("Duplicate entries while bulk adding to %s, retrying", event_id)
            entries = await self._entries_for(session, event_id, ids)
            logger.info("Bulk added %d player(s) to %s", len(missing), event_id)
            self._changed(event_id)
            return [EntryRecord.model_validate(e) for e in entries]

    async def bulk_remove(self, entry_ids: Iterable[str]) -> int:
        ids = _clean_ids(entry_ids, "entry id")
        if not ids:
            return 0
        async with self._session("remove entries") as session:
            result = await session.execute(select(Entry.event_id).where(Entry.id.in_(ids)).distinct())
            event_ids = [row[0] for row in result.fetchall()]
            deleted = await session.execute(delete(Entry).where(Entry.id.in_(ids)))
            await session.commit()
            for event_id in event_ids:
                self._changed(event_id)
            return deleted.rowcount or 0

    async def _update_counter(self, entry_id: str, action: str, **values) -> EntryRecord:
        entry_id = require_id(entry_id, "entry id")
        async with self._session(action) as session:
            result = await session.execute(update(Entry).where(Entry.id == entry_id).values(**values))
            if not result.rowcount:
                await session.rollback()
                raise NotFoundError("Entry not found")
            await session.commit()
            entry = await session.get(Entry, entry_id)
            if entry is None:
                raise NotFoundError("Entry not found")
            self._changed(entry.event_id, public=False)
            return EntryRecord.model_validate(entry)

    async def increment_rebuy(self, entry_id: str) -> EntryRecord:
        return await self._update_counter(entry_id, "record rebuy", rebuys=Entry.rebuys + 1)

    async def toggle_addon(self, entry_id: str) -> EntryRecord:
        return await self._update_counter(entry_id, "toggle add-on", addon=not_(Entry.addon))
