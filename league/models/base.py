"""Database base and session setup."""
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def new_id() -> str:
    """Opaque primary key for players, events and entries."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Naive UTC timestamp for DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


engine = create_async_engine(
    config.DATABASE_URL,
    echo=False,
)


def session_factory_for(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async_session_factory = session_factory_for(engine)


async def init_db(bind=None) -> None:
    """Create all tables. The read views are external and never created here."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
