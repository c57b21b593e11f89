"""FastAPI dependencies: database sessions, revalidation and the entries gateway."""
from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from league.models.base import async_session_factory
from league.services.gateway import SqlEntryGateway
from league.services.revalidate import Revalidator


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for the request. Tests override this with their own database."""
    return async_session_factory


def get_revalidator(request: Request) -> Revalidator:
    revalidator = getattr(request.app.state, "revalidator", None)
    if revalidator is None:
        revalidator = request.app.state.revalidator = Revalidator()
    return revalidator


def get_gateway(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    revalidator: Revalidator = Depends(get_revalidator),
) -> SqlEntryGateway:
    """Request-scoped entries gateway."""
    return SqlEntryGateway(session_factory, revalidator)
