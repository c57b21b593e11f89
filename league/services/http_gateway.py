"""EntryGateway over the league HTTP API (client side)."""
from __future__ import annotations

import logging
from typing import Iterable, Optional

import httpx

import config
from league.services.errors import (
    AuthorizationError,
    ConflictError,
    GatewayError,
    LeagueError,
    NotFoundError,
    ValidationError,
    require_id,
)
from league.services.gateway import EntryRecord

logger = logging.getLogger("league.gateway.http")

_STATUS_ERRORS: dict[int, type[LeagueError]] = {
    400: ValidationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ConflictError,
    422: ValidationError,
}


def _error_for(response: httpx.Response) -> LeagueError:
    try:
        detail = response.json().get("detail", response.text)
    except Exception:
        detail = response.text
    if not isinstance(detail, str):
        detail = str(detail)
    return _STATUS_ERRORS.get(response.status_code, GatewayError)(detail or f"HTTP {response.status_code}")


class HttpEntryGateway:
    """Talks to ``/api`` endpoints. The caller owns the ``httpx.AsyncClient`` lifecycle."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    @classmethod
    def open(cls, base_url: Optional[str] = None, timeout: Optional[float] = None) -> "HttpEntryGateway":
        """Gateway with its own client; close it with ``aclose``."""
        client = httpx.AsyncClient(
            base_url=base_url or config.API_BASE_URL,
            timeout=timeout or config.HTTP_TIMEOUT,
        )
        return cls(client)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, url: str, json=None):
        try:
            r = await self._client.request(method, url, json=json)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, url, e)
            raise GatewayError(f"Could not reach the league API: {e}") from e
        if r.status_code >= 400:
            raise _error_for(r)
        try:
            return r.json()
        except ValueError as e:
            raise GatewayError(f"Unreadable response from {method} {url}") from e

    async def list_entries(self, event_id: str) -> list[EntryRecord]:
        event_id = require_id(event_id, "event id")
        data = await self._request("GET", f"/api/events/{event_id}/entries")
        return [EntryRecord.model_validate(row) for row in data]

    async def add_entry(self, event_id: str, player_id: str) -> Optional[EntryRecord]:
        event_id = require_id(event_id, "event id")
        player_id = require_id(player_id, "player id")
        data = await self._request("POST", f"/api/events/{event_id}/entries", json={"player_id": player_id})
        return EntryRecord.model_validate(data)

    async def remove_entry(self, event_id: str, player_id: str) -> int:
        event_id = require_id(event_id, "event id")
        player_id = require_id(player_id, "player id")
        data = await self._request("DELETE", f"/api/events/{event_id}/players/{player_id}/entry")
        return data.get("deleted", 0)

    async def remove_entry_by_id(self, entry_id: str) -> int:
        entry_id = require_id(entry_id, "entry id")
        data = await self._request("DELETE", f"/api/entries/{entry_id}")
        return data.get("deleted", 0)

    async def bulk_add(self, event_id: str, player_ids: Iterable[str]) -> list[EntryRecord]:
        event_id = require_id(event_id, "event id")
        ids = sorted({require_id(p, "player id") for p in player_ids})
        if not ids:
            return []
        data = await self._request("POST", f"/api/events/{event_id}/entries/bulk-add", json={"player_ids": ids})
        return [EntryRecord.model_validate(row) for row in data]

    async def bulk_remove(self, entry_ids: Iterable[str]) -> int:
        ids = sorted({require_id(e, "entry id") for e in entry_ids})
        if not ids:
            return 0
        data = await self._request("POST", "/api/entries/bulk-remove", json={"entry_ids": ids})
        return data.get("deleted", 0)

    async def increment_rebuy(self, entry_id: str) -> EntryRecord:
        entry_id = require_id(entry_id, "entry id")
        return EntryRecord.model_validate(await self._request("POST", f"/api/entries/{entry_id}/rebuy"))

    async def toggle_addon(self, entry_id: str) -> EntryRecord:
        entry_id = require_id(entry_id, "entry id")
        return EntryRecord.model_validate(await self._request("POST", f"/api/entries/{entry_id}/addon"))
