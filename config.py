"""Configuration for the league roster service."""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(__file__).parent / 'league.db'}",
)


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _parse_float(value: str, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


# Web API
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = _parse_int(os.getenv("API_PORT", "8000"), 8000)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Roster candidate list is capped (same as the admin roster page)
PLAYER_LIST_LIMIT = _parse_int(os.getenv("PLAYER_LIST_LIMIT", "1000"), 1000)

# Money is stored in minor units; this is only used for display labels
LEAGUE_CURRENCY = os.getenv("LEAGUE_CURRENCY", "GBP")

# Client-side gateway (HttpEntryGateway) talking to this API
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")
HTTP_TIMEOUT = _parse_float(os.getenv("HTTP_TIMEOUT", "10"), 10.0)
