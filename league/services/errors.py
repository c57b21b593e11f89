"""Error taxonomy for roster persistence and sync."""
from __future__ import annotations

from sqlalchemy.exc import DBAPIError, IntegrityError

# Substrings the store uses when a write is rejected for privilege reasons
_AUTH_MARKERS = ("permission denied", "row-level security", "rls", "not authorized")


class LeagueError(Exception):
    """Base class. ``status_code`` is what the HTTP layer answers with."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LeagueError):
    """Missing or malformed identifiers. Raised before any I/O."""

    status_code = 400


class AuthorizationError(LeagueError):
    """The store rejected a write for privilege reasons. Never retried."""

    status_code = 403


class NotFoundError(LeagueError):
    status_code = 404


class ConflictError(LeagueError):
    """Duplicate row. Entry inserts swallow this."""

    status_code = 409


class GatewayError(LeagueError):
    """Any other persistence or transport failure."""

    status_code = 503


def require_id(value, name: str) -> str:
    """Fail fast on a missing identifier."""
    if value is None or not str(value).strip():
        raise ValidationError(f"Missing {name}.")
    return str(value).strip()


def classify_db_error(exc: Exception, action: str) -> LeagueError:
    """Map a SQLAlchemy error to the taxonomy. ``action`` is e.g. 'add entries'."""
    if isinstance(exc, IntegrityError):
        return ConflictError(f"Duplicate: {exc.orig}")
    text = str(getattr(exc, "orig", None) or exc).lower()
    if isinstance(exc, DBAPIError) and any(marker in text for marker in _AUTH_MARKERS):
        return AuthorizationError(f"Not authorized to {action} (check admin role).")
    return GatewayError(f"Could not {action}: {getattr(exc, 'orig', None) or exc}")
