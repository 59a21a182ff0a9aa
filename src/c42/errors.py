"""Domain exceptions.

Every error carries the HTTP status it maps to. The global handlers in
``c42.middleware.error_handler`` render them as ``{"detail": ...}``; the
WebSocket loop turns them into ``error`` frames instead.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError


class C42Error(Exception):
    """Base class for all domain errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFound(C42Error):
    """Referenced user, chat, rank or assignment does not exist."""

    status_code = 404


class ValidationError(C42Error):
    """Malformed frame or invalid request field."""

    status_code = 400


class RankLimitExceeded(C42Error):
    """User already holds the maximum number of ranks."""

    status_code = 409


class Forbidden(C42Error):
    """Role check failed."""

    status_code = 403


class StorageError(C42Error):
    """Underlying persistence failure."""

    status_code = 500


class RankTableError(RuntimeError):
    """System rank table is inconsistent. Raised at startup."""


@asynccontextmanager
async def storage_errors(action: str) -> AsyncIterator[None]:
    """Re-raise SQLAlchemy failures inside the block as StorageError."""
    try:
        yield
    except SQLAlchemyError as exc:
        msg = f"Storage failure while trying to {action}"
        raise StorageError(msg) from exc
