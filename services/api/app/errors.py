from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Base class for booking domain errors."""


class ValidationError(BookingError):
    """Bad or missing input."""


class NotFound(BookingError):
    """A referenced record does not exist (or is inactive)."""


class StateError(BookingError):
    """The booking is not in a status that allows the operation."""


class UpstreamError(BookingError):
    """An external collaborator (database, gateway, availability) failed.

    ``public_message`` is what callers see; the real cause stays in the logs.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int = 500,
        public_message: str = "Internal Server Error",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.public_message = public_message


class ConfigError(BookingError):
    """Required configuration is missing or invalid."""


def http_status_for(e: Exception) -> int:
    if isinstance(e, ValidationError):
        return 400
    if isinstance(e, NotFound):
        return 404
    if isinstance(e, StateError):
        return 409
    if isinstance(e, UpstreamError):
        return e.status_code
    return 500


def public_detail_for(e: Exception) -> str:
    if isinstance(e, (ValidationError, NotFound, StateError)):
        return str(e)
    if isinstance(e, UpstreamError):
        return e.public_message
    return "Internal Server Error"


def log_failure(e: Exception) -> None:
    # Client errors are the caller's problem and are not logged.
    if isinstance(e, UpstreamError):
        logger.error("Upstream failure: %s", e, exc_info=e.__cause__)
    elif isinstance(e, SQLAlchemyError):
        logger.error("Database failure: %s", e, exc_info=e)
    elif not isinstance(e, BookingError):
        logger.error("Unhandled error: %s", e, exc_info=e)


def raise_http_error(e: Exception) -> NoReturn:
    log_failure(e)
    raise HTTPException(status_code=http_status_for(e), detail=public_detail_for(e)) from e
