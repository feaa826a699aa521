"""FastAPI dependencies.

Collaborators (gateway, availability source, notifier) are built once at startup
and kept on ``app.state``; handlers receive them explicitly through these
functions instead of importing module-level clients.
"""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from services.api.app.config import Settings
from services.api.app.db.database import db_session
from services.api.app.services.availability_base import AvailabilitySource
from services.api.app.services.email_base import ConfirmationNotifier
from services.api.app.services.payment_base import PaymentGateway
from sqlalchemy.orm import Session


def get_db() -> Generator[Session, None, None]:
    db = db_session()
    try:
        yield db
    finally:
        db.close()


def current_settings(request: Request) -> Settings:
    return request.app.state.settings


def current_payment_gateway(request: Request) -> PaymentGateway:
    return request.app.state.payment_gateway


def current_availability_source(request: Request) -> AvailabilitySource:
    return request.app.state.availability_source


def current_notifier(request: Request) -> ConfirmationNotifier:
    return request.app.state.notifier


async def raw_body(request: Request) -> bytes:
    # Signature checks need the exact bytes the client sent.
    return await request.body()
