"""Shared event schema (v1).

The backend stores an append-only event log per booking. Clients can consume
these events to render a booking timeline.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EntityTypeV1(str, Enum):
    BOOKING = "Booking"
    PAYMENT = "Payment"


class EventTypeV1(str, Enum):
    DRAFT_CREATED = "DRAFT_CREATED"
    DRAFT_UPDATED = "DRAFT_UPDATED"
    STATUS_CHANGED = "STATUS_CHANGED"
    CLEANER_ASSIGNED = "CLEANER_ASSIGNED"
    CLEANER_UNAVAILABLE = "CLEANER_UNAVAILABLE"
    PAYMENT_INITIATED = "PAYMENT_INITIATED"
    PAYMENT_VERIFIED = "PAYMENT_VERIFIED"
    PAYMENT_NOT_VERIFIED = "PAYMENT_NOT_VERIFIED"
    CONFIRMATION_SENT = "CONFIRMATION_SENT"
    REFUND_REQUIRED = "REFUND_REQUIRED"


class EventV1(BaseModel):
    id: str
    booking_id: str

    entity_type: EntityTypeV1
    entity_id: str

    event_type: EventTypeV1
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: str
