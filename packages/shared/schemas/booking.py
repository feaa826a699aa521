"""Shared booking enums (v1).

The web client and the API agree on these values. They are persisted as plain
strings, so renaming a member is a data migration.
"""

from __future__ import annotations

from enum import Enum


class BookingStatusV1(str, Enum):
    DRAFT = "DRAFT"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class FrequencyV1(str, Enum):
    ONE_TIME = "one-time"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"


class PaymentStatusV1(str, Enum):
    INITIALIZED = "INITIALIZED"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


ACTIVE_BOOKING_STATUSES = (BookingStatusV1.DRAFT, BookingStatusV1.PENDING_PAYMENT)
TERMINAL_BOOKING_STATUSES = (BookingStatusV1.CONFIRMED, BookingStatusV1.CANCELLED)
