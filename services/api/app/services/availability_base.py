from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Protocol

from sqlalchemy.orm import Session


class AvailabilityError(Exception):
    """The availability lookup could not be completed."""


@dataclass(frozen=True, slots=True)
class TimeSlot:
    time: str
    available: bool


@dataclass(frozen=True, slots=True)
class AvailableCleaner:
    id: str
    full_name: str
    rating: float


@dataclass(frozen=True, slots=True)
class CleanerQuery:
    """Who can clean ``suburb_id`` for ``service_id`` on ``day`` between start and end."""

    day: date
    suburb_id: str | None = None
    service_id: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    limit: int = 20
    exclude_booking_id: str | None = None


class AvailabilitySource(Protocol):
    name: str

    def available_slots(self, db: Session, *, suburb_id: str, day: date) -> list[TimeSlot]: ...

    def available_cleaners(self, db: Session, query: CleanerQuery) -> list[AvailableCleaner]: ...


def rank_cleaners(cleaners: list[AvailableCleaner]) -> list[AvailableCleaner]:
    """Best first: highest rating, ties broken by id so the order is stable."""
    return sorted(cleaners, key=lambda c: (-c.rating, c.id))
