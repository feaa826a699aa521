"""Cleaner assignment for bookings.

Older deployments stored the assignment as ``selected_cleaner_id`` /
``auto_assign_cleaner``; current ones use ``cleaner_id`` / ``auto_assign``.
Each layout has its own writer and reader keyed by schema version. With
``SHALEAN_BOOKING_SCHEMA_VERSION=auto`` they are tried newest first and an
"unknown column" error moves on to the next one; any other database error
stops the attempt.

The booking row itself is only ever loaded through the columns every layout
shares, so an older table can be assigned end to end.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from packages.shared.schemas.booking import TERMINAL_BOOKING_STATUSES
from packages.shared.schemas.events import EventTypeV1
from services.api.app.db.models import Booking, Cleaner, utcnow
from services.api.app.errors import NotFound, StateError, UpstreamError, ValidationError
from services.api.app.services.availability_base import (
    AvailabilityError,
    AvailabilitySource,
    CleanerQuery,
    rank_cleaners,
)
from services.api.app.services.events import log_event
from services.api.app.services.scheduling import DEFAULT_DURATION_MINUTES, add_minutes
from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, load_only

logger = logging.getLogger(__name__)

AssignmentWriter = Callable[[Session, str, str | None, bool], None]
AssignmentReader = Callable[[Session, str], str | None]

# Present in every booking layout.
_SHARED_COLUMNS = (
    Booking.id,
    Booking.session_token,
    Booking.status,
    Booking.service_id,
    Booking.suburb_id,
    Booking.booking_date,
    Booking.start_time,
    Booking.end_time,
    Booking.updated_at,
)


@dataclass(frozen=True, slots=True)
class AssignmentResult:
    booking_id: str
    cleaner_id: str | None
    applied: bool
    message: str
    schema_version: str | None = None


def _write_v2(db: Session, booking_id: str, cleaner_id: str | None, auto_assign: bool) -> None:
    db.execute(
        text(
            "UPDATE bookings SET cleaner_id = :cleaner_id, "
            "auto_assign = :auto_assign WHERE id = :id"
        ),
        {"cleaner_id": cleaner_id, "auto_assign": auto_assign, "id": booking_id},
    )


def _write_v1(db: Session, booking_id: str, cleaner_id: str | None, auto_assign: bool) -> None:
    db.execute(
        text(
            "UPDATE bookings SET selected_cleaner_id = :cleaner_id, "
            "auto_assign_cleaner = :auto_assign WHERE id = :id"
        ),
        {"cleaner_id": cleaner_id, "auto_assign": auto_assign, "id": booking_id},
    )


def _read_v2(db: Session, booking_id: str) -> str | None:
    return db.execute(
        text("SELECT cleaner_id FROM bookings WHERE id = :id"), {"id": booking_id}
    ).scalar()


def _read_v1(db: Session, booking_id: str) -> str | None:
    return db.execute(
        text("SELECT selected_cleaner_id FROM bookings WHERE id = :id"), {"id": booking_id}
    ).scalar()


CLEANER_WRITERS: dict[str, AssignmentWriter] = {
    "v2": _write_v2,
    "v1": _write_v1,
}

CLEANER_READERS: dict[str, AssignmentReader] = {
    "v2": _read_v2,
    "v1": _read_v1,
}

# Order tried for "auto": newest layout first.
FALLBACK_ORDER: tuple[str, ...] = ("v2", "v1")


def is_unknown_column_error(e: DBAPIError) -> bool:
    orig = getattr(e, "orig", None)
    if getattr(orig, "pgcode", None) == "42703" or getattr(orig, "sqlstate", None) == "42703":
        return True

    message = str(orig if orig is not None else e).lower()
    return (
        "no such column" in message
        or "unknown column" in message
        or ("column" in message and "does not exist" in message)
    )


def _run_versioned(
    db: Session,
    table: dict[str, Callable[..., Any]],
    args: tuple,
    *,
    schema_version: str,
    fallback_order: tuple[str, ...],
    action: str,
    booking_id: str,
) -> tuple[str, Any]:
    versions = fallback_order if schema_version == "auto" else (schema_version,)

    for version in versions:
        fn = table.get(version)
        if fn is None:
            raise UpstreamError(f"No cleaner assignment {action} for schema {version!r}")

        try:
            return version, fn(db, *args)
        except DBAPIError as e:
            db.rollback()
            if schema_version == "auto" and is_unknown_column_error(e):
                logger.warning("Booking schema %s rejected cleaner %s: %s", version, action, e.orig)
                continue
            raise UpstreamError(f"Cleaner assignment {action} failed for booking {booking_id}") from e

    raise UpstreamError(f"No known booking schema accepted the cleaner {action} for {booking_id}")


def write_assignment(
    db: Session,
    booking_id: str,
    cleaner_id: str | None,
    auto_assign: bool,
    *,
    schema_version: str = "v2",
    writers: dict[str, AssignmentWriter] | None = None,
    fallback_order: tuple[str, ...] = FALLBACK_ORDER,
) -> str:
    """Write the assignment columns and return the schema version that accepted it.

    Must be called with no other pending changes in ``db``: a rejected shape
    rolls the session back before the next one is tried.
    """

    version, _ = _run_versioned(
        db,
        writers or CLEANER_WRITERS,
        (booking_id, cleaner_id, auto_assign),
        schema_version=schema_version,
        fallback_order=fallback_order,
        action="write",
        booking_id=booking_id,
    )
    return version


def read_assignment(
    db: Session,
    booking_id: str,
    *,
    schema_version: str = "v2",
    fallback_order: tuple[str, ...] = FALLBACK_ORDER,
) -> str | None:
    """Return the cleaner currently stored on the booking. Falls back like the writers."""

    _, cleaner_id = _run_versioned(
        db,
        CLEANER_READERS,
        (booking_id,),
        schema_version=schema_version,
        fallback_order=fallback_order,
        action="read",
        booking_id=booking_id,
    )
    return cleaner_id


def load_booking(db: Session, booking_id: str) -> Booking:
    booking = db.scalars(
        select(Booking).options(load_only(*_SHARED_COLUMNS)).where(Booking.id == booking_id)
    ).first()
    if booking is None:
        raise NotFound("Booking not found")
    return booking


def assign_cleaner(
    db: Session,
    booking_id: str,
    *,
    cleaner_id: str | None = None,
    auto_assign: bool = False,
    availability: AvailabilitySource,
    schema_version: str = "v2",
) -> AssignmentResult:
    booking = load_booking(db, booking_id)
    if booking.status in {s.value for s in TERMINAL_BOOKING_STATUSES}:
        raise StateError(f"Booking is {booking.status}; cleaner can no longer be changed")

    if cleaner_id:
        cleaner = db.get(Cleaner, cleaner_id)
        if cleaner is None or not cleaner.active:
            raise NotFound("Cleaner not found")
        return _apply(db, booking, cleaner.id, auto_assign=False, schema_version=schema_version)

    if not auto_assign:
        raise ValidationError("cleanerId or autoAssign is required")

    chosen = _pick_available_cleaner(db, booking, availability)
    if chosen is None:
        booking_id = booking.id
        current = read_assignment(db, booking_id, schema_version=schema_version)
        booking = load_booking(db, booking_id)
        log_event(
            db,
            booking,
            event_type=EventTypeV1.CLEANER_UNAVAILABLE,
            event_payload={"auto_assign": True},
        )
        db.commit()
        logger.info("No cleaner available for booking %s; left unassigned", booking_id)
        return AssignmentResult(
            booking_id=booking_id,
            cleaner_id=current,
            applied=False,
            message="No cleaners are available for this time; the booking stays unassigned",
        )

    return _apply(db, booking, chosen, auto_assign=True, schema_version=schema_version)


def _pick_available_cleaner(
    db: Session, booking: Booking, availability: AvailabilitySource
) -> str | None:
    if booking.booking_date is None:
        raise ValidationError("Choose a date before auto-assigning a cleaner")

    end_time = booking.end_time
    if booking.start_time and not end_time:
        end_time = add_minutes(booking.start_time, DEFAULT_DURATION_MINUTES)

    query = CleanerQuery(
        day=booking.booking_date,
        suburb_id=booking.suburb_id,
        service_id=booking.service_id,
        start_time=booking.start_time,
        end_time=end_time,
        limit=5,
        exclude_booking_id=booking.id,
    )
    try:
        candidates = availability.available_cleaners(db, query)
    except AvailabilityError as e:
        raise UpstreamError(f"Availability lookup failed for booking {booking.id}") from e

    ranked = rank_cleaners(candidates)
    return ranked[0].id if ranked else None


def _apply(
    db: Session,
    booking: Booking,
    cleaner_id: str,
    *,
    auto_assign: bool,
    schema_version: str,
) -> AssignmentResult:
    booking_id = booking.id
    # Reads above may have autobegun a transaction; start the write from a clean one.
    db.commit()

    version = write_assignment(
        db, booking_id, cleaner_id, auto_assign, schema_version=schema_version
    )

    booking = load_booking(db, booking_id)
    booking.updated_at = utcnow()
    log_event(
        db,
        booking,
        event_type=EventTypeV1.CLEANER_ASSIGNED,
        event_payload={
            "cleaner_id": cleaner_id,
            "auto_assign": auto_assign,
            "schema_version": version,
        },
    )
    db.commit()

    logger.info(
        "Assigned cleaner %s to booking %s (auto=%s, schema=%s)",
        cleaner_id,
        booking_id,
        auto_assign,
        version,
    )
    return AssignmentResult(
        booking_id=booking_id,
        cleaner_id=cleaner_id,
        applied=True,
        message="Cleaner assigned",
        schema_version=version,
    )
