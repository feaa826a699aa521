"""Session-scoped booking drafts.

One non-terminal booking per session token is guaranteed by the partial unique
index ``uq_bookings_active_session``; concurrent creates for the same session
are resolved by that constraint (the loser reloads the winner's row and applies
its patch there), never by locks in this process.
"""

from __future__ import annotations

import logging
from datetime import date
from uuid import uuid4

from packages.shared.schemas.booking import (
    ACTIVE_BOOKING_STATUSES,
    BookingStatusV1,
    FrequencyV1,
)
from packages.shared.schemas.events import EventTypeV1
from services.api.app.db.models import Booking, BookingExtra, Extra, Service, Suburb, utcnow
from services.api.app.errors import NotFound, StateError, UpstreamError, ValidationError
from services.api.app.services.events import log_event
from services.api.app.services.pricing import (
    calculate_quote,
    load_active_service,
    load_active_suburb,
    load_selected_extras,
    validate_room_count,
)
from services.api.app.services.scheduling import DEFAULT_DURATION_MINUTES, add_minutes, is_hhmm
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: dict[BookingStatusV1, frozenset[BookingStatusV1]] = {
    BookingStatusV1.DRAFT: frozenset({BookingStatusV1.PENDING_PAYMENT, BookingStatusV1.CANCELLED}),
    BookingStatusV1.PENDING_PAYMENT: frozenset(
        {BookingStatusV1.CONFIRMED, BookingStatusV1.CANCELLED}
    ),
    BookingStatusV1.CONFIRMED: frozenset(),
    BookingStatusV1.CANCELLED: frozenset(),
}

_TEXT_FIELDS = (
    "customer_id",
    "customer_email",
    "customer_name",
    "address",
    "postcode",
    "special_instructions",
)

DRAFT_FIELDS = frozenset(
    _TEXT_FIELDS
    + (
        "service_id",
        "bedrooms",
        "bathrooms",
        "extras",
        "suburb_id",
        "booking_date",
        "start_time",
        "frequency",
    )
)

_ACTIVE = [s.value for s in ACTIVE_BOOKING_STATUSES]


def can_transition(current: BookingStatusV1 | str, target: BookingStatusV1 | str) -> bool:
    return BookingStatusV1(target) in _ALLOWED_TRANSITIONS[BookingStatusV1(current)]


def get_booking(db: Session, booking_id: str) -> Booking:
    booking = db.get(Booking, booking_id)
    if booking is None:
        raise NotFound("Booking not found")
    return booking


def get_active_draft(db: Session, session_token: str) -> Booking | None:
    return (
        db.query(Booking)
        .filter(Booking.session_token == session_token, Booking.status.in_(_ACTIVE))
        .order_by(Booking.created_at.desc())
        .first()
    )


def booking_extras(db: Session, booking_id: str) -> list[BookingExtra]:
    return (
        db.query(BookingExtra)
        .filter(BookingExtra.booking_id == booking_id)
        .order_by(BookingExtra.extra_id.asc())
        .all()
    )


def upsert_draft(db: Session, session_token: str, patch: dict) -> Booking:
    """Merge ``patch`` into the session's active draft, creating it if needed."""

    token = (session_token or "").strip()
    if not token:
        raise ValidationError("session_token is required")

    unknown = sorted(set(patch) - DRAFT_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown draft fields: {', '.join(unknown)}")

    try:
        draft, created = _get_or_create_draft(db, token)

        if draft.status != BookingStatusV1.DRAFT.value:
            raise StateError(
                f"Booking {draft.id} is {draft.status} and can no longer be edited"
            )

        changed = _apply_patch(db, draft, patch)
        reprice_draft(db, draft)
        draft.updated_at = utcnow()

        log_event(
            db,
            draft,
            event_type=EventTypeV1.DRAFT_CREATED if created else EventTypeV1.DRAFT_UPDATED,
            event_payload={"fields": changed},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    if created:
        logger.info("Created draft booking %s", draft.id)
    return draft


def _get_or_create_draft(db: Session, token: str) -> tuple[Booking, bool]:
    draft = get_active_draft(db, token)
    if draft is not None:
        return draft, False

    draft = Booking(
        id=uuid4().hex,
        session_token=token,
        status=BookingStatusV1.DRAFT.value,
        bedrooms=1,
        bathrooms=1,
        frequency=FrequencyV1.ONE_TIME.value,
        auto_assign=False,
        price_breakdown_json={},
    )
    db.add(draft)
    try:
        db.flush()
        return draft, True
    except IntegrityError:
        # Another request created the session's draft first; continue on that row.
        db.rollback()

    draft = get_active_draft(db, token)
    if draft is None:
        raise UpstreamError(f"Draft for session could not be created or loaded ({token[:8]}...)")
    return draft, False


def _apply_patch(db: Session, draft: Booking, patch: dict) -> list[str]:
    changed: list[str] = []

    for name in _TEXT_FIELDS:
        if name in patch:
            value = patch[name]
            if isinstance(value, str):
                value = value.strip() or None
            setattr(draft, name, value)
            changed.append(name)

    if "service_id" in patch:
        service_id = patch["service_id"]
        draft.service_id = load_active_service(db, service_id).id if service_id else None
        changed.append("service_id")

    if "suburb_id" in patch:
        suburb_id = patch["suburb_id"]
        draft.suburb_id = load_active_suburb(db, suburb_id).id if suburb_id else None
        changed.append("suburb_id")

    for name in ("bedrooms", "bathrooms"):
        if name in patch:
            setattr(draft, name, validate_room_count(name, patch[name]))
            changed.append(name)

    if "extras" in patch:
        _replace_extras(db, draft, patch["extras"] or [])
        changed.append("extras")

    if "booking_date" in patch:
        value = patch["booking_date"]
        if value is not None and not isinstance(value, date):
            raise ValidationError("booking_date must be a date (YYYY-MM-DD)")
        draft.booking_date = value
        changed.append("booking_date")

    if "start_time" in patch:
        value = patch["start_time"]
        if value is not None and not is_hhmm(value):
            raise ValidationError("start_time must be in HH:mm format")
        draft.start_time = value
        changed.append("start_time")

    if "frequency" in patch:
        try:
            draft.frequency = FrequencyV1(patch["frequency"] or FrequencyV1.ONE_TIME).value
        except ValueError as e:
            raise ValidationError(f"Unknown frequency: {patch['frequency']!r}") from e
        changed.append("frequency")

    return changed


def _replace_extras(db: Session, draft: Booking, selection: list[dict]) -> None:
    pairs: list[tuple[str, int]] = []
    for item in selection:
        extra_id = str(item.get("id") or "").strip()
        if not extra_id:
            raise ValidationError("extra id is required")
        pairs.append((extra_id, item.get("quantity", 1)))

    resolved = load_selected_extras(db, pairs)

    for row in booking_extras(db, draft.id):
        db.delete(row)
    db.flush()

    for extra, quantity in resolved:
        db.add(
            BookingExtra(
                booking_id=draft.id,
                extra_id=extra.id,
                quantity=quantity,
                unit_price=extra.price,
            )
        )
    db.flush()


def reprice_draft(db: Session, draft: Booking) -> None:
    """Snapshot the current quote onto the draft (or clear it until a service is chosen)."""

    if not draft.service_id:
        draft.total_price = None
        draft.price_breakdown_json = {}
        draft.end_time = None
        return

    service = db.get(Service, draft.service_id)
    suburb = db.get(Suburb, draft.suburb_id) if draft.suburb_id else None

    selected: list[tuple[Extra, int]] = []
    for row in booking_extras(db, draft.id):
        extra = db.get(Extra, row.extra_id)
        if extra is None:
            continue
        row.unit_price = extra.price
        selected.append((extra, row.quantity))

    quote = calculate_quote(
        service,
        draft.bedrooms,
        draft.bathrooms,
        selected,
        suburb,
        FrequencyV1(draft.frequency),
    )
    draft.total_price = quote.total_price
    draft.price_breakdown_json = quote.as_breakdown()

    duration = service.duration_minutes if service is not None else DEFAULT_DURATION_MINUTES
    draft.end_time = add_minutes(draft.start_time, duration) if draft.start_time else None


def apply_transition(db: Session, booking: Booking, target: BookingStatusV1) -> None:
    """Move ``booking`` to ``target`` in the current unit of work (caller commits)."""

    current = BookingStatusV1(booking.status)
    if not can_transition(current, target):
        raise StateError(f"Cannot move booking from {current.value} to {target.value}")

    booking.status = target.value
    booking.updated_at = utcnow()
    log_event(
        db,
        booking,
        event_type=EventTypeV1.STATUS_CHANGED,
        event_payload={"from": current.value, "to": target.value},
    )
    logger.info("Booking %s: %s -> %s", booking.id, current.value, target.value)


def transition_status(db: Session, booking_id: str, target: BookingStatusV1) -> Booking:
    booking = get_booking(db, booking_id)
    try:
        apply_transition(db, booking, BookingStatusV1(target))
        db.commit()
    except Exception:
        db.rollback()
        raise
    return booking
