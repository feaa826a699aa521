from __future__ import annotations

from uuid import uuid4

from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.api.app.db.models import Booking, EventLog
from sqlalchemy.orm import Session


def log_event(
    db: Session,
    booking: Booking,
    *,
    event_type: EventTypeV1,
    event_payload: dict,
    entity_type: EntityTypeV1 = EntityTypeV1.BOOKING,
    entity_id: str | None = None,
) -> None:
    db.add(
        EventLog(
            id=uuid4().hex,
            booking_id=booking.id,
            session_token=booking.session_token,
            entity_type=entity_type.value,
            entity_id=entity_id or booking.id,
            event_type=event_type.value,
            event_payload_json=event_payload,
        )
    )


def list_events(db: Session, booking_id: str) -> list[EventLog]:
    return (
        db.query(EventLog)
        .filter(EventLog.booking_id == booking_id)
        .order_by(EventLog.created_at.asc(), EventLog.id.asc())
        .all()
    )
