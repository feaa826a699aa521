from __future__ import annotations

from fastapi import APIRouter, Depends
from packages.shared.schemas.events import EventV1
from services.api.app.db.deps import get_db
from services.api.app.errors import BookingError, raise_http_error
from services.api.app.services.drafts import get_booking
from services.api.app.services.events import list_events
from sqlalchemy.orm import Session

router = APIRouter()


@router.get("/api/bookings/{booking_id}/events", response_model=list[EventV1])
def booking_events(booking_id: str, db: Session = Depends(get_db)) -> list[EventV1]:
    try:
        get_booking(db, booking_id)
    except BookingError as e:
        raise_http_error(e)

    return [
        EventV1(
            id=ev.id,
            booking_id=ev.booking_id,
            entity_type=ev.entity_type,
            entity_id=ev.entity_id,
            event_type=ev.event_type,
            payload=ev.event_payload_json or {},
            created_at=ev.created_at.isoformat(),
        )
        for ev in list_events(db, booking_id)
    ]
