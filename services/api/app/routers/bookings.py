from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from packages.shared.schemas.booking import BookingStatusV1
from services.api.app.config import Settings
from services.api.app.db.deps import current_availability_source, current_settings, get_db
from services.api.app.db.models import Booking
from services.api.app.errors import (
    BookingError,
    http_status_for,
    log_failure,
    public_detail_for,
    raise_http_error,
)
from services.api.app.models.booking import (
    BookingExtraOut,
    BookingOut,
    DraftUpsertRequest,
    SelectCleanerRequest,
    SelectCleanerResponse,
)
from services.api.app.services.assignment import assign_cleaner
from services.api.app.services.availability_base import AvailabilitySource
from services.api.app.services.drafts import (
    booking_extras,
    get_active_draft,
    get_booking,
    transition_status,
    upsert_draft,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

router = APIRouter()


@router.get("/api/bookings/draft", response_model=BookingOut)
def get_draft(session_token: str, db: Session = Depends(get_db)) -> BookingOut:
    draft = get_active_draft(db, session_token.strip())
    if draft is None:
        raise HTTPException(status_code=404, detail="No active draft for this session")
    return booking_out(db, draft)


@router.post("/api/bookings/draft", response_model=BookingOut)
def save_draft(payload: DraftUpsertRequest, db: Session = Depends(get_db)) -> BookingOut:
    try:
        draft = upsert_draft(db, payload.session_token, payload.patch())
    except (BookingError, SQLAlchemyError) as e:
        raise_http_error(e)
    return booking_out(db, draft)


@router.post("/api/bookings/select-cleaner", response_model=SelectCleanerResponse)
def select_cleaner(
    payload: SelectCleanerRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(current_settings),
    availability: AvailabilitySource = Depends(current_availability_source),
):
    try:
        result = assign_cleaner(
            db,
            payload.booking_id,
            cleaner_id=payload.cleaner_id,
            auto_assign=payload.auto_assign,
            availability=availability,
            schema_version=settings.booking_schema_version,
        )
    except (BookingError, SQLAlchemyError) as e:
        db.rollback()
        log_failure(e)
        return JSONResponse(
            status_code=http_status_for(e),
            content={"ok": False, "error": public_detail_for(e)},
        )

    return SelectCleanerResponse(
        ok=True,
        applied=result.applied,
        booking_id=result.booking_id,
        cleaner_id=result.cleaner_id,
        message=result.message,
    )


@router.get("/api/bookings/{booking_id}", response_model=BookingOut)
def read_booking(booking_id: str, db: Session = Depends(get_db)) -> BookingOut:
    try:
        booking = get_booking(db, booking_id)
    except BookingError as e:
        raise_http_error(e)
    return booking_out(db, booking)


@router.post("/api/bookings/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(booking_id: str, db: Session = Depends(get_db)) -> BookingOut:
    try:
        booking = transition_status(db, booking_id, BookingStatusV1.CANCELLED)
    except (BookingError, SQLAlchemyError) as e:
        raise_http_error(e)
    return booking_out(db, booking)


def booking_out(db: Session, booking: Booking) -> BookingOut:
    return BookingOut(
        id=booking.id,
        session_token=booking.session_token,
        status=booking.status,
        customer_id=booking.customer_id,
        customer_email=booking.customer_email,
        customer_name=booking.customer_name,
        service_id=booking.service_id,
        bedrooms=booking.bedrooms,
        bathrooms=booking.bathrooms,
        extras=[
            BookingExtraOut(
                extra_id=row.extra_id,
                quantity=row.quantity,
                unit_price=float(row.unit_price),
            )
            for row in booking_extras(db, booking.id)
        ],
        suburb_id=booking.suburb_id,
        address=booking.address,
        postcode=booking.postcode,
        booking_date=booking.booking_date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        frequency=booking.frequency,
        special_instructions=booking.special_instructions,
        total_price=float(booking.total_price) if booking.total_price is not None else None,
        price_breakdown=booking.price_breakdown_json or {},
        cleaner_id=booking.cleaner_id,
        auto_assign=booking.auto_assign,
        payment_reference=booking.payment_reference,
        created_at=booking.created_at.isoformat(),
        updated_at=booking.updated_at.isoformat(),
    )
