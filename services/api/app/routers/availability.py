from __future__ import annotations

import datetime as dt

from fastapi import APIRouter, Depends, HTTPException, Query
from services.api.app.db.deps import current_availability_source, get_db
from services.api.app.errors import BookingError, UpstreamError, raise_http_error
from services.api.app.models.availability import (
    AvailabilityRequest,
    AvailabilityResponse,
    AvailableCleanerOut,
    AvailableCleanersResponse,
    TimeSlotOut,
)
from services.api.app.services.availability_base import (
    AvailabilityError,
    AvailabilitySource,
    CleanerQuery,
)
from services.api.app.services.scheduling import DEFAULT_DURATION_MINUTES, add_minutes, is_hhmm
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

router = APIRouter()


@router.post("/api/availability", response_model=AvailabilityResponse)
def availability(
    payload: AvailabilityRequest,
    db: Session = Depends(get_db),
    source: AvailabilitySource = Depends(current_availability_source),
) -> AvailabilityResponse:
    try:
        slots = source.available_slots(db, suburb_id=payload.suburb_id, day=payload.date)
    except AvailabilityError as e:
        raise_http_error(UpstreamError(f"Availability lookup failed for {payload.suburb_id}: {e}"))
    except (BookingError, SQLAlchemyError) as e:
        raise_http_error(e)

    return AvailabilityResponse(
        available_slots=[TimeSlotOut(time=s.time, available=s.available) for s in slots],
        date=payload.date,
        suburb_id=payload.suburb_id,
    )


@router.get("/api/cleaners/available", response_model=AvailableCleanersResponse)
def available_cleaners(
    date: dt.date,
    suburb_id: str | None = None,
    service_id: str | None = None,
    start_time: str | None = None,
    end_time: str | None = None,
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    source: AvailabilitySource = Depends(current_availability_source),
) -> AvailableCleanersResponse:
    for name, value in (("start_time", start_time), ("end_time", end_time)):
        if value is not None and not is_hhmm(value):
            raise HTTPException(status_code=400, detail=f"{name} must be in HH:mm format")

    if start_time and not end_time:
        end_time = add_minutes(start_time, DEFAULT_DURATION_MINUTES)

    query = CleanerQuery(
        day=date,
        suburb_id=suburb_id,
        service_id=service_id,
        start_time=start_time,
        end_time=end_time,
        limit=limit,
    )
    try:
        cleaners = source.available_cleaners(db, query)
    except AvailabilityError as e:
        raise_http_error(UpstreamError(f"Cleaner lookup failed for {suburb_id} on {date}: {e}"))
    except (BookingError, SQLAlchemyError) as e:
        raise_http_error(e)

    return AvailableCleanersResponse(
        cleaners=[AvailableCleanerOut(id=c.id, full_name=c.full_name, rating=c.rating) for c in cleaners]
    )
