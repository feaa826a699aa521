from __future__ import annotations

import datetime as dt

from pydantic import BaseModel


class AvailabilityRequest(BaseModel):
    suburb_id: str
    date: dt.date


class TimeSlotOut(BaseModel):
    time: str
    available: bool


class AvailabilityResponse(BaseModel):
    available_slots: list[TimeSlotOut]
    date: dt.date
    suburb_id: str


class AvailableCleanerOut(BaseModel):
    id: str
    full_name: str
    rating: float


class AvailableCleanersResponse(BaseModel):
    cleaners: list[AvailableCleanerOut]
