from __future__ import annotations

import datetime as dt

from packages.shared.schemas.booking import BookingStatusV1, FrequencyV1
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from services.api.app.models.pricing import ExtraSelection


class DraftUpsertRequest(BaseModel):
    """Partial draft update. Only the fields present in the body are applied."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    session_token: str = Field(..., min_length=1)

    customer_id: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None

    service_id: str | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None
    extras: list[ExtraSelection] | None = None

    suburb_id: str | None = None
    address: str | None = None
    postcode: str | None = None

    booking_date: dt.date | None = None
    start_time: str | None = None
    frequency: FrequencyV1 | None = None
    special_instructions: str | None = None

    def patch(self) -> dict:
        data = self.model_dump(exclude_unset=True, exclude={"session_token"})
        if "frequency" in data and data["frequency"] is not None:
            data["frequency"] = FrequencyV1(data["frequency"]).value
        return data


class BookingExtraOut(BaseModel):
    extra_id: str
    quantity: int
    unit_price: float


class BookingOut(BaseModel):
    id: str
    session_token: str
    status: BookingStatusV1

    customer_id: str | None = None
    customer_email: str | None = None
    customer_name: str | None = None

    service_id: str | None = None
    bedrooms: int
    bathrooms: int
    extras: list[BookingExtraOut] = Field(default_factory=list)

    suburb_id: str | None = None
    address: str | None = None
    postcode: str | None = None

    booking_date: dt.date | None = None
    start_time: str | None = None
    end_time: str | None = None
    frequency: FrequencyV1
    special_instructions: str | None = None

    total_price: float | None = None
    price_breakdown: dict = Field(default_factory=dict)

    cleaner_id: str | None = None
    auto_assign: bool = False
    payment_reference: str | None = None

    created_at: str
    updated_at: str


class SelectCleanerRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    booking_id: str = Field(..., min_length=1)
    cleaner_id: str | None = None
    auto_assign: bool = False


class SelectCleanerResponse(BaseModel):
    ok: bool
    applied: bool
    booking_id: str
    cleaner_id: str | None = None
    message: str
