from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PaymentInitiateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    booking_id: str = Field(..., min_length=1)
    customer_email: str | None = None
    customer_name: str | None = None


class PaymentInitiateResponse(BaseModel):
    authorization_url: str
    reference: str
    booking_id: str
    amount_minor: int
    currency: str


class PaymentVerifyResponse(BaseModel):
    verified: bool
    reference: str
    booking_id: str
    booking_status: str
    payment_status: str
    message: str
