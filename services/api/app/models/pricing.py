from __future__ import annotations

from packages.shared.schemas.booking import FrequencyV1
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ExtraSelection(BaseModel):
    id: str
    quantity: int = 1


class PricingRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    service_id: str
    bedrooms: int = 1
    bathrooms: int = 1
    extras: list[ExtraSelection] = Field(default_factory=list)
    suburb_id: str | None = None
    frequency: FrequencyV1 = FrequencyV1.ONE_TIME


class PriceQuoteOut(BaseModel):
    """Serialized with camelCase keys (``totalPrice``) for the web client."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    base_price: float
    bedrooms_cost: float
    bathrooms_cost: float
    extras_total: float
    delivery_fee: float
    subtotal: float
    service_fee: float
    discounts: float
    total_price: float
    breakdown: dict[str, float] = Field(default_factory=dict)


class FrequencyDiscountOut(BaseModel):
    frequency: FrequencyV1
    discount_percentage: float
