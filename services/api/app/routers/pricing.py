from __future__ import annotations

from fastapi import APIRouter, Depends
from services.api.app.db.deps import get_db
from services.api.app.errors import BookingError, raise_http_error
from services.api.app.models.pricing import FrequencyDiscountOut, PriceQuoteOut, PricingRequest
from services.api.app.services.pricing import FREQUENCY_DISCOUNT_PCT, PriceQuote, quote_for_ids
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

router = APIRouter()


@router.post("/api/pricing/calculate", response_model=PriceQuoteOut)
def calculate_price(payload: PricingRequest, db: Session = Depends(get_db)) -> PriceQuoteOut:
    try:
        quote = quote_for_ids(
            db,
            service_id=payload.service_id,
            bedrooms=payload.bedrooms,
            bathrooms=payload.bathrooms,
            extras=[(e.id, e.quantity) for e in payload.extras],
            suburb_id=payload.suburb_id,
            frequency=payload.frequency,
        )
    except (BookingError, SQLAlchemyError) as e:
        raise_http_error(e)

    return price_quote_out(quote)


@router.get("/api/frequency-discounts", response_model=list[FrequencyDiscountOut])
def list_frequency_discounts() -> list[FrequencyDiscountOut]:
    return [
        FrequencyDiscountOut(frequency=frequency, discount_percentage=float(pct))
        for frequency, pct in FREQUENCY_DISCOUNT_PCT.items()
    ]


def price_quote_out(quote: PriceQuote) -> PriceQuoteOut:
    return PriceQuoteOut(breakdown=quote.client_breakdown(), **quote.as_breakdown())
