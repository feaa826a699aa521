"""Booking price calculation.

``calculate_quote`` is pure: it only reads the catalog rows it is handed, so it
is safe to call repeatedly and concurrently. ``quote_for_ids`` is the thin
loader the HTTP layer and the draft store use to get those rows.

    subtotal = base_fee
             + max(0, bedrooms - 1) * per_bedroom
             + max(0, bathrooms - 1) * per_bathroom
             + sum(extra.price * quantity)
             + suburb.delivery_fee
    service_fee = service_fee_flat + subtotal * service_fee_pct / 100
    total = subtotal + service_fee - discounts
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from packages.shared.schemas.booking import FrequencyV1
from services.api.app.db.models import Extra, Service, Suburb
from services.api.app.errors import NotFound, ValidationError
from sqlalchemy.orm import Session

CENTS = Decimal("0.01")
ZERO = Decimal("0")

# Percentage off the subtotal per booking frequency. All zero for now; the
# lookup is where recurring-booking discounts plug in.
FREQUENCY_DISCOUNT_PCT: dict[FrequencyV1, Decimal] = {
    FrequencyV1.ONE_TIME: ZERO,
    FrequencyV1.WEEKLY: ZERO,
    FrequencyV1.BI_WEEKLY: ZERO,
    FrequencyV1.MONTHLY: ZERO,
}


@dataclass(frozen=True, slots=True)
class PriceQuote:
    base_price: Decimal
    bedrooms_cost: Decimal
    bathrooms_cost: Decimal
    extras_total: Decimal
    delivery_fee: Decimal
    subtotal: Decimal
    service_fee: Decimal
    discounts: Decimal
    total_price: Decimal

    def as_breakdown(self) -> dict[str, float]:
        """JSON-friendly snapshot stored on the booking."""
        return {
            "base_price": float(self.base_price),
            "bedrooms_cost": float(self.bedrooms_cost),
            "bathrooms_cost": float(self.bathrooms_cost),
            "extras_total": float(self.extras_total),
            "delivery_fee": float(self.delivery_fee),
            "subtotal": float(self.subtotal),
            "service_fee": float(self.service_fee),
            "discounts": float(self.discounts),
            "total_price": float(self.total_price),
        }

    def client_breakdown(self) -> dict[str, float]:
        """Breakdown in the shape the booking widget renders."""
        return {
            "baseService": float(self.base_price),
            "bedrooms": float(self.bedrooms_cost),
            "bathrooms": float(self.bathrooms_cost),
            "extras": float(self.extras_total),
            "deliveryFee": float(self.delivery_fee),
            "serviceFee": float(self.service_fee),
            "discounts": float(self.discounts),
        }


def money(value: object) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def validate_room_count(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be a whole number")
    if value < 0:
        raise ValidationError(f"{name} cannot be negative")
    return value


def validate_quantity(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("extra quantity must be a whole number of at least 1")
    return value


def additional_room_cost(count: int, rate: object) -> Decimal:
    # The first room of each kind is included in the base fee.
    return max(0, count - 1) * money(rate)


def calculate_quote(
    service: Service,
    bedrooms: int,
    bathrooms: int,
    extras: Iterable[tuple[Extra, int]] = (),
    suburb: Suburb | None = None,
    frequency: FrequencyV1 = FrequencyV1.ONE_TIME,
) -> PriceQuote:
    if service is None:
        raise NotFound("Service not found")

    bedrooms = validate_room_count("bedrooms", bedrooms)
    bathrooms = validate_room_count("bathrooms", bathrooms)

    base_price = money(service.base_fee)
    bedrooms_cost = additional_room_cost(bedrooms, service.per_bedroom)
    bathrooms_cost = additional_room_cost(bathrooms, service.per_bathroom)

    extras_total = ZERO
    for extra, quantity in extras:
        extras_total += money(extra.price) * validate_quantity(quantity)

    delivery_fee = money(suburb.delivery_fee) if suburb is not None else ZERO

    subtotal = base_price + bedrooms_cost + bathrooms_cost + extras_total + delivery_fee
    service_fee = money(service.service_fee_flat) + subtotal * money(service.service_fee_pct) / 100
    service_fee = service_fee.quantize(CENTS, rounding=ROUND_HALF_UP)

    discount_pct = FREQUENCY_DISCOUNT_PCT.get(FrequencyV1(frequency), ZERO)
    discounts = (subtotal * discount_pct / 100).quantize(CENTS, rounding=ROUND_HALF_UP)

    return PriceQuote(
        base_price=base_price,
        bedrooms_cost=bedrooms_cost,
        bathrooms_cost=bathrooms_cost,
        extras_total=extras_total,
        delivery_fee=delivery_fee,
        subtotal=subtotal,
        service_fee=service_fee,
        discounts=discounts,
        total_price=subtotal + service_fee - discounts,
    )


def load_active_service(db: Session, service_id: str) -> Service:
    service = db.get(Service, service_id)
    if service is None or not service.active:
        raise NotFound("Service not found")
    return service


def load_active_suburb(db: Session, suburb_id: str) -> Suburb:
    suburb = db.get(Suburb, suburb_id)
    if suburb is None or not suburb.active:
        raise NotFound("Suburb not found")
    return suburb


def load_selected_extras(db: Session, selection: Sequence[tuple[str, int]]) -> list[tuple[Extra, int]]:
    """Resolve (extra id, quantity) pairs, merging repeated ids."""

    quantities: dict[str, int] = {}
    for extra_id, quantity in selection:
        quantities[extra_id] = quantities.get(extra_id, 0) + validate_quantity(quantity)

    if not quantities:
        return []

    rows = db.query(Extra).filter(Extra.id.in_(list(quantities)), Extra.active.is_(True)).all()
    by_id = {row.id: row for row in rows}

    missing = [extra_id for extra_id in quantities if extra_id not in by_id]
    if missing:
        raise NotFound(f"Extra not found: {', '.join(sorted(missing))}")

    return [(by_id[extra_id], qty) for extra_id, qty in quantities.items()]


def quote_for_ids(
    db: Session,
    *,
    service_id: str,
    bedrooms: int,
    bathrooms: int,
    extras: Sequence[tuple[str, int]] = (),
    suburb_id: str | None = None,
    frequency: FrequencyV1 = FrequencyV1.ONE_TIME,
) -> PriceQuote:
    if not service_id:
        raise ValidationError("serviceId is required")

    service = load_active_service(db, service_id)
    suburb = load_active_suburb(db, suburb_id) if suburb_id else None
    selected = load_selected_extras(db, extras)

    return calculate_quote(service, bedrooms, bathrooms, selected, suburb, frequency)
