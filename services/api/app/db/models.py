from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


Money = Numeric(10, 2, asdecimal=True)

# Non-terminal statuses; at most one such booking per session token.
_ACTIVE_STATUS_SQL = "status IN ('DRAFT', 'PENDING_PAYMENT')"


class Base(DeclarativeBase):
    pass


# Catalog


class ServiceCategory(Base):
    __tablename__ = "service_categories"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Service(Base):
    __tablename__ = "services"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    category_id: Mapped[str] = mapped_column(ForeignKey("service_categories.id"), nullable=False)

    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    base_fee: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    per_bedroom: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    per_bathroom: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    service_fee_flat: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    service_fee_pct: Mapped[Decimal] = mapped_column(
        Numeric(5, 2, asdecimal=True), nullable=False, default=Decimal("0")
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=120)

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class Extra(Base):
    __tablename__ = "extras"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    slug: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Money, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class Region(Base):
    __tablename__ = "regions"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    state: Mapped[str | None] = mapped_column(String, nullable=True)


class Suburb(Base):
    __tablename__ = "suburbs"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    region_id: Mapped[str] = mapped_column(ForeignKey("regions.id"), nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    postcode: Mapped[str | None] = mapped_column(String, nullable=True)
    delivery_fee: Mapped[Decimal] = mapped_column(Money, nullable=False, default=Decimal("0"))
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


# Cleaners


class Cleaner(Base):
    __tablename__ = "cleaners"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    full_name: Mapped[str] = mapped_column(String, nullable=False)
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class CleanerArea(Base):
    __tablename__ = "cleaner_areas"

    cleaner_id: Mapped[str] = mapped_column(ForeignKey("cleaners.id"), primary_key=True)
    suburb_id: Mapped[str] = mapped_column(ForeignKey("suburbs.id"), primary_key=True)


class CleanerService(Base):
    __tablename__ = "cleaner_services"

    cleaner_id: Mapped[str] = mapped_column(ForeignKey("cleaners.id"), primary_key=True)
    service_id: Mapped[str] = mapped_column(ForeignKey("services.id"), primary_key=True)


class CleanerAvailability(Base):
    __tablename__ = "cleaner_availability"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    cleaner_id: Mapped[str] = mapped_column(ForeignKey("cleaners.id"), nullable=False)

    # 0 = Monday ... 6 = Sunday (date.weekday()).
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False)
    start_time: Mapped[str] = mapped_column(String(5), nullable=False)
    end_time: Mapped[str] = mapped_column(String(5), nullable=False)


# Bookings


class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index(
            "uq_bookings_active_session",
            "session_token",
            unique=True,
            sqlite_where=text(_ACTIVE_STATUS_SQL),
            postgresql_where=text(_ACTIVE_STATUS_SQL),
        ),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True)
    session_token: Mapped[str] = mapped_column(String, nullable=False)

    customer_id: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_email: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String, nullable=True)

    service_id: Mapped[str | None] = mapped_column(ForeignKey("services.id"), nullable=True)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    suburb_id: Mapped[str | None] = mapped_column(ForeignKey("suburbs.id"), nullable=True)
    address: Mapped[str | None] = mapped_column(String, nullable=True)
    postcode: Mapped[str | None] = mapped_column(String, nullable=True)

    booking_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    start_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    end_time: Mapped[str | None] = mapped_column(String(5), nullable=True)
    frequency: Mapped[str] = mapped_column(String, nullable=False, default="one-time")
    special_instructions: Mapped[str | None] = mapped_column(Text, nullable=True)

    total_price: Mapped[Decimal | None] = mapped_column(Money, nullable=True)
    price_breakdown_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    status: Mapped[str] = mapped_column(String, nullable=False, default="DRAFT")

    cleaner_id: Mapped[str | None] = mapped_column(ForeignKey("cleaners.id"), nullable=True)
    auto_assign: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    payment_reference: Mapped[str | None] = mapped_column(String, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class BookingExtra(Base):
    __tablename__ = "booking_extras"

    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id"), primary_key=True)
    extra_id: Mapped[str] = mapped_column(ForeignKey("extras.id"), primary_key=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    unit_price: Mapped[Decimal] = mapped_column(Money, nullable=False)


class Payment(Base):
    __tablename__ = "payments"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id"), nullable=False)

    reference: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    amount_minor: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="INITIALIZED")
    gateway: Mapped[str] = mapped_column(String, nullable=False)
    authorization_url: Mapped[str | None] = mapped_column(String, nullable=True)
    gateway_payload_json: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


# Marketing funnel


class QuoteRequest(Base):
    __tablename__ = "quote_requests"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)
    location: Mapped[str | None] = mapped_column(String, nullable=True)
    service: Mapped[str | None] = mapped_column(String, nullable=True)
    preferred_date: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="website")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class EventLog(Base):
    __tablename__ = "event_log"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.id"), nullable=False, index=True)
    session_token: Mapped[str | None] = mapped_column(String, nullable=True)

    entity_type: Mapped[str] = mapped_column(String, nullable=False)
    entity_id: Mapped[str] = mapped_column(String, nullable=False)
    event_type: Mapped[str] = mapped_column(String, nullable=False)
    event_payload_json: Mapped[dict] = mapped_column(JSON, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
