"""Payment handoff: open a gateway session for a priced draft, then reconcile it.

The gateway is the source of truth for whether money moved. Locally a booking
only ever moves DRAFT -> PENDING_PAYMENT on initiation and
PENDING_PAYMENT -> CONFIRMED on a verified payment. A failed or inconclusive
verification leaves the booking PENDING_PAYMENT so the customer can retry.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from uuid import uuid4

from packages.shared.schemas.booking import BookingStatusV1, PaymentStatusV1
from packages.shared.schemas.events import EntityTypeV1, EventTypeV1
from services.api.app.db.models import Booking, Cleaner, Payment, Service, utcnow
from services.api.app.errors import NotFound, StateError, UpstreamError, ValidationError
from services.api.app.services.drafts import apply_transition, get_booking
from services.api.app.services.email_base import (
    BookingConfirmation,
    ConfirmationNotifier,
    NotificationError,
)
from services.api.app.services.events import log_event
from services.api.app.services.payment_base import (
    GatewayVerification,
    PaymentGateway,
    PaymentGatewayError,
)
from sqlalchemy import update
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits

_PAYABLE_STATUSES = (BookingStatusV1.DRAFT.value, BookingStatusV1.PENDING_PAYMENT.value)
# Bookings that can no longer take a payment.
_CLOSED_STATUSES = (BookingStatusV1.CONFIRMED.value, BookingStatusV1.CANCELLED.value)


@dataclass(frozen=True, slots=True)
class PaymentInitiation:
    booking_id: str
    reference: str
    authorization_url: str
    amount_minor: int
    currency: str


@dataclass(frozen=True, slots=True)
class PaymentVerification:
    booking_id: str
    reference: str
    verified: bool
    booking_status: str
    payment_status: str
    message: str
    # True when this call did not confirm the booking itself (an earlier one did).
    already_confirmed: bool = False


def generate_reference(booking_id: str, *, now_ms: int | None = None) -> str:
    """``PAY_<8 chars of booking id>_<unix ms>_<6 random>``, upper-cased."""

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_REFERENCE_ALPHABET) for _ in range(6))
    return f"PAY_{booking_id[:8]}_{now_ms}_{suffix}".upper()


def to_minor_units(amount: Decimal) -> int:
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def get_payment_by_reference(db: Session, reference: str) -> Payment:
    payment = db.query(Payment).filter(Payment.reference == reference).first()
    if payment is None:
        raise NotFound("Payment not found")
    return payment


def initiate_payment(
    db: Session,
    booking_id: str,
    *,
    gateway: PaymentGateway,
    callback_url: str,
    currency: str,
    customer_email: str | None = None,
    customer_name: str | None = None,
) -> PaymentInitiation:
    booking = get_booking(db, booking_id)

    if booking.status not in _PAYABLE_STATUSES:
        raise StateError(f"Booking {booking.id} is {booking.status} and cannot be paid")

    if booking.total_price is None or booking.total_price <= 0:
        raise ValidationError("Booking has no payable total; choose a service first")

    email = (customer_email or booking.customer_email or "").strip()
    if not email:
        raise ValidationError("customer_email is required to start a payment")

    reference = generate_reference(booking.id)
    amount_minor = to_minor_units(booking.total_price)

    try:
        session = gateway.initialize(
            email=email,
            amount_minor=amount_minor,
            currency=currency,
            reference=reference,
            callback_url=callback_url,
            metadata={
                "booking_id": booking.id,
                "customer_name": customer_name or booking.customer_name,
            },
        )
    except PaymentGatewayError as e:
        db.rollback()
        raise UpstreamError(
            f"Payment initialization failed for booking {booking.id}: {e}",
            status_code=502,
            public_message="Payment initialization failed",
        ) from e

    try:
        booking.customer_email = email
        if customer_name:
            booking.customer_name = customer_name.strip()

        payment = Payment(
            id=uuid4().hex,
            booking_id=booking.id,
            reference=session.reference,
            amount_minor=amount_minor,
            currency=currency,
            status=PaymentStatusV1.INITIALIZED.value,
            gateway=gateway.name,
            authorization_url=session.authorization_url,
            gateway_payload_json={"access_code": session.access_code},
        )
        db.add(payment)
        booking.payment_reference = session.reference

        if booking.status == BookingStatusV1.DRAFT.value:
            apply_transition(db, booking, BookingStatusV1.PENDING_PAYMENT)
        else:
            booking.updated_at = utcnow()

        log_event(
            db,
            booking,
            event_type=EventTypeV1.PAYMENT_INITIATED,
            event_payload={
                "reference": session.reference,
                "amount_minor": amount_minor,
                "currency": currency,
                "gateway": gateway.name,
            },
            entity_type=EntityTypeV1.PAYMENT,
            entity_id=payment.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "Payment %s initiated for booking %s (%s %s)",
        session.reference,
        booking.id,
        amount_minor,
        currency,
    )
    return PaymentInitiation(
        booking_id=booking.id,
        reference=session.reference,
        authorization_url=session.authorization_url,
        amount_minor=amount_minor,
        currency=currency,
    )


def verify_payment(
    db: Session,
    reference: str,
    *,
    gateway: PaymentGateway,
    notifier: ConfirmationNotifier,
) -> PaymentVerification:
    reference = (reference or "").strip()
    if not reference:
        raise ValidationError("reference is required")

    payment = get_payment_by_reference(db, reference)
    booking = get_booking(db, payment.booking_id)

    if payment.status == PaymentStatusV1.SUCCESS.value:
        return _result(
            booking, payment, verified=True, message="Payment already verified", already=True
        )

    try:
        outcome = gateway.verify(reference)
    except PaymentGatewayError as e:
        raise UpstreamError(
            f"Payment verification failed for {reference}: {e}",
            status_code=502,
            public_message="Payment verification failed",
        ) from e

    problem = _verification_problem(payment, outcome)
    if problem is not None:
        return _record_not_verified(db, booking, payment, outcome, problem)

    try:
        won = _mark_payment_succeeded(db, payment, outcome)
        if not won:
            # A concurrent verification (callback vs webhook) got there first.
            db.commit()
            db.refresh(payment)
            db.refresh(booking)
            return _result(
                booking, payment, verified=True, message="Payment already verified", already=True
            )

        db.refresh(booking)
        if booking.status in _CLOSED_STATUSES:
            return _record_refund_required(db, booking, payment, outcome)

        apply_transition(db, booking, BookingStatusV1.CONFIRMED)

        log_event(
            db,
            booking,
            event_type=EventTypeV1.PAYMENT_VERIFIED,
            event_payload={
                "reference": reference,
                "amount_minor": outcome.amount_minor,
                "currency": outcome.currency,
                "paid_at": outcome.paid_at,
            },
            entity_type=EntityTypeV1.PAYMENT,
            entity_id=payment.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Payment %s verified; booking %s confirmed", reference, booking.id)
    _send_confirmation(db, booking, payment, notifier)

    return _result(booking, payment, verified=True, message="Payment verified")


def _verification_problem(payment: Payment, outcome: GatewayVerification) -> str | None:
    if not outcome.succeeded:
        return f"Payment status is {outcome.status}"
    if outcome.currency.upper() != payment.currency.upper():
        return f"Currency mismatch: expected {payment.currency}, got {outcome.currency}"
    if outcome.amount_minor < payment.amount_minor:
        return f"Amount mismatch: expected {payment.amount_minor}, got {outcome.amount_minor}"
    return None


def _mark_payment_succeeded(db: Session, payment: Payment, outcome: GatewayVerification) -> bool:
    result = db.execute(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status != PaymentStatusV1.SUCCESS.value)
        .values(
            status=PaymentStatusV1.SUCCESS.value,
            gateway_payload_json=outcome.raw,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _record_refund_required(
    db: Session, booking: Booking, payment: Payment, outcome: GatewayVerification
) -> PaymentVerification:
    """Record a captured payment for a booking that can no longer take it.

    Runs inside the caller's transaction, after the payment row was marked SUCCESS.
    The booking keeps its status and no confirmation email goes out.
    """

    reason = "duplicate" if booking.status == BookingStatusV1.CONFIRMED.value else "cancelled"
    log_event(
        db,
        booking,
        event_type=EventTypeV1.REFUND_REQUIRED,
        event_payload={
            "reference": payment.reference,
            "reason": reason,
            "amount_minor": outcome.amount_minor,
            "currency": outcome.currency,
        },
        entity_type=EntityTypeV1.PAYMENT,
        entity_id=payment.id,
    )
    db.commit()
    db.refresh(payment)

    logger.warning(
        "Payment %s captured for %s booking %s; refund required (%s)",
        payment.reference,
        booking.status,
        booking.id,
        reason,
    )
    if reason == "duplicate":
        message = "Booking already confirmed; this payment will be refunded"
    else:
        message = "Booking was cancelled; this payment will be refunded"
    return _result(booking, payment, verified=True, message=message, already=True)


def _record_not_verified(
    db: Session,
    booking: Booking,
    payment: Payment,
    outcome: GatewayVerification,
    problem: str,
) -> PaymentVerification:
    try:
        if outcome.status in {"failed", "abandoned", "reversed"}:
            payment.status = PaymentStatusV1.FAILED.value
        payment.gateway_payload_json = outcome.raw
        payment.updated_at = utcnow()

        log_event(
            db,
            booking,
            event_type=EventTypeV1.PAYMENT_NOT_VERIFIED,
            event_payload={"reference": payment.reference, "reason": problem},
            entity_type=EntityTypeV1.PAYMENT,
            entity_id=payment.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.warning("Payment %s not verified for booking %s: %s", payment.reference, booking.id, problem)
    return _result(booking, payment, verified=False, message=problem)


def _send_confirmation(
    db: Session, booking: Booking, payment: Payment, notifier: ConfirmationNotifier
) -> None:
    message = build_confirmation(db, booking, payment)
    try:
        message_id = notifier.send_booking_confirmation(message)
    except NotificationError as e:
        logger.error("Confirmation email for booking %s failed: %s", booking.id, e)
        return

    try:
        log_event(
            db,
            booking,
            event_type=EventTypeV1.CONFIRMATION_SENT,
            event_payload={"provider": notifier.name, "message_id": message_id},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise


def build_confirmation(db: Session, booking: Booking, payment: Payment) -> BookingConfirmation:
    service = db.get(Service, booking.service_id) if booking.service_id else None
    cleaner = db.get(Cleaner, booking.cleaner_id) if booking.cleaner_id else None

    time_range = booking.start_time or ""
    if booking.start_time and booking.end_time:
        time_range = f"{booking.start_time} - {booking.end_time}"

    return BookingConfirmation(
        booking_id=booking.id,
        customer_email=booking.customer_email or "",
        customer_name=booking.customer_name or "there",
        service_name=service.name if service is not None else "Cleaning",
        booking_date=booking.booking_date.isoformat() if booking.booking_date else "",
        booking_time=time_range,
        address=booking.address or "",
        postcode=booking.postcode or "",
        bedrooms=booking.bedrooms,
        bathrooms=booking.bathrooms,
        total_price=booking.total_price or Decimal("0"),
        currency=payment.currency,
        cleaner_name=cleaner.full_name if cleaner is not None else None,
        special_instructions=booking.special_instructions,
    )


def _result(
    booking: Booking,
    payment: Payment,
    *,
    verified: bool,
    message: str,
    already: bool = False,
) -> PaymentVerification:
    return PaymentVerification(
        booking_id=booking.id,
        reference=payment.reference,
        verified=verified,
        booking_status=booking.status,
        payment_status=payment.status,
        message=message,
        already_confirmed=already,
    )
