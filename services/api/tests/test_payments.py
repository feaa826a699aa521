from __future__ import annotations

import re
from decimal import Decimal

import pytest
from packages.shared.schemas.booking import BookingStatusV1
from services.api.app.db.models import Booking, EventLog, Payment
from services.api.app.errors import NotFound, StateError, UpstreamError, ValidationError
from services.api.app.services.drafts import transition_status, upsert_draft
from services.api.app.services.email_base import NotificationError
from services.api.app.services.email_log import LogNotifier
from services.api.app.services.payment_mock import MockPaymentGateway
from services.api.app.services.payments import (
    generate_reference,
    initiate_payment,
    to_minor_units,
    verify_payment,
)

CALLBACK = "http://localhost:3000/booking/payment/callback"


class _FailingNotifier:
    name = "failing"

    def __init__(self) -> None:
        self.attempts = 0

    def send_booking_confirmation(self, message):
        self.attempts += 1
        raise NotificationError("provider down")


def _priced_draft(db, catalog, token: str = "sess-pay", email: str | None = "ada@example.com"):
    patch = {"service_id": catalog["service_id"], "bedrooms": 2, "customer_name": "Ada"}
    if email:
        patch["customer_email"] = email
    return upsert_draft(db, token, patch)


def _initiate(db, booking_id: str, gateway: MockPaymentGateway, **kwargs):
    return initiate_payment(
        db, booking_id, gateway=gateway, callback_url=CALLBACK, currency="ZAR", **kwargs
    )


def test_reference_format() -> None:
    ref = generate_reference("abcdef0123456789", now_ms=1700000000000)
    assert re.fullmatch(r"PAY_ABCDEF01_1700000000000_[A-Z0-9]{6}", ref)


def test_minor_units() -> None:
    assert to_minor_units(Decimal("132.00")) == 13200
    assert to_minor_units(Decimal("225.5")) == 22550


def test_initiate_moves_draft_to_pending_payment(db, catalog) -> None:
    booking = _priced_draft(db, catalog)
    gateway = MockPaymentGateway()

    initiation = _initiate(db, booking.id, gateway)

    assert initiation.amount_minor == 13200
    assert initiation.currency == "ZAR"
    assert initiation.authorization_url.startswith(CALLBACK + "?")
    assert f"reference={initiation.reference}" in initiation.authorization_url

    db.expire_all()
    stored = db.get(Booking, booking.id)
    assert stored.status == BookingStatusV1.PENDING_PAYMENT.value
    assert stored.payment_reference == initiation.reference

    payment = db.query(Payment).filter(Payment.reference == initiation.reference).one()
    assert payment.status == "INITIALIZED"
    assert payment.gateway == "mock"


def test_initiate_requires_price_and_email(db, catalog) -> None:
    unpriced = upsert_draft(db, "sess-unpriced", {"customer_email": "a@example.com"})
    with pytest.raises(ValidationError):
        _initiate(db, unpriced.id, MockPaymentGateway())

    no_email = _priced_draft(db, catalog, token="sess-no-email", email=None)
    with pytest.raises(ValidationError):
        _initiate(db, no_email.id, MockPaymentGateway())

    # An email supplied at checkout is enough.
    initiation = _initiate(
        db, no_email.id, MockPaymentGateway(), customer_email="late@example.com"
    )
    db.expire_all()
    assert db.get(Booking, no_email.id).customer_email == "late@example.com"
    assert initiation.reference


def test_initiate_rejects_terminal_and_unknown_bookings(db, catalog) -> None:
    booking = _priced_draft(db, catalog)
    transition_status(db, booking.id, BookingStatusV1.CANCELLED)

    with pytest.raises(StateError):
        _initiate(db, booking.id, MockPaymentGateway())

    with pytest.raises(NotFound):
        _initiate(db, "missing", MockPaymentGateway())


def test_gateway_failure_leaves_booking_as_draft(db, catalog) -> None:
    booking = _priced_draft(db, catalog)

    with pytest.raises(UpstreamError) as exc:
        _initiate(db, booking.id, MockPaymentGateway(fail_initialize=True))

    assert exc.value.status_code == 502
    db.expire_all()
    assert db.get(Booking, booking.id).status == BookingStatusV1.DRAFT.value
    assert db.query(Payment).count() == 0


def test_reinitiating_while_pending_issues_a_new_reference(db, catalog) -> None:
    booking = _priced_draft(db, catalog)
    gateway = MockPaymentGateway()

    first = _initiate(db, booking.id, gateway)
    second = _initiate(db, booking.id, gateway)

    assert first.reference != second.reference
    db.expire_all()
    assert db.get(Booking, booking.id).payment_reference == second.reference
    assert db.query(Payment).count() == 2


def test_verify_confirms_booking_and_sends_one_email(db, catalog) -> None:
    booking = _priced_draft(db, catalog)
    gateway = MockPaymentGateway()
    notifier = LogNotifier()
    initiation = _initiate(db, booking.id, gateway)

    result = verify_payment(db, initiation.reference, gateway=gateway, notifier=notifier)

    assert result.verified is True
    assert result.booking_status == BookingStatusV1.CONFIRMED.value
    assert result.payment_status == "SUCCESS"
    assert len(notifier.sent) == 1
    assert notifier.sent[0].customer_email == "ada@example.com"
    assert notifier.sent[0].service_name == "Standard Clean"

    events = {e.event_type for e in db.query(EventLog).filter(EventLog.booking_id == booking.id)}
    assert {"PAYMENT_INITIATED", "PAYMENT_VERIFIED", "CONFIRMATION_SENT"} <= events


def test_second_verify_is_idempotent(db, catalog) -> None:
    booking = _priced_draft(db, catalog)
    gateway = MockPaymentGateway()
    notifier = LogNotifier()
    initiation = _initiate(db, booking.id, gateway)

    verify_payment(db, initiation.reference, gateway=gateway, notifier=notifier)
    again = verify_payment(db, initiation.reference, gateway=gateway, notifier=notifier)

    assert again.verified is True
    assert again.already_confirmed is True
    assert again.booking_status == BookingStatusV1.CONFIRMED.value
    assert len(notifier.sent) == 1
    # The gateway is not asked again once the payment is settled.
    assert gateway.verify_calls == [initiation.reference]


def test_failed_payment_keeps_booking_pending(db, catalog) -> None:
    booking = _priced_draft(db, catalog)
    gateway = MockPaymentGateway(succeed=False)
    notifier = LogNotifier()
    initiation = _initiate(db, booking.id, gateway)

    result = verify_payment(db, initiation.reference, gateway=gateway, notifier=notifier)

    assert result.verified is False
    assert result.booking_status == BookingStatusV1.PENDING_PAYMENT.value
    assert result.payment_status == "FAILED"
    assert notifier.sent == []

    # The customer can retry with a fresh payment.
    gateway.succeed = True
    retry = _initiate(db, booking.id, gateway)
    assert verify_payment(db, retry.reference, gateway=gateway, notifier=notifier).verified


def test_short_payment_is_not_verified(db, catalog) -> None:
    booking = _priced_draft(db, catalog)
    gateway = MockPaymentGateway()
    initiation = _initiate(db, booking.id, gateway)
    gateway._sessions[initiation.reference] = (100, "ZAR")

    result = verify_payment(db, initiation.reference, gateway=gateway, notifier=LogNotifier())

    assert result.verified is False
    assert result.booking_status == BookingStatusV1.PENDING_PAYMENT.value
    assert result.payment_status == "INITIALIZED"


def test_email_failure_does_not_undo_confirmation(db, catalog) -> None:
    booking = _priced_draft(db, catalog)
    gateway = MockPaymentGateway()
    notifier = _FailingNotifier()
    initiation = _initiate(db, booking.id, gateway)

    result = verify_payment(db, initiation.reference, gateway=gateway, notifier=notifier)

    assert result.verified is True
    assert notifier.attempts == 1
    db.expire_all()
    assert db.get(Booking, booking.id).status == BookingStatusV1.CONFIRMED.value


def test_verify_unknown_reference(db) -> None:
    with pytest.raises(NotFound):
        verify_payment(db, "PAY_NOPE", gateway=MockPaymentGateway(), notifier=LogNotifier())


def _refund_events(db, booking_id: str) -> list[dict]:
    return [
        e.event_payload_json
        for e in db.query(EventLog).filter(
            EventLog.booking_id == booking_id, EventLog.event_type == "REFUND_REQUIRED"
        )
    ]


def test_paying_two_references_confirms_once(db, catalog) -> None:
    booking = _priced_draft(db, catalog, "sess-twice")
    gateway = MockPaymentGateway()
    notifier = LogNotifier()
    first = _initiate(db, booking.id, gateway)
    second = _initiate(db, booking.id, gateway)

    verify_payment(db, first.reference, gateway=gateway, notifier=notifier)
    result = verify_payment(db, second.reference, gateway=gateway, notifier=notifier)

    assert result.verified is True
    assert result.already_confirmed is True
    assert result.booking_status == BookingStatusV1.CONFIRMED.value
    assert result.payment_status == "SUCCESS"
    assert len(notifier.sent) == 1

    refunds = _refund_events(db, booking.id)
    assert [r["reference"] for r in refunds] == [second.reference]
    assert refunds[0]["reason"] == "duplicate"


def test_payment_for_cancelled_booking_is_kept_for_refund(db, catalog) -> None:
    booking = _priced_draft(db, catalog, "sess-cancel-paid")
    gateway = MockPaymentGateway()
    notifier = LogNotifier()
    initiation = _initiate(db, booking.id, gateway)
    transition_status(db, booking.id, BookingStatusV1.CANCELLED)

    result = verify_payment(db, initiation.reference, gateway=gateway, notifier=notifier)

    assert result.verified is True
    assert result.booking_status == BookingStatusV1.CANCELLED.value
    assert notifier.sent == []

    db.expire_all()
    assert db.get(Booking, booking.id).status == BookingStatusV1.CANCELLED.value
    payment = db.query(Payment).filter(Payment.reference == initiation.reference).one()
    assert payment.status == "SUCCESS"
    assert _refund_events(db, booking.id)[0]["reason"] == "cancelled"

    # Redelivery changes nothing.
    again = verify_payment(db, initiation.reference, gateway=gateway, notifier=notifier)
    assert again.already_confirmed is True
    assert len(_refund_events(db, booking.id)) == 1
