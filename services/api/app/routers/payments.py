from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from services.api.app.config import Settings
from services.api.app.db.deps import (
    current_notifier,
    current_payment_gateway,
    current_settings,
    get_db,
    raw_body,
)
from services.api.app.errors import BookingError, NotFound, raise_http_error
from services.api.app.models.payment import (
    PaymentInitiateRequest,
    PaymentInitiateResponse,
    PaymentVerifyResponse,
)
from services.api.app.services.email_base import ConfirmationNotifier
from services.api.app.services.payment_base import PaymentGateway
from services.api.app.services.payment_paystack import verify_webhook_signature
from services.api.app.services.payments import (
    PaymentVerification,
    initiate_payment,
    verify_payment,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/payments/initiate", response_model=PaymentInitiateResponse)
def start_payment(
    payload: PaymentInitiateRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(current_settings),
    gateway: PaymentGateway = Depends(current_payment_gateway),
) -> PaymentInitiateResponse:
    try:
        initiation = initiate_payment(
            db,
            payload.booking_id,
            gateway=gateway,
            callback_url=settings.payment_callback_url,
            currency=settings.currency,
            customer_email=payload.customer_email,
            customer_name=payload.customer_name,
        )
    except (BookingError, SQLAlchemyError) as e:
        raise_http_error(e)

    return PaymentInitiateResponse(
        authorization_url=initiation.authorization_url,
        reference=initiation.reference,
        booking_id=initiation.booking_id,
        amount_minor=initiation.amount_minor,
        currency=initiation.currency,
    )


@router.get("/api/payments/verify", response_model=PaymentVerifyResponse)
def check_payment(
    reference: str,
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(current_payment_gateway),
    notifier: ConfirmationNotifier = Depends(current_notifier),
) -> PaymentVerifyResponse:
    try:
        result = verify_payment(db, reference, gateway=gateway, notifier=notifier)
    except (BookingError, SQLAlchemyError) as e:
        raise_http_error(e)

    return verification_out(result)


@router.post("/api/payments/webhook")
def paystack_webhook(
    body: bytes = Depends(raw_body),
    x_paystack_signature: str | None = Header(default=None),
    db: Session = Depends(get_db),
    settings: Settings = Depends(current_settings),
    gateway: PaymentGateway = Depends(current_payment_gateway),
    notifier: ConfirmationNotifier = Depends(current_notifier),
) -> dict:
    if not settings.paystack_secret_key:
        raise HTTPException(status_code=503, detail="Payment webhook is not configured")

    if not verify_webhook_signature(settings.paystack_secret_key, body, x_paystack_signature):
        raise HTTPException(status_code=400, detail="Invalid signature")

    try:
        event = json.loads(body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e

    if not isinstance(event, dict) or event.get("event") != "charge.success":
        return {"received": True}

    data = event.get("data")
    reference = data.get("reference") if isinstance(data, dict) else None
    if not isinstance(reference, str) or not reference.strip():
        raise HTTPException(status_code=400, detail="Missing payment reference")
    reference = reference.strip()

    try:
        result = verify_payment(db, reference, gateway=gateway, notifier=notifier)
    except NotFound:
        # Not one of ours (or already purged); acknowledge so the gateway stops retrying.
        logger.warning("Webhook for unknown payment reference %s", reference)
        return {"received": True}
    except (BookingError, SQLAlchemyError) as e:
        raise_http_error(e)

    return {"received": True, "verified": result.verified}


def verification_out(result: PaymentVerification) -> PaymentVerifyResponse:
    return PaymentVerifyResponse(
        verified=result.verified,
        reference=result.reference,
        booking_id=result.booking_id,
        booking_status=result.booking_status,
        payment_status=result.payment_status,
        message=result.message,
    )
