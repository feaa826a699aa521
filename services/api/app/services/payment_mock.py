from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from urllib.parse import urlencode
from uuid import uuid4

from services.api.app.services.payment_base import (
    GatewayVerification,
    PaymentGateway,
    PaymentGatewayError,
    PaymentSession,
)


class MockPaymentGateway(PaymentGateway):
    """Paystack stand-in for local development and tests.

    The authorization URL sends the customer straight back to the callback with
    ``status=success``. Verification reports the amount recorded at
    initialization, so it only knows references this instance created.
    """

    name = "mock"

    def __init__(self, *, succeed: bool = True, fail_initialize: bool = False) -> None:
        self.succeed = succeed
        self.fail_initialize = fail_initialize
        self._sessions: dict[str, tuple[int, str]] = {}
        self.verify_calls: list[str] = []

    def initialize(
        self,
        *,
        email: str,
        amount_minor: int,
        currency: str,
        reference: str,
        callback_url: str,
        metadata: dict[str, Any],
    ) -> PaymentSession:
        del email, metadata

        if self.fail_initialize:
            raise PaymentGatewayError("Mock gateway: payment initialization failed")

        self._sessions[reference] = (amount_minor, currency)
        query = urlencode({"reference": reference, "status": "success", "mock": "true"})
        return PaymentSession(
            authorization_url=f"{callback_url}?{query}",
            reference=reference,
            access_code=f"mock_access_{uuid4().hex[:12]}",
        )

    def verify(self, reference: str) -> GatewayVerification:
        self.verify_calls.append(reference)

        amount_minor, currency = self._sessions.get(reference, (0, "ZAR"))
        status = "success" if self.succeed and reference in self._sessions else "failed"
        paid_at = datetime.now(timezone.utc).isoformat() if status == "success" else None

        return GatewayVerification(
            reference=reference,
            status=status,
            amount_minor=amount_minor,
            currency=currency,
            paid_at=paid_at,
            raw={"status": True, "data": {"status": status, "reference": reference, "mock": True}},
        )
