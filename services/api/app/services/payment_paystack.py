from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Any

import httpx
from services.api.app.services.payment_base import (
    GatewayVerification,
    PaymentGateway,
    PaymentGatewayError,
    PaymentGatewayRejectedError,
    PaymentSession,
)

logger = logging.getLogger(__name__)


def verify_webhook_signature(secret_key: str, body: bytes, signature: str | None) -> bool:
    """Paystack signs webhook bodies with HMAC-SHA512 of the secret key."""
    if not signature:
        return False
    expected = hmac.new(secret_key.encode("utf-8"), body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(expected, signature)


class PaystackGateway(PaymentGateway):
    name = "paystack"

    def __init__(
        self,
        *,
        secret_key: str,
        base_url: str = "https://api.paystack.co",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._secret_key = secret_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        # One short-lived client per call; nothing is held between requests.
        return httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "Authorization": f"Bearer {self._secret_key}",
                "Content-Type": "application/json",
            },
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            with self._client() as client:
                response = client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise PaymentGatewayError(f"Paystack request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 400:
            message = data.get("message") if isinstance(data, dict) else None
            raise PaymentGatewayRejectedError(response.status_code, message or "Unknown error")

        if not isinstance(data, dict) or not data.get("status"):
            raise PaymentGatewayError("Invalid response from Paystack")

        return data

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
        data = self._request(
            "POST",
            "/transaction/initialize",
            json={
                "email": email,
                "amount": amount_minor,
                "currency": currency,
                "reference": reference,
                "callback_url": callback_url,
                "metadata": metadata,
            },
        )

        payload = data.get("data") or {}
        authorization_url = payload.get("authorization_url")
        if not authorization_url:
            raise PaymentGatewayError("Paystack did not return an authorization URL")

        return PaymentSession(
            authorization_url=authorization_url,
            reference=payload.get("reference") or reference,
            access_code=payload.get("access_code"),
        )

    def verify(self, reference: str) -> GatewayVerification:
        data = self._request("GET", f"/transaction/verify/{reference}")
        payload = data.get("data") or {}

        return GatewayVerification(
            reference=payload.get("reference") or reference,
            status=str(payload.get("status") or "unknown"),
            amount_minor=int(payload.get("amount") or 0),
            currency=str(payload.get("currency") or ""),
            paid_at=payload.get("paid_at"),
            raw=data,
        )
