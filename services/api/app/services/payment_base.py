from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol


class PaymentGatewayError(Exception):
    """Base class for payment gateway errors."""


class PaymentGatewayRejectedError(PaymentGatewayError):
    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Payment gateway returned {status_code}: {message}")
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class PaymentSession:
    authorization_url: str
    reference: str
    access_code: str | None = None


@dataclass(frozen=True, slots=True)
class GatewayVerification:
    reference: str
    # Gateway's own status string: success, failed, abandoned, ongoing, ...
    status: str
    amount_minor: int
    currency: str
    paid_at: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "success"


class PaymentGateway(Protocol):
    name: str

    def initialize(
        self,
        *,
        email: str,
        amount_minor: int,
        currency: str,
        reference: str,
        callback_url: str,
        metadata: dict[str, Any],
    ) -> PaymentSession: ...

    def verify(self, reference: str) -> GatewayVerification: ...
