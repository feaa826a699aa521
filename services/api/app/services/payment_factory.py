from __future__ import annotations

from services.api.app.config import Settings
from services.api.app.errors import ConfigError
from services.api.app.services.payment_base import PaymentGateway
from services.api.app.services.payment_mock import MockPaymentGateway


def get_payment_gateway(settings: Settings) -> PaymentGateway:
    provider = settings.payment_gateway

    if provider == "mock":
        return MockPaymentGateway()

    if provider == "paystack":
        from services.api.app.services.payment_paystack import PaystackGateway

        if not settings.paystack_secret_key:
            raise ConfigError("PAYSTACK_SECRET_KEY is required when SHALEAN_PAYMENT_GATEWAY=paystack")

        return PaystackGateway(
            secret_key=settings.paystack_secret_key,
            base_url=settings.paystack_base_url,
        )

    raise ConfigError(f"Unknown SHALEAN_PAYMENT_GATEWAY={provider!r}. Expected mock or paystack.")
