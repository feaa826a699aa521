"""Process configuration.

Read once at startup from the environment. ``DATABASE_URL`` is deliberately not
part of :class:`Settings`; the engine cache in ``db.database`` reads it lazily so
tests can point each app instance at its own database file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from services.api.app.errors import ConfigError

PAYMENT_GATEWAYS = ("mock", "paystack")
AVAILABILITY_SOURCES = ("mock", "database")
EMAIL_PROVIDERS = ("log", "resend")
BOOKING_SCHEMA_VERSIONS = ("v2", "v1", "auto")


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "y"}


def _choice(name: str, default: str, allowed: tuple[str, ...]) -> str:
    value = os.getenv(name, default).strip().lower()
    if value not in allowed:
        raise ConfigError(f"Unknown {name}={value!r}. Expected one of: {', '.join(allowed)}.")
    return value


def _optional(name: str) -> str | None:
    value = os.getenv(name, "").strip()
    return value or None


@dataclass(frozen=True, slots=True)
class Settings:
    environment: str
    log_level: str
    timezone: str

    payment_gateway: str
    paystack_secret_key: str | None
    paystack_base_url: str
    payment_callback_url: str
    currency: str

    availability_source: str

    email_provider: str
    resend_api_key: str | None
    email_from: str

    booking_schema_version: str


def load_settings() -> Settings:
    log_level = os.getenv("SHALEAN_LOG_LEVEL", "INFO").strip().upper()
    if log_level not in logging.getLevelNamesMapping():
        raise ConfigError(f"Unknown SHALEAN_LOG_LEVEL={log_level!r}")

    settings = Settings(
        environment=os.getenv("SHALEAN_ENV", "development").strip().lower(),
        log_level=log_level,
        timezone=os.getenv("SHALEAN_TIMEZONE", "Africa/Johannesburg").strip(),
        payment_gateway=_choice("SHALEAN_PAYMENT_GATEWAY", "mock", PAYMENT_GATEWAYS),
        paystack_secret_key=_optional("PAYSTACK_SECRET_KEY"),
        paystack_base_url=os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co").rstrip("/"),
        payment_callback_url=os.getenv(
            "SHALEAN_PAYMENT_CALLBACK_URL", "http://localhost:3000/booking/payment/callback"
        ),
        currency=os.getenv("SHALEAN_CURRENCY", "ZAR").strip().upper(),
        availability_source=_choice("SHALEAN_AVAILABILITY_SOURCE", "mock", AVAILABILITY_SOURCES),
        email_provider=_choice("SHALEAN_EMAIL_PROVIDER", "log", EMAIL_PROVIDERS),
        resend_api_key=_optional("RESEND_API_KEY"),
        email_from=os.getenv(
            "SHALEAN_EMAIL_FROM", "Shalean Services <noreply@shaleanservices.com>"
        ),
        booking_schema_version=_choice(
            "SHALEAN_BOOKING_SCHEMA_VERSION", "v2", BOOKING_SCHEMA_VERSIONS
        ),
    )

    # Server-only secrets: fail at startup, not on the first payment.
    if settings.payment_gateway == "paystack" and not settings.paystack_secret_key:
        raise ConfigError("PAYSTACK_SECRET_KEY is required when SHALEAN_PAYMENT_GATEWAY=paystack")

    if settings.email_provider == "resend" and not settings.resend_api_key:
        raise ConfigError("RESEND_API_KEY is required when SHALEAN_EMAIL_PROVIDER=resend")

    return settings
