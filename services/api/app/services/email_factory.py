from __future__ import annotations

from services.api.app.config import Settings
from services.api.app.errors import ConfigError
from services.api.app.services.email_base import ConfirmationNotifier
from services.api.app.services.email_log import LogNotifier


def get_notifier(settings: Settings) -> ConfirmationNotifier:
    provider = settings.email_provider

    if provider == "log":
        return LogNotifier()

    if provider == "resend":
        from services.api.app.services.email_resend import ResendNotifier

        if not settings.resend_api_key:
            raise ConfigError("RESEND_API_KEY is required when SHALEAN_EMAIL_PROVIDER=resend")

        return ResendNotifier(api_key=settings.resend_api_key, sender=settings.email_from)

    raise ConfigError(f"Unknown SHALEAN_EMAIL_PROVIDER={provider!r}. Expected log or resend.")
