from __future__ import annotations

import logging

from services.api.app.services.email_base import BookingConfirmation, ConfirmationNotifier

logger = logging.getLogger(__name__)


class LogNotifier(ConfirmationNotifier):
    """Writes confirmations to the log instead of sending them (local dev, tests)."""

    name = "log"

    def __init__(self) -> None:
        self.sent: list[BookingConfirmation] = []

    def send_booking_confirmation(self, message: BookingConfirmation) -> str | None:
        self.sent.append(message)
        logger.info(
            "Booking confirmation for %s to %s: %s",
            message.booking_id,
            message.customer_email,
            message.subject,
        )
        return None
