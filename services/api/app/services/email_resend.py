from __future__ import annotations

import logging

import resend
from services.api.app.services.email_base import (
    BookingConfirmation,
    ConfirmationNotifier,
    NotificationError,
    render_confirmation_html,
)

logger = logging.getLogger(__name__)


class ResendNotifier(ConfirmationNotifier):
    name = "resend"

    def __init__(self, *, api_key: str, sender: str) -> None:
        resend.api_key = api_key
        self._sender = sender

    def send_booking_confirmation(self, message: BookingConfirmation) -> str | None:
        if not message.customer_email:
            raise NotificationError(f"Booking {message.booking_id} has no customer email")

        email_data = {
            "from": self._sender,
            "to": [message.customer_email],
            "subject": message.subject,
            "html": render_confirmation_html(message),
        }

        try:
            response = resend.Emails.send(email_data)
        except Exception as e:
            raise NotificationError(f"Failed to send confirmation email: {e}") from e

        message_id = response.get("id") if isinstance(response, dict) else None
        logger.info("Sent booking confirmation %s via Resend (%s)", message.booking_id, message_id)
        return message_id
