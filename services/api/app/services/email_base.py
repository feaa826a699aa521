from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from html import escape
from typing import Protocol


class NotificationError(Exception):
    """Sending a customer notification failed."""


@dataclass(frozen=True, slots=True)
class BookingConfirmation:
    booking_id: str
    customer_email: str
    customer_name: str
    service_name: str
    booking_date: str
    booking_time: str
    address: str
    postcode: str
    bedrooms: int
    bathrooms: int
    total_price: Decimal
    currency: str = "ZAR"
    cleaner_name: str | None = None
    special_instructions: str | None = None

    @property
    def subject(self) -> str:
        return f"Booking Confirmation - {self.booking_id}"


class ConfirmationNotifier(Protocol):
    name: str

    def send_booking_confirmation(self, message: BookingConfirmation) -> str | None:
        """Send the email; return the provider's message id when it has one."""
        ...


def render_confirmation_html(message: BookingConfirmation) -> str:
    rows = [
        ("Booking", message.booking_id),
        ("Service", message.service_name),
        ("Date", message.booking_date),
        ("Time", message.booking_time),
        ("Address", f"{message.address} {message.postcode}".strip()),
        ("Rooms", f"{message.bedrooms} bedroom(s), {message.bathrooms} bathroom(s)"),
        ("Cleaner", message.cleaner_name or "To be assigned"),
        ("Total", f"{message.currency} {message.total_price:.2f}"),
    ]
    if message.special_instructions:
        rows.append(("Instructions", message.special_instructions))

    table = "".join(
        f"<tr><td><strong>{escape(label)}</strong></td><td>{escape(str(value))}</td></tr>"
        for label, value in rows
    )
    return (
        f"<p>Hi {escape(message.customer_name)},</p>"
        "<p>Thanks for your payment. Your cleaning is booked.</p>"
        f"<table>{table}</table>"
        "<p>Shalean Services</p>"
    )
