from __future__ import annotations

from pydantic import BaseModel


class QuoteRequestIn(BaseModel):
    """Marketing-site quote form. Every field is optional; nothing here is validated."""

    name: str | None = None
    email: str | None = None
    phone: str | None = None
    location: str | None = None
    service: str | None = None
    date: str | None = None
    notes: str | None = None
    source: str | None = None


class QuoteAck(BaseModel):
    ok: bool = True
