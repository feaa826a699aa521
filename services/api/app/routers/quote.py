from __future__ import annotations

import json
import logging
from uuid import uuid4

from fastapi import APIRouter, Depends
from services.api.app.db.deps import get_db, raw_body
from services.api.app.db.models import QuoteRequest
from services.api.app.models.quote import QuoteAck, QuoteRequestIn
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/quote", response_model=QuoteAck)
def submit_quote(body: bytes = Depends(raw_body), db: Session = Depends(get_db)) -> QuoteAck:
    """Store a marketing quote request.

    Always answers ``{"ok": true}``: a failure here must not break the landing
    page, so it is logged and dropped.
    """

    try:
        form = QuoteRequestIn.model_validate(json.loads(body or b"{}"))
        db.add(
            QuoteRequest(
                id=uuid4().hex,
                name=form.name,
                email=form.email,
                phone=form.phone,
                location=form.location,
                service=form.service,
                preferred_date=form.date,
                notes=form.notes,
                source=form.source or "website",
            )
        )
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Dropping quote request that could not be stored")

    return QuoteAck(ok=True)
