from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from services.api.app.db.deps import get_db
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

router = APIRouter()


def _database_check(db: Session) -> str:
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error("Health check: database unreachable: %s", e)
        return "error"
    return "ok"


@router.get("/healthz")
@router.get("/api/health")
def health(request: Request, db: Session = Depends(get_db)) -> JSONResponse:
    settings = getattr(request.app.state, "settings", None)

    checks = {
        "config": "ok" if settings is not None else "error",
        "database": _database_check(db),
    }
    ok = all(v == "ok" for v in checks.values())

    return JSONResponse(
        status_code=200 if ok else 503,
        content={
            "ok": ok,
            "version": request.app.version,
            "environment": settings.environment if settings is not None else None,
            "time": datetime.now(timezone.utc).isoformat(),
            "checks": checks,
        },
    )
