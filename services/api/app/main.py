"""Shalean booking API service entrypoint."""

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from services.api.app.config import load_settings
from services.api.app.db.init_db import init_db
from services.api.app.routers.audit import router as audit_router
from services.api.app.routers.availability import router as availability_router
from services.api.app.routers.bookings import router as bookings_router
from services.api.app.routers.catalog import router as catalog_router
from services.api.app.routers.health import router as health_router
from services.api.app.routers.payments import router as payments_router
from services.api.app.routers.pricing import router as pricing_router
from services.api.app.routers.quote import router as quote_router
from services.api.app.services.availability_factory import get_availability_source
from services.api.app.services.email_factory import get_notifier
from services.api.app.services.payment_factory import get_payment_gateway

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

app = FastAPI(title="Shalean Booking API", version="0.1.0")

app.include_router(health_router)
app.include_router(catalog_router)
app.include_router(pricing_router)
app.include_router(availability_router)
app.include_router(bookings_router)
app.include_router(audit_router)
app.include_router(payments_router)
app.include_router(quote_router)


@app.exception_handler(RequestValidationError)
async def _request_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.on_event("startup")
def _startup() -> None:
    settings = load_settings()
    logging.getLogger().setLevel(settings.log_level)

    app.state.settings = settings
    app.state.payment_gateway = get_payment_gateway(settings)
    app.state.availability_source = get_availability_source(settings)
    app.state.notifier = get_notifier(settings)

    init_db()

    logger.info(
        "Started (env=%s, payments=%s, availability=%s, email=%s, booking schema=%s)",
        settings.environment,
        settings.payment_gateway,
        settings.availability_source,
        settings.email_provider,
        settings.booking_schema_version,
    )
