from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy.orm import Session

# A Wednesday; cleaner windows below are seeded for weekday 2.
BOOKING_DAY = date(2030, 1, 2)


@pytest.fixture()
def sqlite_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> str:
    db_path = tmp_path / "shalean_test.db"
    url = f"sqlite+pysqlite:///{db_path}"
    monkeypatch.setenv("DATABASE_URL", url)
    monkeypatch.setenv("SHALEAN_DB_AUTO_CREATE", "true")
    monkeypatch.setenv("SHALEAN_PAYMENT_GATEWAY", "mock")
    monkeypatch.setenv("SHALEAN_AVAILABILITY_SOURCE", "mock")
    monkeypatch.setenv("SHALEAN_EMAIL_PROVIDER", "log")
    monkeypatch.delenv("PAYSTACK_SECRET_KEY", raising=False)
    monkeypatch.delenv("SHALEAN_BOOKING_SCHEMA_VERSION", raising=False)

    from services.api.app.db.init_db import init_db

    init_db()
    return url


@pytest.fixture()
def db(sqlite_url: str) -> Session:
    from services.api.app.db.database import db_session

    session = db_session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def catalog(db: Session) -> dict[str, str]:
    seed_catalog(db)
    return {
        "service_id": "svc-standard",
        "service_slug": "standard-clean",
        "extra_id": "extra-oven",
        "suburb_id": "sub-gardens",
        "region_id": "reg-cpt",
    }


def seed_catalog(db: Session) -> None:
    from services.api.app.db.models import (
        Cleaner,
        CleanerArea,
        CleanerAvailability,
        CleanerService,
        Extra,
        Region,
        Service,
        ServiceCategory,
        Suburb,
    )

    db.add(ServiceCategory(id="cat-home", name="Home cleaning", slug="home", sort_order=1))
    db.add(
        Service(
            id="svc-standard",
            category_id="cat-home",
            name="Standard Clean",
            slug="standard-clean",
            base_fee=Decimal("100"),
            per_bedroom=Decimal("20"),
            per_bathroom=Decimal("15"),
            service_fee_flat=Decimal("0"),
            service_fee_pct=Decimal("10"),
            duration_minutes=180,
        )
    )
    db.add(
        Service(
            id="svc-retired",
            category_id="cat-home",
            name="Retired Clean",
            slug="retired-clean",
            base_fee=Decimal("50"),
            active=False,
        )
    )
    db.add(Extra(id="extra-oven", name="Inside oven", slug="inside-oven", price=Decimal("30")))
    db.add(
        Extra(
            id="extra-old",
            name="Old extra",
            slug="old-extra",
            price=Decimal("10"),
            active=False,
        )
    )
    db.add(Region(id="reg-cpt", name="Cape Town", state="Western Cape"))
    db.add(Region(id="reg-jhb", name="Johannesburg", state="Gauteng"))
    db.add(
        Suburb(
            id="sub-gardens",
            region_id="reg-cpt",
            name="Gardens",
            postcode="8001",
            delivery_fee=Decimal("25"),
        )
    )
    db.add(Suburb(id="sub-sandton", region_id="reg-jhb", name="Sandton", postcode="2196"))

    for cleaner_id, name, rating in (
        ("cln-a", "Thandi M", 4.9),
        ("cln-b", "Sipho K", 4.9),
        ("cln-c", "Lerato N", 4.2),
    ):
        db.add(Cleaner(id=cleaner_id, full_name=name, rating=rating))
        db.add(CleanerArea(cleaner_id=cleaner_id, suburb_id="sub-gardens"))
        db.add(CleanerService(cleaner_id=cleaner_id, service_id="svc-standard"))
        db.add(
            CleanerAvailability(
                id=f"avail-{cleaner_id}",
                cleaner_id=cleaner_id,
                day_of_week=BOOKING_DAY.weekday(),
                start_time="08:00",
                end_time="17:00",
            )
        )
    db.add(Cleaner(id="cln-inactive", full_name="Gone Away", rating=5.0, active=False))
    db.commit()
