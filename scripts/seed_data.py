from __future__ import annotations

import argparse
from datetime import date, timedelta
from decimal import Decimal

from services.api.app.db.database import db_session
from services.api.app.db.init_db import init_db
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

CATEGORIES = (
    ("cat-residential", "Residential", "residential", 1),
    ("cat-specialised", "Specialised", "specialised", 2),
)

# id, category, name, slug, base, per bedroom, per bathroom, fee %, minutes
SERVICES = (
    ("svc-standard", "cat-residential", "Standard Clean", "standard-clean", "250", "30", "40", "10", 180),
    ("svc-deep", "cat-residential", "Deep Clean", "deep-clean", "450", "50", "60", "10", 300),
    ("svc-move", "cat-specialised", "Move In / Move Out", "move-in-out", "600", "60", "70", "10", 360),
    ("svc-airbnb", "cat-specialised", "Airbnb Turnover", "airbnb", "300", "35", "45", "10", 180),
)

EXTRAS = (
    ("extra-oven", "Inside oven", "inside-oven", "80"),
    ("extra-fridge", "Inside fridge", "inside-fridge", "60"),
    ("extra-windows", "Interior windows", "interior-windows", "100"),
    ("extra-laundry", "Laundry and ironing", "laundry-ironing", "120"),
)

REGIONS = (
    ("reg-cpt", "Cape Town", "Western Cape"),
    ("reg-jhb", "Johannesburg", "Gauteng"),
)

SUBURBS = (
    ("sub-gardens", "reg-cpt", "Gardens", "8001", "0"),
    ("sub-seapoint", "reg-cpt", "Sea Point", "8005", "0"),
    ("sub-claremont", "reg-cpt", "Claremont", "7708", "25"),
    ("sub-sandton", "reg-jhb", "Sandton", "2196", "0"),
    ("sub-rosebank", "reg-jhb", "Rosebank", "2196", "25"),
)

CLEANERS = (
    ("cln-thandi", "Thandi Mokoena", 4.9, "reg-cpt"),
    ("cln-sipho", "Sipho Khumalo", 4.8, "reg-cpt"),
    ("cln-lerato", "Lerato Nkosi", 4.6, "reg-jhb"),
)


def _seed_catalog(db) -> int:
    added = 0
    for cid, name, slug, order in CATEGORIES:
        if db.get(ServiceCategory, cid) is None:
            db.add(ServiceCategory(id=cid, name=name, slug=slug, sort_order=order))
            added += 1

    for sid, cid, name, slug, base, bed, bath, pct, minutes in SERVICES:
        if db.get(Service, sid) is None:
            db.add(
                Service(
                    id=sid,
                    category_id=cid,
                    name=name,
                    slug=slug,
                    base_fee=Decimal(base),
                    per_bedroom=Decimal(bed),
                    per_bathroom=Decimal(bath),
                    service_fee_pct=Decimal(pct),
                    duration_minutes=minutes,
                )
            )
            added += 1

    for order, (eid, name, slug, price) in enumerate(EXTRAS):
        if db.get(Extra, eid) is None:
            db.add(Extra(id=eid, name=name, slug=slug, price=Decimal(price), sort_order=order))
            added += 1

    for rid, name, state in REGIONS:
        if db.get(Region, rid) is None:
            db.add(Region(id=rid, name=name, state=state))
            added += 1

    for sid, rid, name, postcode, fee in SUBURBS:
        if db.get(Suburb, sid) is None:
            db.add(
                Suburb(id=sid, region_id=rid, name=name, postcode=postcode, delivery_fee=Decimal(fee))
            )
            added += 1

    return added


def _seed_cleaners(db, *, start: str, end: str) -> int:
    added = 0
    for cid, name, rating, region_id in CLEANERS:
        if db.get(Cleaner, cid) is not None:
            continue

        db.add(Cleaner(id=cid, full_name=name, rating=rating))
        for suburb_id, rid, *_ in SUBURBS:
            if rid == region_id:
                db.add(CleanerArea(cleaner_id=cid, suburb_id=suburb_id))
        for service in SERVICES:
            db.add(CleanerService(cleaner_id=cid, service_id=service[0]))
        # Monday to Saturday
        for weekday in range(6):
            db.add(
                CleanerAvailability(
                    id=f"avail-{cid}-{weekday}",
                    cleaner_id=cid,
                    day_of_week=weekday,
                    start_time=start,
                    end_time=end,
                )
            )
        added += 1
    return added


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the Shalean catalog and a few cleaners")
    parser.add_argument("--no-cleaners", action="store_true", help="Only seed services and areas")
    parser.add_argument("--day-start", default="08:00")
    parser.add_argument("--day-end", default="17:00")
    args = parser.parse_args()

    init_db()

    db = db_session()
    try:
        added = _seed_catalog(db)
        db.flush()

        cleaners = 0
        if not args.no_cleaners:
            cleaners = _seed_cleaners(db, start=args.day_start, end=args.day_end)

        db.commit()
        tomorrow = date.today() + timedelta(days=1)
        print(f"Seeded catalog rows={added} cleaners={cleaners}")
        print(f"Try: POST /api/availability with suburb_id=sub-gardens date={tomorrow.isoformat()}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    raise SystemExit(main())
