from __future__ import annotations

from datetime import date

from services.api.app.db.models import Cleaner
from services.api.app.services.availability_base import (
    AvailabilitySource,
    AvailableCleaner,
    CleanerQuery,
    TimeSlot,
    rank_cleaners,
)
from services.api.app.services.scheduling import STANDARD_SLOTS
from sqlalchemy.orm import Session


class MockAvailabilitySource(AvailabilitySource):
    """Every standard slot is open and every active cleaner is free.

    Used until cleaner rosters are maintained; area, service and time window
    are ignored.
    """

    name = "mock"

    def available_slots(self, db: Session, *, suburb_id: str, day: date) -> list[TimeSlot]:
        del db, suburb_id, day
        return [TimeSlot(time=slot, available=True) for slot in STANDARD_SLOTS]

    def available_cleaners(self, db: Session, query: CleanerQuery) -> list[AvailableCleaner]:
        rows = db.query(Cleaner).filter(Cleaner.active.is_(True)).all()
        cleaners = [AvailableCleaner(id=c.id, full_name=c.full_name, rating=c.rating) for c in rows]
        return rank_cleaners(cleaners)[: query.limit]
