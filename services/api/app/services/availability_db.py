from __future__ import annotations

import logging
from datetime import date

from services.api.app.db.models import (
    Booking,
    Cleaner,
    CleanerArea,
    CleanerAvailability,
    CleanerService,
)
from services.api.app.services.availability_base import (
    AvailabilityError,
    AvailabilitySource,
    AvailableCleaner,
    CleanerQuery,
    TimeSlot,
    rank_cleaners,
)
from services.api.app.services.scheduling import (
    DEFAULT_DURATION_MINUTES,
    STANDARD_SLOTS,
    add_minutes,
    overlaps,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

# Bookings in these statuses hold the cleaner's time.
_BLOCKING_STATUSES = ("PENDING_PAYMENT", "CONFIRMED")


class DatabaseAvailabilitySource(AvailabilitySource):
    """Availability from cleaner rosters (areas, services, weekly windows) and existing bookings."""

    name = "database"

    def available_slots(self, db: Session, *, suburb_id: str, day: date) -> list[TimeSlot]:
        slots: list[TimeSlot] = []
        for start in STANDARD_SLOTS:
            query = CleanerQuery(
                day=day,
                suburb_id=suburb_id,
                start_time=start,
                end_time=add_minutes(start, DEFAULT_DURATION_MINUTES),
                limit=1,
            )
            slots.append(TimeSlot(time=start, available=bool(self.available_cleaners(db, query))))
        return slots

    def available_cleaners(self, db: Session, query: CleanerQuery) -> list[AvailableCleaner]:
        try:
            q = (
                db.query(Cleaner, CleanerAvailability)
                .join(CleanerAvailability, CleanerAvailability.cleaner_id == Cleaner.id)
                .filter(
                    Cleaner.active.is_(True),
                    CleanerAvailability.day_of_week == query.day.weekday(),
                )
            )

            if query.suburb_id:
                q = q.join(CleanerArea, CleanerArea.cleaner_id == Cleaner.id).filter(
                    CleanerArea.suburb_id == query.suburb_id
                )

            if query.service_id:
                q = q.join(CleanerService, CleanerService.cleaner_id == Cleaner.id).filter(
                    CleanerService.service_id == query.service_id
                )

            # HH:MM strings compare correctly as text.
            if query.start_time:
                q = q.filter(CleanerAvailability.start_time <= query.start_time)
            if query.end_time:
                q = q.filter(CleanerAvailability.end_time >= query.end_time)

            rows = q.all()
            busy = self._busy_cleaner_ids(db, query)
        except SQLAlchemyError as e:
            logger.exception("Cleaner availability query failed")
            raise AvailabilityError("Cleaner availability query failed") from e

        found: dict[str, AvailableCleaner] = {}
        for cleaner, _window in rows:
            if cleaner.id in busy:
                continue
            found[cleaner.id] = AvailableCleaner(
                id=cleaner.id, full_name=cleaner.full_name, rating=cleaner.rating
            )

        return rank_cleaners(list(found.values()))[: query.limit]

    def _busy_cleaner_ids(self, db: Session, query: CleanerQuery) -> set[str]:
        if not query.start_time:
            return set()

        end_time = query.end_time or add_minutes(query.start_time, DEFAULT_DURATION_MINUTES)

        q = db.query(Booking).filter(
            Booking.cleaner_id.is_not(None),
            Booking.booking_date == query.day,
            Booking.status.in_(_BLOCKING_STATUSES),
        )
        if query.exclude_booking_id:
            q = q.filter(Booking.id != query.exclude_booking_id)

        busy: set[str] = set()
        for booking in q.all():
            if not booking.start_time:
                continue
            booking_end = booking.end_time or add_minutes(
                booking.start_time, DEFAULT_DURATION_MINUTES
            )
            if overlaps(booking.start_time, booking_end, query.start_time, end_time):
                busy.add(booking.cleaner_id)
        return busy
