from __future__ import annotations

from datetime import date

import pytest
from packages.shared.schemas.booking import BookingStatusV1
from services.api.app.db.models import Booking, EventLog
from services.api.app.errors import NotFound, StateError, UpstreamError, ValidationError
from services.api.app.services.assignment import (
    _write_v2,
    assign_cleaner,
    is_unknown_column_error,
    write_assignment,
)
from services.api.app.services.availability_db import DatabaseAvailabilitySource
from services.api.app.services.availability_mock import MockAvailabilitySource
from services.api.app.services.drafts import transition_status, upsert_draft
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError

# A Wednesday, matching the seeded cleaner windows.
BOOKING_DAY = date(2030, 1, 2)


def _draft(db, catalog, token: str, *, day: date | None = BOOKING_DAY, start: str = "09:00"):
    patch = {
        "service_id": catalog["service_id"],
        "suburb_id": catalog["suburb_id"],
        "start_time": start,
    }
    if day is not None:
        patch["booking_date"] = day
    return upsert_draft(db, token, patch)


def test_auto_assign_picks_highest_rating_with_stable_tiebreak(db, catalog) -> None:
    booking = _draft(db, catalog, "sess-auto")

    result = assign_cleaner(
        db, booking.id, auto_assign=True, availability=MockAvailabilitySource()
    )

    assert result.applied is True
    # cln-a and cln-b share the top rating; the id breaks the tie.
    assert result.cleaner_id == "cln-a"
    assert result.schema_version == "v2"

    db.expire_all()
    stored = db.get(Booking, booking.id)
    assert stored.cleaner_id == "cln-a"
    assert stored.auto_assign is True


def test_auto_assign_with_no_cleaners_leaves_booking_unassigned(db, catalog) -> None:
    # Nobody works on Sundays in the seeded roster.
    booking = _draft(db, catalog, "sess-sunday", day=date(2030, 1, 6))

    result = assign_cleaner(
        db, booking.id, auto_assign=True, availability=DatabaseAvailabilitySource()
    )

    assert result.applied is False
    assert result.cleaner_id is None

    db.expire_all()
    stored = db.get(Booking, booking.id)
    assert stored.cleaner_id is None
    assert stored.status == BookingStatusV1.DRAFT.value

    events = {e.event_type for e in db.query(EventLog).filter(EventLog.booking_id == booking.id)}
    assert "CLEANER_UNAVAILABLE" in events
    assert "CLEANER_ASSIGNED" not in events


def test_database_source_skips_cleaners_with_overlapping_bookings(db, catalog) -> None:
    taken = _draft(db, catalog, "sess-taken", start="09:00")
    assign_cleaner(db, taken.id, cleaner_id="cln-a", availability=MockAvailabilitySource())
    transition_status(db, taken.id, BookingStatusV1.PENDING_PAYMENT)

    booking = _draft(db, catalog, "sess-later", start="10:00")
    result = assign_cleaner(
        db, booking.id, auto_assign=True, availability=DatabaseAvailabilitySource()
    )

    assert result.applied is True
    assert result.cleaner_id == "cln-b"


def test_database_source_respects_working_hours(db, catalog) -> None:
    # 16:00 + three hours ends after every seeded window closes at 17:00.
    booking = _draft(db, catalog, "sess-late", start="16:00")

    result = assign_cleaner(
        db, booking.id, auto_assign=True, availability=DatabaseAvailabilitySource()
    )

    assert result.applied is False


def test_explicit_cleaner_is_written(db, catalog) -> None:
    booking = _draft(db, catalog, "sess-explicit")

    result = assign_cleaner(db, booking.id, cleaner_id="cln-c", availability=MockAvailabilitySource())

    assert result.applied is True
    db.expire_all()
    stored = db.get(Booking, booking.id)
    assert stored.cleaner_id == "cln-c"
    assert stored.auto_assign is False


def test_explicit_cleaner_must_exist_and_be_active(db, catalog) -> None:
    booking = _draft(db, catalog, "sess-missing-cleaner")

    with pytest.raises(NotFound):
        assign_cleaner(db, booking.id, cleaner_id="nobody", availability=MockAvailabilitySource())

    with pytest.raises(NotFound):
        assign_cleaner(
            db, booking.id, cleaner_id="cln-inactive", availability=MockAvailabilitySource()
        )


def test_assignment_needs_a_cleaner_or_auto_assign(db, catalog) -> None:
    booking = _draft(db, catalog, "sess-neither")
    with pytest.raises(ValidationError):
        assign_cleaner(db, booking.id, availability=MockAvailabilitySource())


def test_auto_assign_needs_a_date(db, catalog) -> None:
    booking = _draft(db, catalog, "sess-nodate", day=None)
    with pytest.raises(ValidationError):
        assign_cleaner(db, booking.id, auto_assign=True, availability=MockAvailabilitySource())


def test_terminal_bookings_reject_assignment(db, catalog) -> None:
    booking = _draft(db, catalog, "sess-cancelled")
    transition_status(db, booking.id, BookingStatusV1.CANCELLED)

    with pytest.raises(StateError):
        assign_cleaner(db, booking.id, cleaner_id="cln-a", availability=MockAvailabilitySource())


def test_auto_schema_falls_through_unknown_column_to_next_writer(db, catalog) -> None:
    booking = _draft(db, catalog, "sess-legacy")
    db.commit()

    # v1 columns do not exist in this schema, so the fallback must move on to v2.
    version = write_assignment(
        db, booking.id, "cln-b", False, schema_version="auto", fallback_order=("v1", "v2")
    )
    db.commit()

    assert version == "v2"
    db.expire_all()
    assert db.get(Booking, booking.id).cleaner_id == "cln-b"


def test_pinned_schema_uses_only_its_writer(db, catalog) -> None:
    booking = _draft(db, catalog, "sess-pinned")
    db.commit()

    with pytest.raises(UpstreamError):
        write_assignment(db, booking.id, "cln-b", False, schema_version="v1")


def test_other_database_errors_stop_the_fallback(db, catalog) -> None:
    booking = _draft(db, catalog, "sess-broken")
    db.commit()

    def broken_writer(session, booking_id, cleaner_id, auto_assign):
        session.execute(text("UPDATE no_such_table SET x = 1"))

    with pytest.raises(UpstreamError):
        write_assignment(
            db,
            booking.id,
            "cln-b",
            False,
            schema_version="auto",
            writers={"broken": broken_writer, "v2": _write_v2},
            fallback_order=("broken", "v2"),
        )

    db.expire_all()
    assert db.get(Booking, booking.id).cleaner_id is None


class _PgError(Exception):
    pgcode = "42703"


class _OtherPgError(Exception):
    pgcode = "23505"


def test_unknown_column_detection() -> None:
    assert is_unknown_column_error(DBAPIError("UPDATE", {}, _PgError("boom")))
    assert is_unknown_column_error(
        DBAPIError("UPDATE", {}, Exception('column "selected_cleaner_id" does not exist'))
    )
    assert is_unknown_column_error(DBAPIError("UPDATE", {}, Exception("no such column: x")))
    assert not is_unknown_column_error(DBAPIError("UPDATE", {}, _OtherPgError("duplicate key")))
    assert not is_unknown_column_error(DBAPIError("UPDATE", {}, Exception("no such table: t")))


def _downgrade_to_v1(db) -> None:
    db.commit()
    db.execute(text("ALTER TABLE bookings RENAME COLUMN cleaner_id TO selected_cleaner_id"))
    db.execute(text("ALTER TABLE bookings RENAME COLUMN auto_assign TO auto_assign_cleaner"))
    db.commit()
    # Nothing mapped to the old column names may linger in the identity map.
    db.expunge_all()


def test_auto_schema_assigns_on_a_v1_table(db, catalog) -> None:
    booking_id = _draft(db, catalog, "sess-v1").id
    _downgrade_to_v1(db)

    result = assign_cleaner(
        db,
        booking_id,
        cleaner_id="cln-a",
        availability=MockAvailabilitySource(),
        schema_version="auto",
    )

    assert result.applied is True
    assert result.schema_version == "v1"
    row = db.execute(
        text("SELECT selected_cleaner_id, auto_assign_cleaner FROM bookings WHERE id = :id"),
        {"id": booking_id},
    ).one()
    assert row[0] == "cln-a"
    assert not row[1]

    events = [
        e.event_payload_json
        for e in db.query(EventLog).filter(EventLog.event_type == "CLEANER_ASSIGNED")
    ]
    assert events == [{"cleaner_id": "cln-a", "auto_assign": False, "schema_version": "v1"}]


class _NobodyFree:
    name = "nobody"

    def available_slots(self, db, *, suburb_id, day):
        return []

    def available_cleaners(self, db, query):
        return []


def test_unavailable_auto_assign_reads_v1_cleaner(db, catalog) -> None:
    booking_id = _draft(db, catalog, "sess-v1-busy").id
    _downgrade_to_v1(db)
    db.execute(
        text("UPDATE bookings SET selected_cleaner_id = 'cln-c' WHERE id = :id"),
        {"id": booking_id},
    )
    db.commit()

    result = assign_cleaner(
        db,
        booking_id,
        auto_assign=True,
        availability=_NobodyFree(),
        schema_version="auto",
    )

    assert result.applied is False
    assert result.cleaner_id == "cln-c"
