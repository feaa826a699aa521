from __future__ import annotations

import re

DEFAULT_DURATION_MINUTES = 120

# Bookable start times offered to customers.
STANDARD_SLOTS = ("08:00", "10:00", "12:00", "14:00", "16:00", "18:00")

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def is_hhmm(value: str) -> bool:
    return bool(_HHMM.match(value or ""))


def to_minutes(hhmm: str) -> int:
    match = _HHMM.match(hhmm or "")
    if match is None:
        raise ValueError(f"Expected HH:MM, got {hhmm!r}")
    return int(match.group(1)) * 60 + int(match.group(2))


def add_minutes(hhmm: str, minutes: int) -> str:
    """Add minutes to an HH:MM time, capped at 23:59 (bookings never span midnight)."""
    total = min(to_minutes(hhmm) + minutes, 23 * 60 + 59)
    return f"{total // 60:02d}:{total % 60:02d}"


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    return to_minutes(start_a) < to_minutes(end_b) and to_minutes(start_b) < to_minutes(end_a)
