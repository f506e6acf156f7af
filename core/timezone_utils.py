"""Timezone utility functions.

All functions are pure and avoid global state.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.errors import ClientInputError, InvalidTimezone

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def parse_date_yyyy_mm_dd(value: object) -> tuple[int, int, int]:
    """Parse a strict ``YYYY-MM-DD`` string into (year, month, day).

    The date must exist on the calendar, so ``1981-02-30`` is rejected.
    """
    if not isinstance(value, str) or not DATE_RE.match(value):
        raise ClientInputError("date", "Invalid date. Use 'YYYY-MM-DD' (e.g. 1981-10-17).")
    year, month, day = (int(part) for part in value.split("-"))
    try:
        date(year, month, day)
    except ValueError as exc:
        raise ClientInputError("date", f"Invalid date: {value} does not exist.") from exc
    return year, month, day


def parse_time_hh_mm(value: object) -> tuple[int, int]:
    """Parse a strict 24-hour ``HH:MM`` string into (hour, minute)."""
    if not isinstance(value, str) or not TIME_RE.match(value):
        raise ClientInputError("time", "Invalid time. Use 'HH:MM' (e.g. 08:55).")
    hour, minute = (int(part) for part in value.split(":"))
    if hour > 23 or minute > 59:
        raise ClientInputError("time", f"Invalid time: {value} is not a 24-hour clock time.")
    return hour, minute


def load_zone(timezone_name: object) -> ZoneInfo:
    if not isinstance(timezone_name, str) or not timezone_name.strip():
        raise InvalidTimezone(timezone_name)
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidTimezone(timezone_name) from exc


def resolve_offset_hours(date_str: str, time_str: str, timezone_name: str) -> float:
    """Return the local-minus-UTC offset in hours for a birth date and time.

    The date/time fields are first read literally as a UTC instant. That
    instant is rendered as wall-clock time in ``timezone_name`` and the
    rendered fields are read back as UTC; the gap between the two instants is
    the zone's offset at that calendar date, so daylight saving is taken from
    the zone rules of the requested date rather than of today.
    """
    year, month, day = parse_date_yyyy_mm_dd(date_str)
    hour, minute = parse_time_hh_mm(time_str)
    zone = load_zone(timezone_name)

    naive_instant = datetime(year, month, day, hour, minute, tzinfo=timezone.utc)
    wall_clock = naive_instant.astimezone(zone)
    wall_clock_as_utc = datetime(
        wall_clock.year,
        wall_clock.month,
        wall_clock.day,
        wall_clock.hour,
        wall_clock.minute,
        wall_clock.second,
        tzinfo=timezone.utc,
    )

    offset_minutes = (wall_clock_as_utc - naive_instant).total_seconds() / 60
    return round(offset_minutes / 60, 2)
