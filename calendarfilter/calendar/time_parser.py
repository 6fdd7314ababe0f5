"""Parsing of compact ``HH:MM`` time-of-day strings."""

from __future__ import annotations

import datetime
from typing import Optional

from calendarfilter.calendar.models import TimeOfDay
from calendarfilter.exceptions import ValidationError


def _parse_unsigned(part: str) -> Optional[int]:
    # str.isdigit() alone also accepts non-ASCII digits such as superscripts
    if not part or not part.isascii() or not part.isdigit():
        return None
    return int(part)


def parse_time_of_day(value: str, zone: Optional[datetime.tzinfo] = None) -> TimeOfDay:
    """Parse ``H:M`` or ``HH:MM`` into a TimeOfDay.

    Args:
        value: Time string, e.g. "09:00" or "9:5"
        zone: Filter zone, carried for context only; a time of day has no date
            so the zone never changes the parsed value

    Returns:
        Parsed TimeOfDay

    Raises:
        ValidationError: If the separator count is not exactly one, either part
            is not an unsigned integer, hour is outside 0-23 or minute is
            outside 0-59
    """
    parts = value.split(":")
    if len(parts) != 2:
        raise ValidationError(f"invalid time format {value!r}, expected HH:MM")

    hour = _parse_unsigned(parts[0])
    if hour is None or hour > 23:
        raise ValidationError(f"invalid hour: {parts[0]!r}")

    minute = _parse_unsigned(parts[1])
    if minute is None or minute > 59:
        raise ValidationError(f"invalid minute: {parts[1]!r}")

    return TimeOfDay(hour=hour, minute=minute)
