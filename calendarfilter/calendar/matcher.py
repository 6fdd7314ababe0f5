"""Exact time-of-day matching of events against daily filter ranges."""

from __future__ import annotations

import datetime

from calendarfilter.calendar.models import FilterSpec, TimeOfDay


def to_local_time_of_day(instant: datetime.datetime, zone: datetime.tzinfo) -> TimeOfDay:
    """Convert an instant into wall-clock TimeOfDay in ``zone``.

    Naive datetimes (floating times) are taken as already being wall-clock
    time in ``zone``.
    """
    if instant.tzinfo is None:
        return TimeOfDay.from_datetime(instant)
    return TimeOfDay.from_datetime(instant.astimezone(zone))


def matches(
    event_start: datetime.datetime,
    event_end: datetime.datetime,
    spec: FilterSpec,
) -> bool:
    """Return True if the event's local start AND end equal any filter range.

    This is exact equality of hour/minute, not interval overlap, and the date
    is ignored: a 09:00-10:00 event on any day matches a 09:00-10:00 range.
    Multi-day events are compared the same way.
    """
    if spec.is_empty:
        return False

    local_start = to_local_time_of_day(event_start, spec.zone)
    local_end = to_local_time_of_day(event_end, spec.zone)

    return any(
        filter_range.start == local_start and filter_range.end == local_end
        for filter_range in spec.ranges
    )
