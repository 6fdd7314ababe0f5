"""Calendar feed abstraction and its icalendar-backed implementation."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Protocol, Union

from icalendar import Calendar, Component

from calendarfilter.exceptions import EventResolutionError, ParseError

logger = logging.getLogger(__name__)


class FeedEvent(Protocol):
    """An event inside a Feed; everything except its instants is opaque."""

    @property
    def uid(self) -> str: ...

    def resolve_instants(
        self, zone: datetime.tzinfo
    ) -> tuple[datetime.datetime, datetime.datetime]: ...


class Feed(Protocol):
    """Parsed calendar document: shared metadata plus an ordered event list."""

    def properties(self) -> Mapping[str, Any]: ...

    def events(self) -> Sequence[FeedEvent]: ...

    def with_events(self, events: Iterable[FeedEvent]) -> Feed: ...

    def serialize(self) -> bytes: ...


def _as_instant(value: Any, zone: datetime.tzinfo, prop: str) -> datetime.datetime:
    """Turn a decoded DATE/DATE-TIME value into an aware datetime.

    DATE values and floating DATE-TIMEs are wall-clock values in ``zone``.
    """
    if isinstance(value, datetime.datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=zone)
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time.min, tzinfo=zone)
    raise EventResolutionError(f"{prop} has unsupported value {value!r}")


class ICalendarEvent:
    """VEVENT component wrapper exposing start/end resolution."""

    def __init__(self, component: Component):
        self.component = component

    @property
    def uid(self) -> str:
        return str(self.component.get("UID", ""))

    def resolve_instants(
        self, zone: datetime.tzinfo
    ) -> tuple[datetime.datetime, datetime.datetime]:
        """Resolve the event's absolute start and end.

        End falls back to DTSTART + DURATION, then to RFC 5545 defaults
        (one day for DATE starts, zero length for DATE-TIME starts).

        Raises:
            EventResolutionError: If DTSTART is missing or any value cannot be
                decoded
        """
        if "DTSTART" not in self.component:
            raise EventResolutionError("event has no DTSTART")

        try:
            start_raw = self.component.decoded("DTSTART")
            if "DTEND" in self.component:
                end_raw = self.component.decoded("DTEND")
            elif "DURATION" in self.component:
                end_raw = start_raw + self.component.decoded("DURATION")
            elif isinstance(start_raw, datetime.datetime):
                end_raw = start_raw
            else:
                end_raw = start_raw + datetime.timedelta(days=1)
        except EventResolutionError:
            raise
        except Exception as e:
            raise EventResolutionError(f"failed to decode event times: {e}") from e

        return (
            _as_instant(start_raw, zone, "DTSTART"),
            _as_instant(end_raw, zone, "DTEND"),
        )


class ICalendarFeed:
    """Feed implementation on top of ``icalendar.Calendar``."""

    def __init__(self, calendar: Calendar):
        self._calendar = calendar

    @classmethod
    def parse(cls, raw: Union[bytes, str]) -> ICalendarFeed:
        """Parse raw ICS content.

        Raises:
            ParseError: If the content is empty, malformed or not a VCALENDAR
        """
        if not raw or not raw.strip():
            raise ParseError("failed to parse calendar: empty content")

        try:
            calendar = Calendar.from_ical(raw)
        except Exception as e:
            raise ParseError(f"failed to parse calendar: {e}") from e

        if getattr(calendar, "name", None) != "VCALENDAR":
            raise ParseError(
                f"failed to parse calendar: expected VCALENDAR, got {getattr(calendar, 'name', None)}"
            )

        return cls(calendar)

    def properties(self) -> Mapping[str, Any]:
        """Calendar-level properties (VERSION, PRODID, X-WR-*, ...)."""
        return dict(self._calendar.items())

    def events(self) -> list[ICalendarEvent]:
        return [
            ICalendarEvent(component)
            for component in self._calendar.subcomponents
            if component.name == "VEVENT"
        ]

    def with_events(self, events: Iterable[FeedEvent]) -> ICalendarFeed:
        """Build a new feed with the same metadata and only ``events``.

        Calendar properties and non-VEVENT components (VTIMEZONE, VTODO, ...)
        are copied unchanged; VEVENTs keep their original relative order. The
        source calendar is not modified.
        """
        kept_ids = {id(event.component) for event in events if isinstance(event, ICalendarEvent)}

        filtered = Calendar()
        for key, value in self._calendar.items():
            filtered[key] = value

        for component in self._calendar.subcomponents:
            if component.name != "VEVENT" or id(component) in kept_ids:
                filtered.add_component(component)

        return ICalendarFeed(filtered)

    def serialize(self) -> bytes:
        """Serialize keeping properties in document order (icalendar sorts by default)."""
        return self._calendar.to_ical(sorted=False)
