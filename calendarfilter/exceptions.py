"""Exception hierarchy for the calendar filter service.

Each exception maps to one failure class of the fetch-parse-filter cycle so
the route layer can translate it into the right HTTP status without
inspecting messages.
"""

from typing import Optional


class CalendarFilterError(Exception):
    """Base exception for all calendar filter errors."""


class ValidationError(CalendarFilterError):
    """Filter input could not be understood.

    Raised when:
    - A time-of-day string is not ``H:M``/``HH:MM`` or is out of range
    - A ``ranges`` token does not split into exactly two times
    - ``start``/``end`` parameter counts differ
    - The requested timezone is not a known IANA zone

    Should result in HTTP 400 Bad Request response.
    """


class FetchError(CalendarFilterError):
    """The source feed could not be retrieved.

    Raised for transport failures, timeouts, invalid source URLs and any
    final upstream status other than 200.

    Should result in HTTP 500 Internal Server Error response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ParseError(CalendarFilterError):
    """Fetched bytes are not a well-formed iCalendar feed.

    Should result in HTTP 500 Internal Server Error response.
    """


class EventResolutionError(CalendarFilterError):
    """A single event's start or end instant could not be derived.

    Never surfaced to the caller: the transform logs it and drops the event.
    """


class ConfigurationError(CalendarFilterError):
    """Process configuration is missing or invalid (fatal at startup)."""
