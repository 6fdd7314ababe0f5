"""Shared fixtures for calendarfilter tests."""

from collections.abc import AsyncIterator, Callable
from datetime import timedelta, timezone
from typing import Any

import pytest

from calendarfilter.core.http_client import close_all_clients
from calendarfilter.core.timezone_utils import FixedZoneResolver, ZoneInfoResolver

SOURCE_URL = "https://calendar.example.com/feeds/work.ics"


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close pooled httpx clients after every test to prevent resource leaks."""
    yield
    await close_all_clients()


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> None:
    """Keep developer shell settings out of the tests."""
    for name in (
        "CALENDAR_URL",
        "PORT",
        "CALENDARFILTER_BIND",
        "CALENDARFILTER_DEFAULT_TIMEZONE",
        "CALENDARFILTER_REQUEST_TIMEOUT",
        "CALENDARFILTER_DEBUG",
        "CALENDARFILTER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def source_url() -> str:
    return SOURCE_URL


@pytest.fixture
def zone_resolver() -> ZoneInfoResolver:
    return ZoneInfoResolver()


@pytest.fixture
def fixed_resolver() -> FixedZoneResolver:
    """Resolver with fixed offsets only, independent of system zone data."""
    return FixedZoneResolver(
        {
            "UTC": timezone.utc,
            "UTC+2": timezone(timedelta(hours=2), "UTC+2"),
            "UTC-5": timezone(timedelta(hours=-5), "UTC-5"),
        }
    )


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_work() -> bytes:
    """
    Return a work calendar with a VTIMEZONE and four events.

    Events (UTC wall-clock unless noted):
        - standup: 2024-01-15 09:00-10:00
        - review: 2024-01-15 09:00-10:30
        - lunch: 2024-01-15 12:00-13:00 America/New_York (17:00-18:00 UTC)
        - planning: 2024-01-16 14:00-15:00
    """
    return b"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Calendar Filter Test//EN
CALSCALE:GREGORIAN
X-WR-CALNAME:Work
BEGIN:VTIMEZONE
TZID:America/New_York
BEGIN:STANDARD
DTSTART:19701101T020000
RRULE:FREQ=YEARLY;BYMONTH=11;BYDAY=1SU
TZOFFSETFROM:-0400
TZOFFSETTO:-0500
TZNAME:EST
END:STANDARD
BEGIN:DAYLIGHT
DTSTART:19700308T020000
RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=2SU
TZOFFSETFROM:-0500
TZOFFSETTO:-0400
TZNAME:EDT
END:DAYLIGHT
END:VTIMEZONE
BEGIN:VEVENT
UID:standup@test
DTSTAMP:20240101T000000Z
DTSTART:20240115T090000Z
DTEND:20240115T100000Z
SUMMARY:Standup
END:VEVENT
BEGIN:VEVENT
UID:review@test
DTSTAMP:20240101T000000Z
DTSTART:20240115T090000Z
DTEND:20240115T103000Z
SUMMARY:Design review
END:VEVENT
BEGIN:VEVENT
UID:lunch@test
DTSTAMP:20240101T000000Z
DTSTART;TZID=America/New_York:20240115T120000
DTEND;TZID=America/New_York:20240115T130000
SUMMARY:Lunch
END:VEVENT
BEGIN:VEVENT
UID:planning@test
DTSTAMP:20240101T000000Z
DTSTART:20240116T140000Z
DTEND:20240116T150000Z
SUMMARY:Planning
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def sample_ics_edge_cases() -> bytes:
    """
    Return a calendar exercising end-time fallbacks and unresolvable events.

    Events:
        - allday: DATE 2024-01-15 with no DTEND (one day)
        - floating: 2024-01-15 09:00 floating, DURATION 1h
        - instant: 2024-01-15 09:00Z with no DTEND or DURATION
        - nostart: no DTSTART at all
    """
    return b"""BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Calendar Filter Test//EN
BEGIN:VEVENT
UID:allday@test
DTSTAMP:20240101T000000Z
DTSTART;VALUE=DATE:20240115
SUMMARY:Holiday
END:VEVENT
BEGIN:VEVENT
UID:floating@test
DTSTAMP:20240101T000000Z
DTSTART:20240115T090000
DURATION:PT1H
SUMMARY:Floating
END:VEVENT
BEGIN:VEVENT
UID:instant@test
DTSTAMP:20240101T000000Z
DTSTART:20240115T090000Z
SUMMARY:Reminder
END:VEVENT
BEGIN:VEVENT
UID:nostart@test
DTSTAMP:20240101T000000Z
SUMMARY:Broken
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def count_vevents() -> Callable[[bytes], int]:
    """Count VEVENT blocks in serialized ICS bytes."""

    def _count(content: bytes) -> int:
        return content.count(b"BEGIN:VEVENT")

    return _count
