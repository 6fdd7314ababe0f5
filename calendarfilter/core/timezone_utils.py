"""Timezone detection and resolution utilities for calendarfilter."""

from __future__ import annotations

import datetime
import logging
import time
import zoneinfo
from typing import ClassVar, Protocol

from calendarfilter.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Default fallback timezone when server timezone detection fails
DEFAULT_SERVER_TIMEZONE = "UTC"


class ZoneResolver(Protocol):
    """Resolves a zone identifier into a tzinfo.

    Implementations raise ValidationError for identifiers they cannot resolve.
    """

    def resolve(self, name: str) -> datetime.tzinfo: ...


class ZoneInfoResolver:
    """Resolve IANA identifiers (and a few legacy aliases) through zoneinfo."""

    # Obsolete or shorthand names still emitted by older calendar clients
    TZ_ALIAS_MAP: ClassVar[dict[str, str]] = {
        "US/Pacific": "America/Los_Angeles",
        "US/Mountain": "America/Denver",
        "US/Central": "America/Chicago",
        "US/Eastern": "America/New_York",
        "US/Alaska": "America/Anchorage",
        "US/Hawaii": "Pacific/Honolulu",
        "US/Arizona": "America/Phoenix",
        "GMT": "UTC",
        "Etc/UTC": "UTC",
        "Etc/GMT": "UTC",
        "Universal": "UTC",
        "Zulu": "UTC",
    }

    def resolve(self, name: str) -> datetime.tzinfo:
        """Resolve ``name`` to a ZoneInfo.

        Raises:
            ValidationError: If the name is empty or not a known zone
        """
        if not name or not name.strip():
            raise ValidationError("invalid timezone: empty zone name")

        canonical = self.TZ_ALIAS_MAP.get(name.strip(), name.strip())
        try:
            return zoneinfo.ZoneInfo(canonical)
        # OSError covers names that hit a tzdata directory, e.g. "America"
        except (zoneinfo.ZoneInfoNotFoundError, ValueError, OSError) as e:
            raise ValidationError(f"invalid timezone: {name} (error: {e})") from e


class FixedZoneResolver:
    """Resolver backed by an explicit name -> tzinfo mapping.

    Lets callers (tests in particular) use fixed UTC offsets without relying
    on system zone data.
    """

    def __init__(self, zones: dict[str, datetime.tzinfo]):
        self._zones = dict(zones)

    def resolve(self, name: str) -> datetime.tzinfo:
        try:
            return self._zones[name]
        except KeyError:
            raise ValidationError(f"invalid timezone: {name}") from None


class TimezoneDetector:
    """Detects server timezone using multiple fallback strategies."""

    # Timezone abbreviation to IANA identifier mapping
    TZ_ABBREV_MAP: ClassVar[dict[str, str]] = {
        "UTC": "UTC",
        "GMT": "UTC",
        "PST": "America/Los_Angeles",
        "PDT": "America/Los_Angeles",
        "MST": "America/Denver",
        "MDT": "America/Denver",
        "CST": "America/Chicago",
        "CDT": "America/Chicago",
        "EST": "America/New_York",
        "EDT": "America/New_York",
        "CET": "Europe/Berlin",
        "CEST": "Europe/Berlin",
    }

    def get_server_timezone(self) -> str:
        """Get the server's local timezone as an IANA timezone identifier.

        Returns:
            IANA timezone string. Falls back to DEFAULT_SERVER_TIMEZONE if
            detection fails.
        """
        try:
            # Strategy 1: explicit zone on the local tzinfo (e.g. TZ=Europe/Paris)
            local_tz = datetime.datetime.now().astimezone().tzinfo
            key = getattr(local_tz, "key", None)
            if key:
                zoneinfo.ZoneInfo(key)
                return key

            # Strategy 2: system timezone abbreviation mapping
            local_tz_name = time.tzname[time.daylight] if time.daylight else time.tzname[0]
            if local_tz_name in self.TZ_ABBREV_MAP:
                iana_tz = self.TZ_ABBREV_MAP[local_tz_name]
                zoneinfo.ZoneInfo(iana_tz)
                return iana_tz

            logger.warning(
                "Could not map server timezone %r, falling back to %s",
                local_tz_name,
                DEFAULT_SERVER_TIMEZONE,
            )
            return DEFAULT_SERVER_TIMEZONE

        except Exception as e:
            logger.warning(
                "Failed to detect server timezone: %s, falling back to %s",
                e,
                DEFAULT_SERVER_TIMEZONE,
            )
            return DEFAULT_SERVER_TIMEZONE


_detector = TimezoneDetector()


def get_server_timezone() -> str:
    """Get the server's local timezone (convenience function).

    Returns:
        IANA timezone string
    """
    return _detector.get_server_timezone()


def validate_timezone_name(name: str, resolver: ZoneResolver | None = None) -> bool:
    """Return True if ``name`` resolves with ``resolver`` (default zoneinfo)."""
    try:
        (resolver or ZoneInfoResolver()).resolve(name)
    except ValidationError:
        return False
    return True
