"""Resolution of a request's FilterSpec from its query string or JSON body.

Two query shapes are supported, resolved in priority order:

1. ``ranges=09:00-10:00,14:00-15:00`` (comma-separated list)
2. ``start=09:00&end=10:00&start=14:00&end=15:00`` (positional pairs)

``tz`` selects the zone for query-driven filtering. A JSON body of the form
``{"time_ranges": [{"start": RFC3339, "end": RFC3339}, ...]}`` takes priority
over the query when it decodes and carries at least one range; only the
hour/minute of each timestamp are used and matching happens in the default
zone.
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Mapping, Sequence
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from calendarfilter.calendar.models import FilterRange, FilterRequestBody, FilterSpec, TimeOfDay
from calendarfilter.calendar.time_parser import parse_time_of_day
from calendarfilter.core.timezone_utils import ZoneInfoResolver, ZoneResolver
from calendarfilter.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Query parameters as produced by urllib.parse.parse_qs or a MultiDict.getall()
QueryParams = Mapping[str, Sequence[str]]

RANGES_PARAM = "ranges"
START_PARAM = "start"
END_PARAM = "end"
TZ_PARAM = "tz"


def _first(query: QueryParams, key: str) -> str:
    values = query.get(key) or ()
    return values[0] if values else ""


def parse_ranges_list(value: str, zone: Optional[datetime.tzinfo] = None) -> list[FilterRange]:
    """Parse a comma-separated ``HH:MM-HH:MM`` list.

    Empty tokens (trailing or doubled commas) are skipped.

    Raises:
        ValidationError: If a token does not split into exactly two times or
            either time is invalid
    """
    ranges: list[FilterRange] = []

    for raw_token in value.split(","):
        token = raw_token.strip()
        if not token:
            continue

        parts = token.split("-")
        if len(parts) != 2:
            raise ValidationError(f"invalid range format: {token} (expected HH:MM-HH:MM)")

        try:
            start = parse_time_of_day(parts[0].strip(), zone)
        except ValidationError as e:
            raise ValidationError(f"invalid start time in range {token}: {e}") from e

        try:
            end = parse_time_of_day(parts[1].strip(), zone)
        except ValidationError as e:
            raise ValidationError(f"invalid end time in range {token}: {e}") from e

        ranges.append(FilterRange(start=start, end=end))

    return ranges


def parse_paired_ranges(
    starts: Sequence[str],
    ends: Sequence[str],
    zone: Optional[datetime.tzinfo] = None,
) -> list[FilterRange]:
    """Build ranges by pairing ``starts[i]`` with ``ends[i]``.

    Raises:
        ValidationError: If the sequences differ in length or any time is invalid
    """
    if len(starts) != len(ends):
        raise ValidationError(
            f"mismatched start/end time pairs ({len(starts)} start, {len(ends)} end)"
        )

    ranges: list[FilterRange] = []
    for start_str, end_str in zip(starts, ends):
        try:
            start = parse_time_of_day(start_str, zone)
        except ValidationError as e:
            raise ValidationError(f"invalid start time {start_str}: {e}") from e
        try:
            end = parse_time_of_day(end_str, zone)
        except ValidationError as e:
            raise ValidationError(f"invalid end time {end_str}: {e}") from e
        ranges.append(FilterRange(start=start, end=end))

    return ranges


def resolve_filter_spec_from_query(
    query: QueryParams,
    default_zone_name: str,
    resolver: Optional[ZoneResolver] = None,
) -> FilterSpec:
    """Resolve ranges and zone from query parameters.

    The zone is resolved first so an unknown ``tz`` is rejected even when no
    ranges are supplied.

    Raises:
        ValidationError: On unknown zone, malformed tokens or mismatched pairs
    """
    resolver = resolver or ZoneInfoResolver()

    zone_name = _first(query, TZ_PARAM) or default_zone_name
    zone = resolver.resolve(zone_name)

    ranges_value = _first(query, RANGES_PARAM)
    if ranges_value:
        ranges = parse_ranges_list(ranges_value, zone)
    else:
        ranges = parse_paired_ranges(
            list(query.get(START_PARAM) or ()),
            list(query.get(END_PARAM) or ()),
            zone,
        )

    return FilterSpec(ranges=tuple(ranges), zone=zone, zone_name=zone_name)


def resolve_filter_spec_from_body(
    body: Union[bytes, str, None],
    default_zone_name: str,
    resolver: Optional[ZoneResolver] = None,
) -> Optional[FilterSpec]:
    """Resolve ranges from a JSON request body.

    Returns:
        FilterSpec in the default zone, or None when the body is absent,
        cannot be decoded, or carries no ranges (caller falls back to query)
    """
    if not body or not body.strip():
        return None

    try:
        request_body = FilterRequestBody.model_validate_json(body)
    except PydanticValidationError as e:
        logger.debug("Request body is not a filter request, using query: %s", e)
        return None

    if not request_body.time_ranges:
        return None

    ranges = tuple(
        FilterRange(
            start=TimeOfDay.from_datetime(time_range.start),
            end=TimeOfDay.from_datetime(time_range.end),
        )
        for time_range in request_body.time_ranges
    )

    zone = (resolver or ZoneInfoResolver()).resolve(default_zone_name)
    return FilterSpec(ranges=ranges, zone=zone, zone_name=default_zone_name)


def resolve_filter_spec(
    body: Union[bytes, str, None],
    query: QueryParams,
    default_zone_name: str,
    resolver: Optional[ZoneResolver] = None,
) -> FilterSpec:
    """Resolve the FilterSpec for a request, preferring a decodable JSON body.

    An empty result is pass-through, never "filter everything".

    Raises:
        ValidationError: If the query form is used and is malformed
    """
    spec = resolve_filter_spec_from_body(body, default_zone_name, resolver)
    if spec is not None:
        logger.debug("Resolved filter from request body: %s", spec.describe())
        return spec

    spec = resolve_filter_spec_from_query(query, default_zone_name, resolver)
    logger.debug("Resolved filter from query: %s", spec.describe())
    return spec
