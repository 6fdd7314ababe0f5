"""Feed transform: drop events matching a FilterSpec and re-serialize."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Union

from calendarfilter.calendar.feed import Feed, FeedEvent, ICalendarFeed
from calendarfilter.calendar.matcher import matches
from calendarfilter.calendar.models import FilterResult, FilterSpec
from calendarfilter.exceptions import EventResolutionError

logger = logging.getLogger(__name__)

FeedParser = Callable[[Union[bytes, str]], Feed]


def filter_feed(
    raw: Union[bytes, str],
    spec: FilterSpec,
    parse_feed: FeedParser = ICalendarFeed.parse,
) -> FilterResult:
    """Filter a raw feed, keeping only events that match no filter range.

    Events whose start/end cannot be resolved are logged and left out of the
    output; they count toward ``original_count`` but not ``kept_count``.

    Args:
        raw: Raw feed bytes as fetched
        spec: Resolved filter
        parse_feed: Feed parser (defaults to the icalendar implementation)

    Returns:
        FilterResult with serialized feed and event counts

    Raises:
        ParseError: If ``raw`` is not a well-formed feed
    """
    feed = parse_feed(raw)
    source_events = feed.events()

    kept: list[FeedEvent] = []
    matched = 0
    unresolved = 0

    for event in source_events:
        try:
            start, end = event.resolve_instants(spec.zone)
        except EventResolutionError as e:
            unresolved += 1
            logger.warning("Skipping event %r: %s", event.uid, e)
            continue

        if matches(start, end, spec):
            matched += 1
            continue

        kept.append(event)

    content = feed.with_events(kept).serialize()

    logger.debug(
        "Filter pass over %d events: %d matched, %d unresolved, %d kept",
        len(source_events),
        matched,
        unresolved,
        len(kept),
    )

    return FilterResult(content=content, original_count=len(source_events), kept_count=len(kept))


def count_events(raw: Union[bytes, str], parse_feed: FeedParser = ICalendarFeed.parse) -> int:
    """Parse once and return the number of events (for pass-through logging).

    Raises:
        ParseError: If ``raw`` is not a well-formed feed
    """
    return len(parse_feed(raw).events())
