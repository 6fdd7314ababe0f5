"""Filter and health routes for calendarfilter."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from aiohttp import web

from calendarfilter.calendar.range_parser import QueryParams, resolve_filter_spec
from calendarfilter.calendar.transform import count_events, filter_feed
from calendarfilter.core.timezone_utils import ZoneResolver
from calendarfilter.exceptions import FetchError, ParseError, ValidationError

logger = logging.getLogger(__name__)

CALENDAR_CONTENT_TYPE = "text/calendar; charset=utf-8"

FetchSource = Callable[[], Awaitable[bytes]]


def _query_params(request: web.Request) -> QueryParams:
    """Flatten the request's MultiDict query into ``{name: [values...]}``."""
    return {key: request.query.getall(key) for key in set(request.query.keys())}


def _calendar_response(content: bytes) -> web.Response:
    return web.Response(body=content, headers={"Content-Type": CALENDAR_CONTENT_TYPE})


def register_filter_routes(
    app: web.Application,
    fetch_source: FetchSource,
    zone_resolver: ZoneResolver,
    default_timezone: str,
) -> None:
    """Register the filter proxy and health routes.

    Args:
        app: aiohttp web application
        fetch_source: Coroutine function returning the raw upstream feed
        zone_resolver: Resolver for ``tz`` and the default zone
        default_timezone: Zone name used when a request names none
    """

    async def filter_calendar(request: web.Request) -> web.Response:
        """Fetch the source feed and drop events matching the requested ranges."""
        body = await request.read() if request.method == "POST" else None

        try:
            spec = resolve_filter_spec(
                body, _query_params(request), default_timezone, zone_resolver
            )
        except ValidationError as e:
            logger.info("[%s] Rejected filter request: %s", request.remote, e)
            return web.Response(status=400, text=f"Invalid filter parameters: {e}")

        try:
            raw = await fetch_source()
        except FetchError as e:
            logger.error("[%s] Failed to fetch calendar: %s", request.remote, e)
            return web.Response(status=500, text=f"Failed to fetch calendar: {e}")

        if spec.is_empty:
            try:
                event_count = count_events(raw)
            except ParseError as e:
                logger.debug("[%s] Pass-through feed did not parse: %s", request.remote, e)
            else:
                logger.info(
                    "[%s] Request: no filters applied, returned %d events",
                    request.remote,
                    event_count,
                )
            return _calendar_response(raw)

        try:
            result = filter_feed(raw, spec)
        except ParseError as e:
            logger.error("[%s] Failed to filter calendar: %s", request.remote, e)
            return web.Response(status=500, text=f"Failed to filter calendar: {e}")

        logger.info(
            "[%s] Request: filtered %d events -> %d events (removed %d)",
            request.remote,
            result.original_count,
            result.kept_count,
            result.removed_count,
        )
        return _calendar_response(result.content)

    async def health_check(_request: web.Request) -> web.Response:
        """Liveness check; never touches the upstream feed."""
        return web.Response(text="OK")

    app.router.add_get("/filter", filter_calendar)
    app.router.add_post("/filter", filter_calendar)
    app.router.add_get("/health", health_check)
