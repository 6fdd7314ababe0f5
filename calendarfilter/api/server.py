"""aiohttp server for calendarfilter.

Stateless request/response proxy: every ``/filter`` request fetches the
source feed, filters it and returns it. Nothing is cached between requests;
only the upstream HTTP connection pool is shared.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from typing import Optional

import httpx
from aiohttp import web

from calendarfilter.api.routes import register_filter_routes
from calendarfilter.calendar.fetcher import ICSFetcher
from calendarfilter.core.config_manager import ServiceConfig
from calendarfilter.core.http_client import build_timeout, close_all_clients, get_shared_client
from calendarfilter.core.timezone_utils import ZoneInfoResolver, ZoneResolver
from calendarfilter.filter_logging import configure_filter_logging
from calendarfilter.middleware import correlation_id_middleware

logger = logging.getLogger(__name__)

SHARED_CLIENT_ID = "calendarfilter"


async def _make_app(
    config: ServiceConfig,
    http_client: Optional[httpx.AsyncClient] = None,
    zone_resolver: Optional[ZoneResolver] = None,
) -> web.Application:
    """Create aiohttp web application with the filter routes wired in.

    Args:
        config: Service configuration
        http_client: Client for upstream fetches; the process-wide shared
            client is used when omitted
        zone_resolver: Timezone resolver (defaults to zoneinfo)
    """
    app = web.Application(middlewares=[correlation_id_middleware])

    async def fetch_source() -> bytes:
        client = http_client
        if client is None:
            client = await get_shared_client(
                SHARED_CLIENT_ID, timeout=build_timeout(config.request_timeout)
            )
        async with ICSFetcher(
            config.source_url,
            request_timeout=config.request_timeout,
            shared_client=client,
        ) as fetcher:
            return await fetcher.fetch()

    register_filter_routes(
        app,
        fetch_source=fetch_source,
        zone_resolver=zone_resolver or ZoneInfoResolver(),
        default_timezone=config.default_timezone,
    )

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


async def _serve(
    config: ServiceConfig,
    external_stop_event: Optional[asyncio.Event] = None,
) -> None:
    """Run the server until signalled to stop.

    Args:
        config: Service configuration
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers will NOT be registered (caller owns signal handling).

    Raises:
        OSError: If the listening socket cannot be bound
    """
    stop_event = external_stop_event or asyncio.Event()

    logger.debug("Creating web application. Config: %s", config.diagnostic_view())
    app = await _make_app(config)

    runner = web.AppRunner(app)
    await runner.setup()

    host = config.server_bind
    port = config.server_port
    site = web.TCPSite(runner, host=host, port=port)
    try:
        await site.start()
    except OSError:
        logger.exception("Failed to start server on %s:%d", host, port)
        await runner.cleanup()
        raise

    logger.info("Server started successfully on %s:%d", host, port)

    loop = asyncio.get_running_loop()

    if external_stop_event is None:

        def _on_signal() -> None:
            logger.info("Shutdown signal received")
            stop_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, _on_signal)
    else:
        logger.debug("Using external stop event - skipping signal handler registration")

    await stop_event.wait()
    logger.info("Stop event received, shutting down")

    await runner.cleanup()

    try:
        await close_all_clients()
        logger.debug("Shared HTTP clients cleaned up")
    except Exception as e:
        logger.warning("Error cleaning up shared HTTP clients: %s", e)

    logger.info("Server shutdown complete")


def start_server(config: ServiceConfig) -> None:
    """Start the asyncio event loop and HTTP server.

    Blocks the calling thread until SIGINT/SIGTERM is received.

    Raises:
        OSError: If the listening socket cannot be bound
    """
    configure_filter_logging(debug_mode=config.debug_logging)
    logger.info("Logging configuration applied: debug_mode=%s", config.debug_logging)

    try:
        logger.debug("Running asyncio event loop for server")
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
