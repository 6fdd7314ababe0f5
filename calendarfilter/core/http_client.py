"""Shared HTTP client manager for upstream feed fetches.

Keeps one pooled ``httpx.AsyncClient`` per client id so each request reuses
connections to the calendar host instead of paying a TLS handshake per fetch.
The pool carries connections only, never response data.
"""

import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

# Global state for shared HTTP clients
_shared_clients: dict[str, httpx.AsyncClient] = {}
_client_lock = asyncio.Lock()

DEFAULT_LIMITS = httpx.Limits(
    max_connections=10,
    max_keepalive_connections=5,
)

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

# Some calendar hosts (Office365 in particular) reject requests without an Accept
# header that names the calendar type
DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": "calendarfilter/0.1",
    "Accept": "text/calendar, text/plain, application/octet-stream, */*",
    "Cache-Control": "no-cache",
}


def build_timeout(request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS) -> httpx.Timeout:
    """Build a timeout with ``request_timeout`` as the read budget."""
    return httpx.Timeout(connect=10.0, read=request_timeout, write=10.0, pool=30.0)


def create_client(
    timeout: Optional[httpx.Timeout] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Create a standalone client with the service's defaults.

    Args:
        timeout: Timeout configuration (defaults to build_timeout())
        transport: Optional transport, e.g. httpx.MockTransport in tests
    """
    return httpx.AsyncClient(
        transport=transport,
        limits=DEFAULT_LIMITS,
        timeout=timeout or build_timeout(),
        follow_redirects=True,
        verify=True,
        headers=DEFAULT_HEADERS,
    )


async def get_shared_client(
    client_id: str = "default",
    timeout: Optional[httpx.Timeout] = None,
) -> httpx.AsyncClient:
    """Get or create a shared HTTP client with connection pooling.

    Args:
        client_id: Identifier for the client (allows multiple clients if needed)
        timeout: Timeout used when the client is first created

    Returns:
        Shared httpx.AsyncClient

    Raises:
        RuntimeError: If client creation fails
    """
    async with _client_lock:
        client = _shared_clients.get(client_id)
        if client is None or client.is_closed:
            try:
                client = create_client(timeout=timeout)
            except Exception as e:
                logger.exception("Failed to create shared HTTP client '%s'", client_id)
                raise RuntimeError(f"Failed to create shared HTTP client: {e}") from e

            _shared_clients[client_id] = client
            logger.debug(
                "Created shared HTTP client '%s' (max_connections=%d)",
                client_id,
                DEFAULT_LIMITS.max_connections,
            )

        return client


async def close_all_clients() -> None:
    """Close all shared HTTP clients.

    Called during application shutdown to release pooled connections.
    """
    async with _client_lock:
        for client_id, client in _shared_clients.items():
            try:
                if not client.is_closed:
                    await client.aclose()
                    logger.debug("Closed shared HTTP client '%s'", client_id)
            except Exception as e:
                logger.warning("Error closing shared HTTP client '%s': %s", client_id, e)

        _shared_clients.clear()
