"""HTTP fetch of the upstream ICS feed."""

from __future__ import annotations

import logging
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from calendarfilter.core.http_client import build_timeout, create_client
from calendarfilter.exceptions import FetchError
from calendarfilter.middleware import get_request_id
from calendarfilter.middleware.correlation_id import NO_REQUEST_ID

logger = logging.getLogger(__name__)


def _mask_url(url: str) -> str:
    """Trim a feed URL for logs; private feed URLs embed their secret in the path."""
    return url[:40] + ("..." if len(url) > 40 else "")


class ICSFetcher:
    """Async fetcher for the configured source feed.

    One plain GET per call: no retries, no conditional requests. Any transport
    error, timeout or final status other than 200 raises FetchError.
    """

    def __init__(
        self,
        source_url: str,
        request_timeout: float = 30.0,
        shared_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """Initialize ICS fetcher.

        Args:
            source_url: Feed URL to GET
            request_timeout: Read timeout in seconds for individual clients
            shared_client: Optional shared HTTP client for connection reuse
        """
        self.source_url = source_url
        self.request_timeout = request_timeout
        self.client: Optional[httpx.AsyncClient] = shared_client
        self._use_shared_client = shared_client is not None

        logger.debug("ICS fetcher initialized (shared_client: %s)", self._use_shared_client)

    async def __aenter__(self) -> ICSFetcher:
        """Async context manager entry."""
        if self.client is None or self.client.is_closed:
            self.client = create_client(timeout=build_timeout(self.request_timeout))
            self._use_shared_client = False
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        """Async context manager exit; only individual clients are closed."""
        if self.client is not None and not self._use_shared_client:
            if not self.client.is_closed:
                await self.client.aclose()
                logger.debug("Closed individual HTTP client")
        self.client = None

    @staticmethod
    def validate_url(url: str) -> None:
        """Require an http(s) URL with a hostname.

        Raises:
            FetchError: If the URL is malformed or uses another scheme
        """
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise FetchError(f"invalid source URL: {e}") from e

        if parsed.scheme not in ("http", "https"):
            raise FetchError(f"invalid source URL scheme: {parsed.scheme!r}")
        if not parsed.hostname:
            raise FetchError("invalid source URL: missing hostname")

    async def fetch(self) -> bytes:
        """Download the feed.

        Returns:
            Raw response body

        Raises:
            FetchError: On invalid URL, transport failure, timeout or non-200 status
        """
        self.validate_url(self.source_url)
        if self.client is None:
            raise FetchError("HTTP client not initialized")

        headers: dict[str, str] = {}
        request_id = get_request_id()
        if request_id != NO_REQUEST_ID:
            headers["X-Request-ID"] = request_id

        logger.debug("Fetching ICS from %s", _mask_url(self.source_url))
        try:
            response = await self.client.get(self.source_url, headers=headers)
        except httpx.TimeoutException as e:
            raise FetchError(f"timeout fetching calendar: {e!r}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"failed to fetch calendar: {e}") from e

        if response.status_code != 200:
            raise FetchError(
                f"unexpected status code: {response.status_code}",
                status_code=response.status_code,
            )

        content = response.content
        logger.debug("Fetched %d bytes from %s", len(content), _mask_url(self.source_url))
        return content
