"""Tests for calendarfilter.calendar.fetcher.ICSFetcher."""

import httpx
import pytest

from calendarfilter.calendar.fetcher import ICSFetcher, _mask_url
from calendarfilter.core.http_client import create_client
from calendarfilter.exceptions import FetchError
from calendarfilter.middleware import request_id_var

pytestmark = [pytest.mark.unit, pytest.mark.fast]

ICS_BODY = b"BEGIN:VCALENDAR\r\nVERSION:2.0\r\nEND:VCALENDAR\r\n"


class RecordingHandler:
    """httpx.MockTransport handler that records requests and replays a response."""

    def __init__(self, status_code: int = 200, content: bytes = ICS_BODY, exc: Exception | None = None):
        self.status_code = status_code
        self.content = content
        self.exc = exc
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.exc is not None:
            raise self.exc
        return httpx.Response(self.status_code, content=self.content)


def _client(handler) -> httpx.AsyncClient:
    return create_client(transport=httpx.MockTransport(handler))


async def test_fetch_when_200_then_returns_body(source_url) -> None:
    handler = RecordingHandler()
    async with _client(handler) as client:
        async with ICSFetcher(source_url, shared_client=client) as fetcher:
            assert await fetcher.fetch() == ICS_BODY

    assert str(handler.requests[0].url) == source_url
    assert handler.requests[0].method == "GET"


@pytest.mark.parametrize("status_code", [304, 404, 500, 503])
async def test_fetch_when_non_200_then_fetch_error_with_status(source_url, status_code) -> None:
    async with _client(RecordingHandler(status_code=status_code)) as client:
        async with ICSFetcher(source_url, shared_client=client) as fetcher:
            with pytest.raises(FetchError, match=f"unexpected status code: {status_code}") as exc_info:
                await fetcher.fetch()

    assert exc_info.value.status_code == status_code


async def test_fetch_when_timeout_then_fetch_error(source_url) -> None:
    handler = RecordingHandler(exc=httpx.ReadTimeout("read timed out"))
    async with _client(handler) as client:
        async with ICSFetcher(source_url, shared_client=client) as fetcher:
            with pytest.raises(FetchError, match="timeout fetching calendar") as exc_info:
                await fetcher.fetch()

    assert exc_info.value.status_code is None


async def test_fetch_when_connection_refused_then_fetch_error(source_url) -> None:
    handler = RecordingHandler(exc=httpx.ConnectError("connection refused"))
    async with _client(handler) as client:
        async with ICSFetcher(source_url, shared_client=client) as fetcher:
            with pytest.raises(FetchError, match="connection refused"):
                await fetcher.fetch()


async def test_fetch_when_redirected_then_follows_to_final_200(source_url) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/moved.ics":
            return httpx.Response(200, content=ICS_BODY)
        return httpx.Response(302, headers={"Location": "https://calendar.example.com/moved.ics"})

    async with _client(handler) as client:
        async with ICSFetcher(source_url, shared_client=client) as fetcher:
            assert await fetcher.fetch() == ICS_BODY


@pytest.mark.parametrize(
    "url",
    ["ftp://calendar.example.com/feed.ics", "file:///etc/passwd", "https://", "calendar.example.com/feed.ics"],
)
async def test_fetch_when_url_invalid_then_rejected_before_request(url) -> None:
    handler = RecordingHandler()
    async with _client(handler) as client:
        async with ICSFetcher(url, shared_client=client) as fetcher:
            with pytest.raises(FetchError, match="invalid source URL"):
                await fetcher.fetch()

    assert handler.requests == []


async def test_fetch_when_request_id_in_context_then_forwarded(source_url) -> None:
    handler = RecordingHandler()
    token = request_id_var.set("req-123")
    try:
        async with _client(handler) as client:
            async with ICSFetcher(source_url, shared_client=client) as fetcher:
                await fetcher.fetch()
    finally:
        request_id_var.reset(token)

    assert handler.requests[0].headers["X-Request-ID"] == "req-123"


async def test_fetch_when_no_request_context_then_no_request_id_header(source_url) -> None:
    handler = RecordingHandler()
    async with _client(handler) as client:
        async with ICSFetcher(source_url, shared_client=client) as fetcher:
            await fetcher.fetch()

    assert "X-Request-ID" not in handler.requests[0].headers


async def test_context_manager_when_shared_client_then_left_open(source_url) -> None:
    async with _client(RecordingHandler()) as client:
        async with ICSFetcher(source_url, shared_client=client):
            pass
        assert not client.is_closed


async def test_context_manager_when_no_client_then_creates_and_closes_own(source_url) -> None:
    fetcher = ICSFetcher(source_url, request_timeout=5.0)
    async with fetcher:
        own_client = fetcher.client
        assert own_client is not None
        assert own_client.timeout.read == 5.0

    assert own_client.is_closed
    assert fetcher.client is None


async def test_fetch_when_used_outside_context_then_fetch_error(source_url) -> None:
    with pytest.raises(FetchError, match="not initialized"):
        await ICSFetcher(source_url).fetch()


def test_mask_url_when_long_then_truncated() -> None:
    url = "https://calendar.example.com/private/abcdef0123456789/basic.ics"
    assert _mask_url(url) == url[:40] + "..."
    assert _mask_url("https://short.example") == "https://short.example"
