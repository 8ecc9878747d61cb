"""End-to-end tests for the feed filter endpoint.

The aiohttp app is served by aiohttp's TestServer and the upstream calendar
host is replaced with an httpx.MockTransport, so no network is involved.
"""

from __future__ import annotations

from collections.abc import Callable
from urllib.parse import quote

import httpx
import pytest
from aiohttp.test_utils import TestClient, TestServer

from calendarfilter_lite.api.server import create_app
from calendarfilter_lite.config_manager import Config
from calendarfilter_lite.lite_fetcher import LiteFeedFetcher

pytestmark = pytest.mark.integration

UPSTREAM = "webcal://calendar.example.com/schedule.ics"


def _target(url: str = UPSTREAM) -> str:
    return f"/?targetCalendar={quote(url, safe='')}"


@pytest.fixture
def upstream_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
async def make_client(upstream_requests):
    """Build a test client whose upstream requests are answered by ``handler``."""
    clients = []

    async def _make(
        handler: Callable[[httpx.Request], httpx.Response],
        config: Config | None = None,
    ) -> TestClient:
        def _recording_handler(request: httpx.Request) -> httpx.Response:
            upstream_requests.append(request)
            return handler(request)

        upstream = httpx.AsyncClient(transport=httpx.MockTransport(_recording_handler))
        app = create_app(config or Config(max_retries=0), shared_http_client=upstream)
        client = TestClient(TestServer(app))
        await client.start_server()
        clients.append((client, upstream))
        return client

    yield _make

    for client, upstream in clients:
        await client.close()
        await upstream.aclose()


def _serve_ics(body: str) -> Callable[[httpx.Request], httpx.Response]:
    def handler(_request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text=body, headers={"content-type": "text/calendar"})

    return handler


class TestRequestValidation:
    async def test_missing_target_returns_400(self, make_client) -> None:
        client = await make_client(_serve_ics(""))

        resp = await client.get("/")

        assert resp.status == 400
        assert await resp.text() == (
            "Missing targetCalendar parameter. Usage: ?targetCalendar=webcal://your-calendar-url"
        )

    async def test_empty_target_returns_400(self, make_client) -> None:
        client = await make_client(_serve_ics(""))

        resp = await client.get("/?targetCalendar=")

        assert resp.status == 400
        assert (await resp.text()).startswith("Missing targetCalendar parameter")

    @pytest.mark.parametrize("url", ["http://example.com/feed.ics", "ftp://x/y", "webcal://"])
    async def test_invalid_url_returns_400(self, make_client, upstream_requests, url) -> None:
        client = await make_client(_serve_ics(""))

        resp = await client.get(_target(url))

        assert resp.status == 400
        assert await resp.text() == "Invalid calendar URL. Must be a valid webcal:// or https:// URL"
        assert upstream_requests == []

    async def test_invalid_pattern_returns_400_before_fetch(
        self, make_client, upstream_requests
    ) -> None:
        client = await make_client(_serve_ics(""))

        resp = await client.get(_target() + "&includePattern=" + quote("[unclosed"))

        assert resp.status == 400
        assert (await resp.text()).startswith("Invalid filter pattern: ")
        assert upstream_requests == []


class TestUpstreamFailures:
    async def test_upstream_404_returns_502(self, make_client) -> None:
        client = await make_client(lambda _r: httpx.Response(404))

        resp = await client.get(_target())

        assert resp.status == 502
        assert await resp.text() == "Failed to fetch calendar: 404 Not Found"

    async def test_upstream_network_error_returns_500(self, make_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = await make_client(handler)

        resp = await client.get(_target())

        assert resp.status == 500
        assert await resp.text() == "Error processing calendar feed"

    async def test_upstream_timeout_is_retried(
        self, make_client, upstream_requests, monkeypatch
    ) -> None:
        calls = iter([None, "ok"])

        def handler(request: httpx.Request) -> httpx.Response:
            if next(calls) is None:
                raise httpx.ReadTimeout("slow", request=request)
            return httpx.Response(200, text="BEGIN:VCALENDAR\nEND:VCALENDAR")

        monkeypatch.setattr(LiteFeedFetcher, "_calculate_backoff", lambda *_args: 0.0)
        client = await make_client(handler, Config(max_retries=1))

        resp = await client.get(_target())

        assert resp.status == 200
        assert len(upstream_requests) == 2


class TestFiltering:
    async def test_webcal_fetched_over_https(
        self, make_client, upstream_requests, sample_ics_oncall
    ) -> None:
        client = await make_client(_serve_ics(sample_ics_oncall))

        await client.get(_target())

        assert str(upstream_requests[0].url) == "https://calendar.example.com/schedule.ics"

    async def test_no_rules_returns_feed_unchanged(self, make_client, sample_ics_oncall) -> None:
        client = await make_client(_serve_ics(sample_ics_oncall))

        resp = await client.get(_target())

        assert resp.status == 200
        assert await resp.text() == sample_ics_oncall
        assert resp.headers["Content-Type"] == "text/calendar; charset=utf-8"
        assert resp.headers["Cache-Control"] == "max-age=300"
        assert "X-Request-ID" in resp.headers

    async def test_include_and_exclude(self, make_client, sample_ics_oncall) -> None:
        client = await make_client(_serve_ics(sample_ics_oncall))

        resp = await client.get(_target() + "&include=OnCall&exclude=Secondary")

        body = await resp.text()
        assert "Primary OnCall - TeamA" in body
        assert "Secondary OnCall" not in body
        assert "BaaS Team Meeting" not in body
        assert body.startswith("BEGIN:VCALENDAR\n")
        assert body.endswith("END:VCALENDAR")

    async def test_include_pattern(self, make_client, sample_ics_oncall) -> None:
        client = await make_client(_serve_ics(sample_ics_oncall))

        resp = await client.get(_target() + "&includePattern=" + quote("Primary.*OnCall"))

        body = await resp.text()
        assert body.count("BEGIN:VEVENT") == 1
        assert "UID:event1@test.com" in body

    async def test_exclude_pattern_list(self, make_client, sample_ics_oncall) -> None:
        client = await make_client(_serve_ics(sample_ics_oncall))

        resp = await client.get(_target() + "&excludePattern=" + quote("^secondary,meeting$"))

        body = await resp.text()
        assert "UID:event1@test.com" in body
        assert "UID:event2@test.com" not in body
        assert "UID:event3@test.com" not in body

    async def test_blank_exclude_drops_every_event(self, make_client, sample_ics_oncall) -> None:
        client = await make_client(_serve_ics(sample_ics_oncall))

        resp = await client.get(_target() + "&exclude=")

        body = await resp.text()
        assert resp.status == 200
        assert "BEGIN:VEVENT" not in body
        assert body == "BEGIN:VCALENDAR\nVERSION:2.0\nPRODID:-//Test//Test//EN\nEND:VCALENDAR"

    async def test_https_target_accepted(self, make_client, sample_ics_oncall) -> None:
        client = await make_client(_serve_ics(sample_ics_oncall))

        resp = await client.get(_target("https://calendar.example.com/schedule.ics"))

        assert resp.status == 200

    async def test_cache_max_age_from_config(self, make_client, sample_ics_oncall) -> None:
        client = await make_client(
            _serve_ics(sample_ics_oncall), Config(max_retries=0, cache_max_age_seconds=60)
        )

        resp = await client.get(_target())

        assert resp.headers["Cache-Control"] == "max-age=60"


async def test_health_endpoint(make_client) -> None:
    client = await make_client(_serve_ics(""))

    resp = await client.get("/health")

    assert resp.status == 200
    data = await resp.json()
    assert data["status"] == "ok"
    assert isinstance(data["uptime_s"], int)
    assert data["version"]
