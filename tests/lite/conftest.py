from collections.abc import AsyncIterator
from types import SimpleNamespace
from typing import Any

import pytest

from calendarfilter_lite.http_client import close_all_clients


@pytest.fixture
def simple_settings() -> SimpleNamespace:
    """Lightweight settings object used across lite tests.

    Fields:
      - request_timeout: HTTP read timeout in seconds
      - max_retries: retry attempts for upstream fetches
      - retry_backoff_factor: multiplier for retry backoff delays
      - cache_max_age_seconds: max-age sent on filtered feeds
    """
    return SimpleNamespace(
        request_timeout=30,
        max_retries=0,
        retry_backoff_factor=1.5,
        cache_max_age_seconds=300,
    )


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> None:
    """Clear CALENDARFILTER_* variables so host settings never leak into tests.

    Each key is registered with monkeypatch first, so values written by .env
    loading during a test are removed again afterwards.
    """
    for key in (
        "CALENDARFILTER_DEBUG",
        "CALENDARFILTER_LOG_LEVEL",
        "CALENDARFILTER_WEB_HOST",
        "CALENDARFILTER_WEB_PORT",
        "CALENDARFILTER_REQUEST_TIMEOUT",
        "CALENDARFILTER_MAX_RETRIES",
        "CALENDARFILTER_CACHE_MAX_AGE",
    ):
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test to prevent resource leaks."""
    yield
    await close_all_clients()


# ==================== ICS Test Data Fixtures ====================


@pytest.fixture
def sample_ics_oncall() -> str:
    """
    Return a feed with three events and a standard header/footer.

    Summaries:
        - "Primary OnCall - TeamA"
        - "Secondary OnCall - TeamB"
        - "BaaS Team Meeting"
    """
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Test//EN
BEGIN:VEVENT
UID:event1@test.com
DTSTART:20240101T120000Z
DTEND:20240101T130000Z
SUMMARY:Primary OnCall - TeamA
END:VEVENT
BEGIN:VEVENT
UID:event2@test.com
DTSTART:20240102T120000Z
DTEND:20240102T130000Z
SUMMARY:Secondary OnCall - TeamB
END:VEVENT
BEGIN:VEVENT
UID:event3@test.com
DTSTART:20240103T120000Z
DTEND:20240103T130000Z
SUMMARY:BaaS Team Meeting
END:VEVENT
END:VCALENDAR"""


@pytest.fixture
def sample_ics_empty() -> str:
    """Return a calendar with a header and footer but no events."""
    return """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//Test//Test//EN
END:VCALENDAR"""


@pytest.fixture
def sample_ics_timezone() -> str:
    """
    Return a PagerDuty-style feed with a VTIMEZONE block in the header,
    parameterized DTSTART/DTEND lines and a trailing newline.
    """
    return (
        "BEGIN:VCALENDAR\n"
        "VERSION:2.0\n"
        "PRODID:-//PagerDuty//Schedule//EN\n"
        "X-WR-CALNAME:On-call schedule\n"
        "BEGIN:VTIMEZONE\n"
        "TZID:Europe/Berlin\n"
        "END:VTIMEZONE\n"
        "BEGIN:VEVENT\n"
        "UID:Q1@pagerduty.com\n"
        "DTSTART;TZID=Europe/Berlin:20240108T090000\n"
        "DTEND;TZID=Europe/Berlin:20240115T090000\n"
        "SUMMARY:On Call - Primary - Platform\n"
        "DESCRIPTION:Escalation policy: Platform\\, weekly rotation\n"
        "END:VEVENT\n"
        "BEGIN:VEVENT\n"
        "UID:Q2@pagerduty.com\n"
        "DTSTART;TZID=Europe/Berlin:20240115T090000\n"
        "DTEND;TZID=Europe/Berlin:20240122T090000\n"
        "SUMMARY:On Call - Secondary - Platform\n"
        "END:VEVENT\n"
        "END:VCALENDAR\n"
    )
