"""Feed filtering routes for calendarfilter_lite."""

from __future__ import annotations

import logging
import time
from typing import Any

from aiohttp import web

from ... import __version__
from ...config_manager import get_config_value
from ...event_filter import parse_filter_rules
from ...exceptions import FilterRuleError
from ...lite_fetcher import LiteFeedFetcher, validate_and_convert_feed_url
from ...lite_serializer import filter_calendar

logger = logging.getLogger(__name__)

TARGET_CALENDAR_PARAM = "targetCalendar"
CALENDAR_CONTENT_TYPE = "text/calendar"

MISSING_TARGET_MESSAGE = (
    "Missing targetCalendar parameter. Usage: ?targetCalendar=webcal://your-calendar-url"
)
INVALID_URL_MESSAGE = "Invalid calendar URL. Must be a valid webcal:// or https:// URL"
PROCESSING_ERROR_MESSAGE = "Error processing calendar feed"


def register_filter_routes(
    app: web.Application,
    config: Any,
    shared_http_client: Any = None,
) -> None:
    """Register the feed filter and health routes.

    Args:
        app: aiohttp web application
        config: Application configuration (Config or dict)
        shared_http_client: Optional shared httpx.AsyncClient for upstream fetches
    """
    started_at = time.monotonic()
    cache_max_age = int(get_config_value(config, "cache_max_age_seconds", 300))

    async def filter_feed(request: web.Request) -> web.Response:
        """Fetch the target feed and return it with only the matching events.

        Query parameters:
            targetCalendar: webcal:// or https:// feed URL (required)
            include, exclude: comma-separated keywords
            includePattern, excludePattern: comma-separated regular expressions
        """
        target = request.query.get(TARGET_CALENDAR_PARAM)
        if not target:
            return web.Response(text=MISSING_TARGET_MESSAGE, status=400)

        feed_url = validate_and_convert_feed_url(target)
        if feed_url is None:
            return web.Response(text=INVALID_URL_MESSAGE, status=400)

        try:
            rules = parse_filter_rules(request.query)
        except FilterRuleError as e:
            logger.info("Rejected filter rules: %s", e.message)
            return web.Response(text=f"Invalid filter pattern: {e.message}", status=400)

        try:
            async with LiteFeedFetcher(config, shared_http_client) as fetcher:
                feed = await fetcher.fetch_feed(feed_url)

            if not feed.success:
                return web.Response(
                    text=f"Failed to fetch calendar: {feed.status_code} {feed.reason_phrase}",
                    status=502,
                )

            filtered = filter_calendar(feed.content or "", rules)
        except Exception:
            logger.exception("Failed to process feed %s", feed_url)
            return web.Response(text=PROCESSING_ERROR_MESSAGE, status=500)

        return web.Response(
            text=filtered,
            content_type=CALENDAR_CONTENT_TYPE,
            charset="utf-8",
            headers={"Cache-Control": f"max-age={cache_max_age}"},
        )

    async def health_check(_request: web.Request) -> web.Response:
        """Liveness endpoint."""
        return web.json_response(
            {
                "status": "ok",
                "version": __version__,
                "uptime_s": int(time.monotonic() - started_at),
            }
        )

    app.router.add_get("/", filter_feed)
    app.router.add_get("/health", health_check)
    logger.debug("Feed filter routes registered")
