"""HTTP client for downloading upstream ICS feeds - calendarfilter_lite."""

import asyncio
import logging
import random
from typing import Any, NoReturn, Optional
from urllib.parse import urlparse

import httpx

from .http_client import create_client
from .lite_models import LiteFeedResponse

logger = logging.getLogger(__name__)

WEBCAL_PREFIX = "webcal://"
HTTPS_PREFIX = "https://"

# Backoff calculation constants
MAX_BACKOFF_SECONDS = 30.0
JITTER_MIN_FACTOR = 0.1
JITTER_MAX_FACTOR = 0.3


class LiteFeedFetchError(Exception):
    """Base exception for feed fetch errors."""


class LiteFeedNetworkError(LiteFeedFetchError):
    """Network error during feed fetch."""


class LiteFeedTimeoutError(LiteFeedFetchError):
    """Timeout error during feed fetch."""


def _raise_client_not_initialized() -> NoReturn:
    raise LiteFeedFetchError("HTTP client not initialized")


def convert_webcal_to_https(url: str) -> str:
    """Rewrite a ``webcal://`` URL to ``https://``; other URLs are returned unchanged."""
    if url.startswith(WEBCAL_PREFIX):
        return HTTPS_PREFIX + url[len(WEBCAL_PREFIX) :]
    return url


def _is_valid_https_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
        # Accessing .port validates the port component
        _ = parsed.port
    except ValueError as e:
        logger.debug("URL validation error for %s: %s", url, e)
        return False
    return parsed.scheme == "https" and bool(parsed.hostname)


def validate_and_convert_feed_url(url: str) -> Optional[str]:
    """Validate a feed URL and return the https URL to fetch.

    Only ``webcal://`` and ``https://`` URLs are accepted; ``webcal://`` is
    rewritten to ``https://``. The result must parse and carry a hostname.

    Args:
        url: URL supplied by the caller

    Returns:
        The https URL, or None if the URL is not acceptable
    """
    if url.startswith(WEBCAL_PREFIX):
        candidate = convert_webcal_to_https(url)
    elif url.startswith(HTTPS_PREFIX):
        candidate = url
    else:
        logger.debug("Rejected feed URL with unsupported scheme: %s", url)
        return None

    if not _is_valid_https_url(candidate):
        logger.debug("Rejected malformed feed URL: %s", url)
        return None
    return candidate


class LiteFeedFetcher:
    """Async HTTP client for downloading ICS feeds."""

    def __init__(self, settings: Any, shared_client: Optional[httpx.AsyncClient] = None) -> None:
        """Initialize feed fetcher.

        Args:
            settings: Object or dict providing request_timeout, max_retries and
                retry_backoff_factor
            shared_client: Optional shared HTTP client for connection reuse; it is
                never closed by the fetcher
        """
        self.settings = settings
        self.client: Optional[httpx.AsyncClient] = shared_client
        self._use_shared_client = shared_client is not None

        logger.debug("Feed fetcher initialized (shared_client: %s)", self._use_shared_client)

    def _setting(self, key: str, default: Any) -> Any:
        if isinstance(self.settings, dict):
            return self.settings.get(key, default)
        return getattr(self.settings, key, default)

    async def __aenter__(self) -> "LiteFeedFetcher":
        """Async context manager entry."""
        await self._ensure_client()
        return self

    async def __aexit__(self, _exc_type: Any, _exc_val: Any, _exc_tb: Any) -> None:
        """Async context manager exit."""
        await self._close_client()

    async def _ensure_client(self) -> None:
        """Ensure HTTP client exists."""
        if self.client is None or self.client.is_closed:
            self.client = create_client()
            self._use_shared_client = False

    async def _close_client(self) -> None:
        """Close HTTP client if it's not shared."""
        if self.client is not None and not self._use_shared_client:
            if not self.client.is_closed:
                await self.client.aclose()
                logger.debug("Closed individual HTTP client")
        self.client = None

    async def fetch_feed(self, url: str) -> LiteFeedResponse:
        """Download a feed.

        HTTP status errors are not retried and come back as an unsuccessful
        response carrying the upstream status code and reason phrase. Timeouts
        and network errors are retried with backoff.

        Args:
            url: Validated https URL

        Returns:
            LiteFeedResponse; ``success`` is True only for 2xx responses

        Raises:
            LiteFeedTimeoutError: All attempts timed out
            LiteFeedNetworkError: All attempts failed with network errors
            LiteFeedFetchError: Any other unexpected failure
        """
        await self._ensure_client()
        logger.debug("Fetching feed from %s", url)

        try:
            response = await self._make_request_with_retry(url)
        except httpx.TimeoutException as e:
            raise LiteFeedTimeoutError(f"Request timeout fetching {url}: {e}") from e
        except httpx.NetworkError as e:
            raise LiteFeedNetworkError(f"Network error: {e}") from e
        except LiteFeedFetchError:
            raise
        except Exception as e:
            logger.exception("Unexpected error fetching feed from %s", url)
            raise LiteFeedFetchError(f"Unexpected error: {e}") from e

        return self._create_response(response)

    def _calculate_backoff(self, attempt: int, backoff_factor: float) -> float:
        """Calculate exponential backoff time with jitter.

        Args:
            attempt: Current retry attempt number (0-indexed)
            backoff_factor: Base factor for exponential backoff calculation

        Returns:
            Backoff time in seconds including jitter
        """
        base_backoff = min(backoff_factor**attempt, MAX_BACKOFF_SECONDS)
        jitter = random.uniform(JITTER_MIN_FACTOR, JITTER_MAX_FACTOR) * base_backoff  # nosec B311 - jitter not cryptographic
        return base_backoff + jitter

    async def _make_request_with_retry(self, url: str) -> httpx.Response:
        """GET the URL, retrying timeouts and network errors."""
        max_retries = int(self._setting("max_retries", 2))
        backoff_factor = float(self._setting("retry_backoff_factor", 1.5))
        timeout = float(self._setting("request_timeout", 30))

        attempt = 0
        while True:
            try:
                if self.client is None:
                    _raise_client_not_initialized()

                response = await self.client.get(url, timeout=timeout, follow_redirects=True)
                logger.debug(
                    "Fetched %s (attempt %d): HTTP %d, %d bytes",
                    url,
                    attempt + 1,
                    response.status_code,
                    len(response.content),
                )
                return response

            except (httpx.TimeoutException, httpx.NetworkError) as e:
                if attempt >= max_retries:
                    logger.exception("All %d attempt(s) failed for %s", attempt + 1, url)
                    raise

                backoff_time = self._calculate_backoff(attempt, backoff_factor)
                logger.warning(
                    "Request failed (attempt %s/%s), retrying in %.1fs: %s",
                    attempt + 1,
                    max_retries + 1,
                    backoff_time,
                    e,
                )
                await asyncio.sleep(backoff_time)
                attempt += 1

    def _create_response(self, http_response: httpx.Response) -> LiteFeedResponse:
        """Turn an httpx response into a LiteFeedResponse."""
        headers = dict(http_response.headers)

        if not http_response.is_success:
            logger.warning(
                "Upstream feed returned HTTP %d %s",
                http_response.status_code,
                http_response.reason_phrase,
            )
            return LiteFeedResponse(
                success=False,
                status_code=http_response.status_code,
                reason_phrase=http_response.reason_phrase,
                headers=headers,
                error_message=f"HTTP {http_response.status_code}: {http_response.reason_phrase}",
            )

        content = http_response.text
        content_type = headers.get("content-type", "").lower()

        if content_type and not any(ct in content_type for ct in ["text/calendar", "text/plain"]):
            logger.warning("Unexpected content type: %s", content_type)

        if "BEGIN:VCALENDAR" not in content:
            logger.warning("Content does not appear to be valid ICS format")

        return LiteFeedResponse(
            success=True,
            content=content,
            status_code=http_response.status_code,
            reason_phrase=http_response.reason_phrase,
            headers=headers,
        )
