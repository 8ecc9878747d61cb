"""
Central logging configuration for calendarfilter_lite.

Keeps the service's own loggers informative while quieting the per-request
debug chatter of aiohttp and httpx.
"""

import logging
import os
from typing import Optional


class CorrelationIdFilter(logging.Filter):
    """Add the current request correlation ID to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Add correlation ID to log record.

        Args:
            record: Log record to enhance

        Returns:
            True to allow record to be logged
        """
        # Imported here: the middleware pulls in aiohttp
        from .api.middleware import get_request_id

        record.request_id = get_request_id()
        return True


def configure_lite_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging levels for calendarfilter_lite.

    Args:
        debug_mode: Whether to enable debug logging for calendarfilter_lite modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        CALENDARFILTER_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDARFILTER_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CALENDARFILTER_DEBUG", "").lower() in ("1", "true", "yes")
    env_log_level = os.getenv("CALENDARFILTER_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    # Don't use force=True so the colorlog handler from _init_logging survives
    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    correlation_filter = CorrelationIdFilter()

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(root_level)
        formatter = logging.Formatter(
            "[%(asctime)s] [%(request_id)s] %(levelname)s - %(name)s - %(message)s"
        )
        handler.setFormatter(formatter)
        handler.addFilter(correlation_filter)
        root_logger.addHandler(handler)
    else:
        for existing_handler in root_logger.handlers:
            if not any(isinstance(f, CorrelationIdFilter) for f in existing_handler.filters):
                existing_handler.addFilter(correlation_filter)

    logger_config: dict[str, int] = {
        "aiohttp.access": logging.WARNING,
        "aiohttp.server": logging.WARNING,
        "aiohttp.web": logging.INFO,
        "aiohttp.web_log": logging.WARNING,
        "httpx": logging.WARNING,
        "httpcore": logging.WARNING,
        "asyncio": logging.WARNING,
    }

    lite_level = logging.DEBUG if final_debug else logging.INFO
    lite_modules = [
        "calendarfilter_lite",
        "calendarfilter_lite.lite_parser",
        "calendarfilter_lite.event_filter",
        "calendarfilter_lite.lite_fetcher",
        "calendarfilter_lite.api.server",
    ]
    for module in lite_modules:
        logger_config[module] = lite_level

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info(
            "Debug logging enabled for calendarfilter_lite modules. "
            "Third-party debug logs suppressed."
        )
    else:
        root_logger.info("Production logging configuration applied.")
