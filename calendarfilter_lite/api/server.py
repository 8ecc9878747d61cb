"""calendarfilter_lite.api.server - asyncio HTTP server for filtered ICS feeds.

Serves ``GET /?targetCalendar=...`` (the filtered feed) and ``GET /health``.
Every request is independent: the upstream feed is fetched, filtered and
returned without any state kept between requests. Upstream connections are
pooled through one shared httpx client.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import signal
from typing import Any

from aiohttp import web

from ..config_manager import get_config_value
from ..http_client import close_all_clients, get_shared_client
from ..lite_logging import configure_lite_logging
from .middleware import correlation_id_middleware
from .routes import register_filter_routes

logger = logging.getLogger(__name__)

MAX_PORT_ATTEMPTS = 10
SHARED_CLIENT_ID = "lite_server"


def create_app(config: Any, shared_http_client: Any = None) -> web.Application:
    """Create the aiohttp web application.

    Args:
        config: Server configuration (Config or dict)
        shared_http_client: Optional shared httpx.AsyncClient for upstream fetches;
            without one every request uses its own short-lived client

    Returns:
        Configured web.Application
    """
    app = web.Application(middlewares=[correlation_id_middleware])

    register_filter_routes(app=app, config=config, shared_http_client=shared_http_client)

    async def _shutdown(_app: web.Application) -> None:
        logger.info("Application shutdown requested")

    app.on_shutdown.append(_shutdown)
    return app


async def _start_site(runner: web.AppRunner, host: str, configured_port: int) -> int:
    """Start a TCP site on the configured port or one of the next free ones.

    Returns:
        The port actually bound

    Raises:
        RuntimeError: If no port in the range is free
        OSError: For bind failures other than a port already in use
    """
    for port_offset in range(MAX_PORT_ATTEMPTS):
        port = configured_port + port_offset
        site = web.TCPSite(runner, host=host, port=port)
        try:
            await site.start()
        except OSError as e:
            if "address already in use" not in str(e).lower():
                logger.exception("Failed to start server on %s:%d", host, port)
                raise
            logger.debug("Port %d in use, trying next port", port)
            continue

        if port != configured_port:
            logger.warning(
                "Configured port %d was in use, using port %d instead", configured_port, port
            )
        return port

    last_port = configured_port + MAX_PORT_ATTEMPTS - 1
    logger.error("Could not find available port in range %d-%d", configured_port, last_port)
    raise RuntimeError(f"No available port found in range {configured_port}-{last_port}")


async def _serve(config: Any, external_stop_event: asyncio.Event | None = None) -> None:
    """Run the server until signalled to stop.

    Args:
        config: Server configuration object/dict.
        external_stop_event: Optional event to signal shutdown. If provided,
            signal handlers will NOT be registered (caller owns signal handling).
    """
    stop_event = external_stop_event or asyncio.Event()

    shared_http_client = None
    try:
        shared_http_client = await get_shared_client(SHARED_CLIENT_ID)
    except RuntimeError as e:
        logger.warning(
            "Failed to initialize shared HTTP client, falling back to individual clients: %s", e
        )

    app = create_app(config, shared_http_client)
    runner = web.AppRunner(app)
    await runner.setup()

    host = get_config_value(config, "server_bind", "0.0.0.0")  # nosec: B104 - default bind; override via config/env
    configured_port = int(get_config_value(config, "server_port", 8080))

    try:
        port = await _start_site(runner, host, configured_port)
    except Exception:
        await runner.cleanup()
        await close_all_clients()
        raise

    logger.info("Server started successfully on %s:%d (pid %d)", host, port, os.getpid())

    if external_stop_event is None:
        loop = asyncio.get_running_loop()

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


def start_server(config: Any) -> None:
    """Start the asyncio event loop and HTTP server.

    Args:
        config: Config or dict with keys:
            - server_bind: host to bind (str)
            - server_port: port (int)
            - debug_logging: enable debug logging for calendarfilter_lite (bool)
            - request_timeout, max_retries, retry_backoff_factor: upstream fetch settings
            - cache_max_age_seconds: Cache-Control max-age on filtered feeds

    This function blocks the calling thread and runs until a SIGINT/SIGTERM is received.
    """
    debug_mode = bool(get_config_value(config, "debug_logging", False))
    configure_lite_logging(debug_mode=debug_mode)
    logger.info("Logging configuration applied: debug_mode=%s", debug_mode)

    try:
        logger.debug("Running asyncio event loop for server")
        asyncio.run(_serve(config))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception:
        logger.exception("Server terminated unexpectedly")
        raise
