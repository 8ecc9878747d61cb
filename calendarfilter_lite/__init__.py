"""calendarfilter_lite - serve a filtered subset of an ICS calendar feed.

The core (``lite_parser``, ``event_filter``, ``lite_serializer``) is a pure,
synchronous text transformation. The ``api`` sub-package wraps it in a small
aiohttp service that fetches the upstream feed on every request.
"""

__version__ = "0.1.0"

from typing import Any, Optional


def _init_logging(level_name: Optional[str]) -> None:
    """Initialize root logging to stream to console.

    Honors CALENDARFILTER_DEBUG (truthy values: "1", "true", "yes", "on"), which
    forces DEBUG verbosity regardless of the requested level.
    """
    import logging
    import os
    import sys

    from colorlog import ColoredFormatter

    debug_env = os.environ.get("CALENDARFILTER_DEBUG", "")
    if debug_env.strip().lower() in ("1", "true", "yes", "on"):
        level_name = "DEBUG"

    root = logging.getLogger()
    # Only configure a handler if none is present to avoid duplicate output.
    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        # HH:MM:SS  LEVEL   logger.name: message, with only the level colorized
        fmt = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
        log_colors = {
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
        handler.setFormatter(ColoredFormatter(fmt, datefmt="%H:%M:%S", log_colors=log_colors))
        root.addHandler(handler)

    level = logging.INFO
    if isinstance(level_name, str):
        level = getattr(logging, level_name.upper(), logging.INFO)
    root.setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )


def build_config(args: Optional[Any] = None) -> Any:
    """Resolve the effective configuration.

    Precedence, lowest first: YAML config file (``args.config``), environment
    variables (seeded from ``.env``), command line overrides.

    Args:
        args: Optional argparse namespace with config, port, bind and debug

    Returns:
        calendarfilter_lite.config_manager.Config
    """
    import logging

    from .config_manager import Config, ConfigManager, load_config

    logger = logging.getLogger(__name__)

    file_cfg = load_config(getattr(args, "config", None))
    merged = file_cfg.to_dict()
    merged.update(ConfigManager().load_full_config())

    if args is not None:
        port = getattr(args, "port", None)
        if port is not None:
            merged["server_port"] = port
            logger.debug("Applied command line port override: %s", port)
        bind = getattr(args, "bind", None)
        if bind:
            merged["server_bind"] = bind
        if getattr(args, "debug", False):
            merged["debug_logging"] = True

    return Config.from_dict(merged)


def run_server(args: Optional[Any] = None) -> None:
    """Start the calendarfilter_lite server.

    Args:
        args: Optional command line arguments namespace (--port, --bind, --config, --debug)
    """
    import logging
    import os

    _init_logging(os.environ.get("CALENDARFILTER_LOG_LEVEL"))
    logger = logging.getLogger(__name__)

    cfg = build_config(args)
    logging.getLogger().setLevel(getattr(logging, cfg.log_level, logging.INFO))
    logger.debug(
        "Resolved configuration (diagnostic): %s",
        {k: getattr(cfg, k) for k in ("server_bind", "server_port", "log_level", "max_retries")},
    )

    from .api.server import start_server

    logger.info("Starting calendarfilter_lite %s", __version__)
    start_server(cfg)
