"""Configuration management for calendarfilter_lite server.

Configuration comes from three places, later ones winning: an optional YAML
file, environment variables (optionally seeded from a ``.env`` file) and
command line arguments.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

MAX_RETRIES_LIMIT = 5


@dataclass
class Config:
    """Typed configuration for calendarfilter_lite.

    Fields:
        server_bind: host to bind the HTTP server to
        server_port: port for the HTTP server
        log_level: logging level name
        debug_logging: enable DEBUG for calendarfilter_lite loggers
        request_timeout: upstream read timeout in seconds
        max_retries: retries for upstream timeouts/network errors (0..5)
        retry_backoff_factor: base of the exponential retry backoff
        cache_max_age_seconds: max-age sent in Cache-Control on filtered feeds
    """

    server_bind: str = "0.0.0.0"  # nosec: B104 - intentional default; override via config/env
    server_port: int = 8080
    log_level: str = "INFO"
    debug_logging: bool = False
    request_timeout: int = 30
    max_retries: int = 2
    retry_backoff_factor: float = 1.5
    cache_max_age_seconds: int = 300

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Config:
        """Create Config from a plain mapping, applying defaults and validation.

        Numeric-like values are coerced, out-of-range values are clamped, and
        every coercion is logged as a warning.
        """
        if data is None:
            data = {}
        defaults = cls()

        def _coerce_int(key: str, default: int) -> int:
            raw = data.get(key, default)
            try:
                return int(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not an int; using default %d", key, raw, default)
                return default

        def _coerce_float(key: str, default: float) -> float:
            raw = data.get(key, default)
            try:
                return float(raw)
            except (TypeError, ValueError):
                logger.warning("Config %s=%r is not a number; using default %s", key, raw, default)
                return default

        server_port = _coerce_int("server_port", defaults.server_port)
        if not 1 <= server_port <= 65535:
            logger.warning("server_port %d out of range; using %d", server_port, defaults.server_port)
            server_port = defaults.server_port

        max_retries = _coerce_int("max_retries", defaults.max_retries)
        if max_retries < 0:
            logger.warning("max_retries %d below minimum; coercing to 0", max_retries)
            max_retries = 0
        elif max_retries > MAX_RETRIES_LIMIT:
            logger.warning(
                "max_retries %d above maximum; coercing to %d", max_retries, MAX_RETRIES_LIMIT
            )
            max_retries = MAX_RETRIES_LIMIT

        cache_max_age = _coerce_int("cache_max_age_seconds", defaults.cache_max_age_seconds)
        if cache_max_age < 0:
            logger.warning("cache_max_age_seconds %d below minimum; coercing to 0", cache_max_age)
            cache_max_age = 0

        server_bind = data.get("server_bind", defaults.server_bind)
        server_bind = str(server_bind) if server_bind else defaults.server_bind

        log_level = data.get("log_level", defaults.log_level)
        log_level = str(log_level).upper() if log_level else defaults.log_level

        return cls(
            server_bind=server_bind,
            server_port=server_port,
            log_level=log_level,
            debug_logging=_coerce_bool(data.get("debug_logging", defaults.debug_logging)),
            request_timeout=_coerce_int("request_timeout", defaults.request_timeout),
            max_retries=max_retries,
            retry_backoff_factor=_coerce_float(
                "retry_backoff_factor", defaults.retry_backoff_factor
            ),
            cache_max_age_seconds=cache_max_age,
        )

    def to_dict(self) -> dict[str, Any]:
        """Plain mapping of all fields."""
        return asdict(self)


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def load_config(path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file and return a Config instance.

    Args:
        path: Optional path to the config file; defaults to ./calendarfilter.yaml

    Returns:
        Config with values from the file, or defaults when the file is missing

    Raises:
        ValueError: If the file's top level is not a mapping
        yaml.YAMLError: If the file is not valid YAML
    """
    p = Path(path) if path else Path.cwd() / "calendarfilter.yaml"
    logger.debug("Attempting to load config from %s", p)
    if not p.exists():
        logger.info("Config file %s not found; using defaults", p)
        return Config()

    raw = yaml.safe_load(p.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        logger.warning("Config file %s parsed but top-level is not a mapping: %r", p, raw)
        raise ValueError("Config file must contain a mapping at top level")  # noqa: TRY004

    cfg = Config.from_dict(raw)
    logger.info("Loaded configuration from %s", p)
    logger.debug("Configuration values: %s", cfg)
    return cfg


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    # Environment variable -> config key
    ENV_KEYS: dict[str, str] = {
        "CALENDARFILTER_WEB_HOST": "server_bind",
        "CALENDARFILTER_WEB_PORT": "server_port",
        "CALENDARFILTER_LOG_LEVEL": "log_level",
        "CALENDARFILTER_REQUEST_TIMEOUT": "request_timeout",
        "CALENDARFILTER_MAX_RETRIES": "max_retries",
        "CALENDARFILTER_CACHE_MAX_AGE": "cache_max_age_seconds",
    }

    INT_KEYS = frozenset({"server_port", "request_timeout", "max_retries", "cache_max_age_seconds"})

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []

        try:
            content = self.env_file_path.read_text(encoding="utf-8")
        except OSError:
            logger.debug(
                "Failed to read .env file for defaults (continuing): %s",
                str(self.env_file_path),
                exc_info=True,
            )
            return []

        for raw_line in content.splitlines():
            line = raw_line.strip()

            if not line or line.startswith("#") or "=" not in line:
                continue

            key, val = line.split("=", 1)
            key = key.strip()
            val = val.strip().strip('"').strip("'")

            if key and key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build a configuration dictionary from CALENDARFILTER_* variables.

        Invalid integers are logged and ignored.

        Returns:
            Configuration dictionary suitable for Config.from_dict
        """
        cfg: dict[str, Any] = {}

        for env_key, cfg_key in self.ENV_KEYS.items():
            value = os.environ.get(env_key)
            if not value:
                continue
            if cfg_key in self.INT_KEYS:
                try:
                    cfg[cfg_key] = int(value)
                except ValueError:
                    logger.warning("Invalid %s=%r; ignoring", env_key, value)
                continue
            cfg[cfg_key] = value

        if _coerce_bool(os.environ.get("CALENDARFILTER_DEBUG", "")):
            cfg["debug_logging"] = True

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()


def get_config_value(config: Any, key: str, default: Any = None) -> Any:
    """Get configuration value supporting both dict and dataclass-like objects.

    Args:
        config: Configuration object (dict or object with attributes)
        key: Configuration key to retrieve
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    if isinstance(config, dict):
        return config.get(key, default)
    return getattr(config, key, default)
