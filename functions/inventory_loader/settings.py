"""
Loader Settings
===============

Runtime configuration for the inventory loader, read from environment
variables (scripts load a ``.env`` file first via python-dotenv).

Environment Variables
---------------------
INVENTORY_SERVICE_URL               Base URL of the data service (required for HTTP access)
INVENTORY_SERVICE_KEY               API key sent as ``apikey`` + bearer token (required)
INVENTORY_CACHE_TTL_SECONDS         Snapshot TTL (default 300)
INVENTORY_TIMEOUT_MS                Per-attempt timeout (default 20000)
INVENTORY_MAX_ATTEMPTS              Attempts before a terminal error (default 3)
INVENTORY_RETRY_DELAY_SECONDS       Progressive delay step (default 2.0)
INVENTORY_REQUEST_TIMEOUT_SECONDS   Socket timeout of one HTTP request (default 10)
INVENTORY_MINIMAL_ROW_LIMIT         Row limit of the minimal strategy (default 100)
INVENTORY_HEALTH_URL                Optional URL pinged by the network monitor
INVENTORY_NETWORK_CHECK_SECONDS     Minimum gap between health URL pings (default 30)
INVENTORY_DEBUG                     Verbose loader logging (default false)
"""

import os
import logging
from typing import Optional, Mapping

from pydantic import BaseModel, Field

from .table_config import MINIMAL_ROW_LIMIT

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "inventory_loader"

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in _TRUE_VALUES


class LoaderSettings(BaseModel):
    """Validated loader configuration."""

    service_url: Optional[str] = None
    service_key: Optional[str] = None
    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    timeout_ms: float = Field(default=20000, gt=0)
    max_attempts: int = Field(default=3, ge=1)
    retry_delay_seconds: float = Field(default=2.0, ge=0)
    request_timeout_seconds: float = Field(default=10.0, gt=0)
    minimal_row_limit: int = Field(default=MINIMAL_ROW_LIMIT, ge=1)
    health_url: Optional[str] = None
    network_check_seconds: float = Field(default=30.0, ge=0)
    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "LoaderSettings":
        """Build settings from environment variables (``os.environ`` by default)."""
        env = os.environ if environ is None else environ

        values = {
            "service_url": env.get("INVENTORY_SERVICE_URL"),
            "service_key": env.get("INVENTORY_SERVICE_KEY"),
            "health_url": env.get("INVENTORY_HEALTH_URL"),
            "debug": _env_bool(env.get("INVENTORY_DEBUG")),
        }
        numeric = {
            "cache_ttl_seconds": "INVENTORY_CACHE_TTL_SECONDS",
            "timeout_ms": "INVENTORY_TIMEOUT_MS",
            "max_attempts": "INVENTORY_MAX_ATTEMPTS",
            "retry_delay_seconds": "INVENTORY_RETRY_DELAY_SECONDS",
            "request_timeout_seconds": "INVENTORY_REQUEST_TIMEOUT_SECONDS",
            "minimal_row_limit": "INVENTORY_MINIMAL_ROW_LIMIT",
            "network_check_seconds": "INVENTORY_NETWORK_CHECK_SECONDS",
        }
        for field_name, env_name in numeric.items():
            raw = env.get(env_name)
            if raw not in (None, ""):
                values[field_name] = raw

        return cls(**values)

    def require_service(self) -> None:
        """Raise ValueError when the HTTP data service is not configured."""
        if not self.service_url:
            raise ValueError("INVENTORY_SERVICE_URL environment variable is required")
        if not self.service_key:
            raise ValueError("INVENTORY_SERVICE_KEY environment variable is required")


def configure_logging(settings: LoaderSettings) -> None:
    """Apply the debug toggle to the package logger."""
    level = logging.DEBUG if settings.debug else logging.INFO
    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    logger.debug(f"Inventory loader logging level set to {logging.getLevelName(level)}")
