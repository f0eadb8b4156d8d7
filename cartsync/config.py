"""Environment-driven configuration."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT_SECONDS = 15.0
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///cartsync.db"

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def _positive_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


@dataclass(slots=True)
class Settings:
    api_url: str = DEFAULT_API_URL
    request_timeout: float = DEFAULT_TIMEOUT_SECONDS
    order_timeout: float = DEFAULT_TIMEOUT_SECONDS
    database_url: str = DEFAULT_DATABASE_URL
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Load environment variables (and a .env file, if any) into typed settings."""
    load_dotenv()

    return Settings(
        api_url=os.getenv("CARTSYNC_API_URL", DEFAULT_API_URL).rstrip("/"),
        request_timeout=_positive_float("CARTSYNC_REQUEST_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        order_timeout=_positive_float("CARTSYNC_ORDER_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
        database_url=os.getenv("CARTSYNC_DATABASE_URL", DEFAULT_DATABASE_URL),
        log_level=os.getenv("CARTSYNC_LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str | int = "INFO") -> None:
    """Basic logging setup for applications and examples."""
    logging.basicConfig(level=level, format=LOG_FORMAT)


__all__ = (
    "Settings",
    "load_settings",
    "configure_logging",
    "DEFAULT_API_URL",
    "DEFAULT_TIMEOUT_SECONDS",
    "DEFAULT_DATABASE_URL",
)
