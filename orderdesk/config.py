# config.py

"""Application configuration utilities.

Values are primarily loaded from ``config.json`` and may be overridden by
environment variables. The :func:`get_settings` helper merges the two sources
and caches the result.
"""

from __future__ import annotations

import json
import os
from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class StoreBackend(str, Enum):
    """Select where order documents live.

    ``MEMORY`` keeps everything in-process and is meant for local demos and
    tests; ``REDIS`` stores JSON documents and fans out changes over pub/sub.
    """

    MEMORY = "memory"
    REDIS = "redis"


class OrdersWindow(str, Enum):
    """Time window for the live orders subscription."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    ALL = "all"


class Settings(BaseSettings):
    """Application settings merged from JSON and environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    redis_url: str = "redis://localhost:6379/0"
    store_backend: StoreBackend = StoreBackend.MEMORY
    notify_provider: str = "log"
    refund_provider: str = "log"
    notify_url: str | None = None
    refund_url: str | None = None
    http_timeout_secs: float = 5.0
    orders_window: OrdersWindow = OrdersWindow.ALL
    fallback_actor_label: str = "Admin"
    session_cancel_reason: str = "Order cancelled from the admin panel"
    session_delete_reason: str = "Order deleted from the admin panel"
    notice_ttl_secs: float = 3.0
    outbox_max_attempts: int = 5
    log_level: str = "INFO"
    error_dsn: str | None = None


# Cached singleton to avoid repeated file reads
@lru_cache
def get_settings() -> Settings:
    """Return merged settings with environment variable precedence.

    The configuration is read from ``config.json`` located alongside this file
    and fed into :class:`Settings`. Environment variables override any values
    from the JSON file. The result is cached to prevent repeated disk reads.
    """

    config_path = Path(__file__).with_name("config.json")
    data = json.loads(config_path.read_text()) if config_path.exists() else {}
    env_override = {
        k.lower(): v
        for k, v in os.environ.items()
        if k.lower() in Settings.model_fields
    }
    merged = {**data, **env_override}
    return Settings(**merged)
