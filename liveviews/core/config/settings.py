"""
Settings - Runtime configuration using dataclasses.

Environment variables:
- VIEW_CACHE_TTL: Seconds a view stays in memory without interaction
- INTERACTION_TOKEN_TTL: Seconds an interaction token can be used for edits
- STATE_STORE_BACKEND: memory, redis, sqlite
- REDIS_URL: Redis connection URL
- STATE_DB_PATH: SQLite database path
- STALE_VIEW_NOTICE: Text shown when an out-of-date view was refreshed
- LOG_LEVEL: DEBUG, INFO, WARNING, ERROR
- LOG_JSON: true/false
- TELEGRAM_BOT_TOKEN: Bot token
"""

import os
from enum import Enum
from typing import Optional
from dataclasses import dataclass, field


class StoreBackend(str, Enum):
    """State store backend options."""
    MEMORY = "memory"
    REDIS = "redis"
    SQLITE = "sqlite"


class LogLevel(str, Enum):
    """Log level options."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


DEFAULT_STALE_VIEW_NOTICE = (
    "This view was out of date and has been refreshed. Please try again."
)


@dataclass
class Settings:
    """Runtime settings from environment."""

    # View cache
    view_cache_ttl: float = field(
        default_factory=lambda: float(os.getenv("VIEW_CACHE_TTL", "30"))
    )
    interaction_token_ttl: float = field(
        default_factory=lambda: float(os.getenv("INTERACTION_TOKEN_TTL", "900"))
    )
    stale_view_notice: str = field(
        default_factory=lambda: os.getenv("STALE_VIEW_NOTICE", DEFAULT_STALE_VIEW_NOTICE)
    )

    # State store
    store_backend: StoreBackend = field(
        default_factory=lambda: StoreBackend(os.getenv("STATE_STORE_BACKEND", "sqlite"))
    )
    redis_url: Optional[str] = field(
        default_factory=lambda: os.getenv("REDIS_URL")
    )
    db_path: str = field(
        default_factory=lambda: os.getenv("STATE_DB_PATH", "data/views.db")
    )

    # Logging
    log_level: LogLevel = field(
        default_factory=lambda: LogLevel(os.getenv("LOG_LEVEL", "INFO"))
    )
    log_json: bool = field(
        default_factory=lambda: os.getenv("LOG_JSON", "false").lower() == "true"
    )

    # Telegram
    telegram_bot_token: Optional[str] = field(
        default_factory=lambda: os.getenv("TELEGRAM_BOT_TOKEN")
    )

    def __post_init__(self):
        if self.view_cache_ttl <= 0:
            raise ValueError(f"view_cache_ttl must be positive, got {self.view_cache_ttl}")
        if self.interaction_token_ttl <= 0:
            raise ValueError(
                f"interaction_token_ttl must be positive, got {self.interaction_token_ttl}"
            )


# Singleton instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings singleton."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached settings (tests, config reload)."""
    global _settings
    _settings = None
