"""
Config - Runtime configuration.

- settings.py: Settings dataclass from environment
- store.py: State store factory
"""

from .settings import (
    Settings,
    StoreBackend,
    LogLevel,
    DEFAULT_STALE_VIEW_NOTICE,
    get_settings,
    reset_settings,
)
from .store import create_state_store

__all__ = [
    "Settings",
    "StoreBackend",
    "LogLevel",
    "DEFAULT_STALE_VIEW_NOTICE",
    "get_settings",
    "reset_settings",
    "create_state_store",
]
