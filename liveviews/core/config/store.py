"""
State Store Factory - Create the durable view-state store from configuration.
"""

from typing import Optional

from ..errors import ConfigurationError
from ..interfaces import StateStoreProtocol
from .settings import StoreBackend, get_settings


def create_state_store(
    backend: Optional[StoreBackend] = None,
    **kwargs
) -> StateStoreProtocol:
    """
    Factory for state stores.

    Args:
        backend: Store backend (default from settings)
        **kwargs: Backend-specific arguments (url, db_path, prefix)

    Example:
        store = create_state_store()  # Uses settings
        store = create_state_store(StoreBackend.REDIS, url="redis://...")
    """
    settings = get_settings()
    backend = backend or settings.store_backend

    if backend == StoreBackend.SQLITE:
        from ..connectors.sqlite_store import SQLiteStateStore
        return SQLiteStateStore(db_path=kwargs.get('db_path', settings.db_path))

    elif backend == StoreBackend.REDIS:
        from ..connectors.redis_store import RedisStateStore
        url = kwargs.get('url', settings.redis_url)
        if not url:
            raise ConfigurationError(
                "Redis URL required for redis backend",
                data={"backend": backend.value},
            )
        return RedisStateStore.from_url(url, prefix=kwargs.get('prefix', "liveviews:"))

    elif backend == StoreBackend.MEMORY:
        from ..connectors.inmemory_store import InMemoryStateStore
        return InMemoryStateStore()

    raise ConfigurationError(f"Unknown state store backend: {backend}")
