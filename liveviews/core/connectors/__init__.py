"""
Connectors - View state store implementations.

- sqlite_store.py: SQLite-based (single process, survives restarts)
- redis_store.py: Redis-based (production)
- inmemory_store.py: In-memory (unit tests)
- function_store.py: Host-supplied store/get functions
"""

from .inmemory_store import InMemoryStateStore
from .sqlite_store import SQLiteStateStore
from .redis_store import RedisStateStore
from .function_store import FunctionStateStore

__all__ = [
    "InMemoryStateStore",
    "SQLiteStateStore",
    "RedisStateStore",
    "FunctionStateStore",
]
