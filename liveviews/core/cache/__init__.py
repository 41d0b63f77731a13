"""
Cache - In-process view cache.

- expiring.py: ExpiringCache with sliding TTL and eviction hooks
"""

from .expiring import ExpiringCache, CacheEntry

__all__ = [
    "ExpiringCache",
    "CacheEntry",
]
