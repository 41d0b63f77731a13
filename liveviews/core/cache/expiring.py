"""
ExpiringCache - In-process cache with sliding expiration.

Every entry gets its own timer on the running asyncio loop. Reading an
entry with get() restarts the timer, so views that keep receiving events
stay in memory and idle ones are evicted after ``ttl`` seconds.

Eviction (timer or delete()) invokes the eviction hook while the entry is
still present and removes it afterwards. A coroutine hook runs in a separate
task, so delete() never waits for it. Hook failures are logged, never raised.
"""

import asyncio
import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Generic, Hashable, List, Optional, Set, TypeVar, Union

from liveviews.common.logging import get_logger
from liveviews.core.monitoring import record_eviction, view_cache_entries

logger = get_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

EvictHook = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass(eq=False)
class CacheEntry(Generic[V]):
    """Cached value plus the timer that will evict it."""
    value: V
    timer: Optional[asyncio.TimerHandle] = None
    evicting: bool = False


class ExpiringCache(Generic[K, V]):
    """
    Keyed store with per-entry sliding TTL and an async eviction hook.

    No size bound: memory is limited only by the TTL. Must be used from
    inside a running event loop.
    """

    def __init__(self, ttl: float, on_evict: Optional[EvictHook] = None):
        """
        Args:
            ttl: Seconds an entry lives after its last set()/get()
            on_evict: Called with the value before the entry is removed
        """
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self._ttl = float(ttl)
        self._on_evict = on_evict
        self._entries: Dict[K, CacheEntry[V]] = {}
        self._pending_hooks: Set[asyncio.Task] = set()

    @property
    def ttl(self) -> float:
        return self._ttl

    def _start_timer(self, key: K, entry: CacheEntry[V]) -> None:
        loop = asyncio.get_running_loop()
        # The timer captures its own entry; a replaced entry's timer is a no-op.
        entry.timer = loop.call_later(self._ttl, self._expire, key, entry)

    def set(self, key: K, value: V) -> None:
        """Insert or replace a value and restart its TTL."""
        previous = self._entries.get(key)
        if previous is not None and previous.timer is not None:
            previous.timer.cancel()

        entry = CacheEntry(value=value)
        self._entries[key] = entry
        self._start_timer(key, entry)
        view_cache_entries.set(len(self._entries))

    def get(self, key: K, default: Optional[V] = None) -> Optional[V]:
        """Return the value and restart its TTL, or default if absent."""
        entry = self._entries.get(key)
        if entry is None or entry.evicting:
            return default

        if entry.timer is not None:
            entry.timer.cancel()
        self._start_timer(key, entry)
        return entry.value

    def has(self, key: K) -> bool:
        """Check presence without touching the TTL."""
        entry = self._entries.get(key)
        return entry is not None and not entry.evicting

    __contains__ = has

    def __len__(self) -> int:
        return len(self._entries)

    def keys(self) -> List[K]:
        return list(self._entries)

    def delete(self, key: K) -> bool:
        """
        Run the eviction hook and remove the entry.

        Returns:
            True if an entry was removed
        """
        entry = self._entries.get(key)
        if entry is None or entry.evicting:
            return False
        self._remove(key, entry, reason="deleted")
        return True

    def _expire(self, key: K, entry: CacheEntry[V]) -> None:
        if self._entries.get(key) is not entry:
            return
        self._remove(key, entry, reason="expired")

    def _remove(self, key: K, entry: CacheEntry[V], reason: str) -> None:
        entry.evicting = True
        if entry.timer is not None:
            entry.timer.cancel()
            entry.timer = None

        record_eviction(reason)
        logger.debug("Cache entry evicted", data={"key": str(key), "reason": reason})

        if self._on_evict is not None:
            self._fire_hook(key, entry.value)

        # The hook may have stored a new entry under the same key
        if self._entries.get(key) is entry:
            del self._entries[key]
        view_cache_entries.set(len(self._entries))

    def _fire_hook(self, key: K, value: V) -> None:
        try:
            result = self._on_evict(value)
        except Exception:
            logger.error("Eviction hook failed", data={"key": str(key)}, exc_info=True)
            return
        if not inspect.isawaitable(result):
            return

        task = asyncio.get_running_loop().create_task(self._await_hook(key, result))
        self._pending_hooks.add(task)
        task.add_done_callback(self._pending_hooks.discard)

    async def _await_hook(self, key: K, pending: Awaitable[None]) -> None:
        try:
            await pending
        except Exception:
            logger.error(
                "Eviction hook failed",
                data={"key": str(key)},
                exc_info=True,
            )

    async def drain(self) -> None:
        """Evict every entry and wait for all eviction hooks to finish."""
        for key in list(self._entries):
            self.delete(key)
        if self._pending_hooks:
            await asyncio.gather(*list(self._pending_hooks), return_exceptions=True)
