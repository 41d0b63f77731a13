"""
RedisStateStore - Redis-based view state store for production.

One JSON value per content id under ``<prefix><content_id>``.
"""

import json
from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from liveviews.common.logging import get_logger
from ..errors import StateNotFoundError, StoreUnavailableError
from ..interfaces import PersistedRecord

logger = get_logger(__name__)


class RedisStateStore:
    """
    Redis-based state store.

    Implements StateStoreProtocol. Backend failures surface as
    StoreUnavailableError so callers can tell them from a missing record.
    """

    def __init__(self, client: aioredis.Redis, prefix: str = "liveviews:", ttl: Optional[int] = None):
        """
        Args:
            client: redis.asyncio client (decode_responses=True)
            prefix: Key prefix for namespacing
            ttl: Optional record expiry in seconds (None keeps records forever)
        """
        self.client = client
        self.prefix = prefix
        self.ttl = ttl

    @classmethod
    def from_url(cls, url: str, prefix: str = "liveviews:", ttl: Optional[int] = None) -> 'RedisStateStore':
        """Create a store with its own client (redis://host:port/db)."""
        client = aioredis.from_url(url, decode_responses=True)
        logger.info("Redis state store initialized", data={"prefix": prefix})
        return cls(client, prefix=prefix, ttl=ttl)

    def _key(self, content_id: str) -> str:
        return f"{self.prefix}{content_id}"

    async def store_state(
        self,
        content_id: str,
        view_type_id: str,
        serialized_state: str,
        message_descriptor: str,
    ) -> None:
        record = PersistedRecord(view_type_id, serialized_state, message_descriptor)
        try:
            await self.client.set(self._key(content_id), json.dumps(record.to_dict()), ex=self.ttl)
        except RedisError as e:
            raise StoreUnavailableError(
                "Redis write failed",
                data={"content_id": content_id},
                cause=e,
            ) from e

    async def get_state(self, content_id: str) -> PersistedRecord:
        try:
            raw = await self.client.get(self._key(content_id))
        except RedisError as e:
            raise StoreUnavailableError(
                "Redis read failed",
                data={"content_id": content_id},
                cause=e,
            ) from e

        if raw is None:
            raise StateNotFoundError(
                "No stored state for content",
                data={"content_id": content_id},
            )
        return PersistedRecord.from_dict(json.loads(raw))

    async def delete_state(self, content_id: str) -> None:
        try:
            await self.client.delete(self._key(content_id))
        except RedisError as e:
            raise StoreUnavailableError(
                "Redis delete failed",
                data={"content_id": content_id},
                cause=e,
            ) from e

    async def ping(self) -> bool:
        """Check Redis connection."""
        try:
            return bool(await self.client.ping())
        except RedisError:
            return False

    async def close(self) -> None:
        await self.client.aclose()
