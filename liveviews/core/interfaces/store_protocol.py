"""
State Store Protocol - Interface for durable view state.

Implementations:
- InMemoryStateStore (liveviews.core.connectors.inmemory_store)
- RedisStateStore (liveviews.core.connectors.redis_store)
- SQLiteStateStore (liveviews.core.connectors.sqlite_store)
- FunctionStateStore (liveviews.core.connectors.function_store)
"""

from typing import Protocol, Dict, Any, runtime_checkable
from dataclasses import dataclass, asdict


@dataclass(frozen=True)
class PersistedRecord:
    """Durable record of one sent view, keyed by content id."""
    view_type_id: str
    serialized_state: str
    message_descriptor: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PersistedRecord':
        return cls(
            view_type_id=data["view_type_id"],
            serialized_state=data["serialized_state"],
            message_descriptor=data["message_descriptor"],
        )


@runtime_checkable
class StateStoreProtocol(Protocol):
    """Protocol for view state stores (DI interface)."""

    async def store_state(
        self,
        content_id: str,
        view_type_id: str,
        serialized_state: str,
        message_descriptor: str,
    ) -> None:
        """Write (or overwrite) the record for a content id."""
        ...

    async def get_state(self, content_id: str) -> PersistedRecord:
        """
        Read the record for a content id.

        Raises:
            StateNotFoundError: no record exists
            StoreUnavailableError: the backend failed
        """
        ...

    async def delete_state(self, content_id: str) -> None:
        """Remove the record for a content id (no-op if absent)."""
        ...
