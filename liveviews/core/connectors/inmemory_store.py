"""
InMemoryStateStore - Dict-based view state store.

No persistence - records are lost on restart. Used in unit tests and for
bots that do not need views to survive a restart.
"""

from typing import Dict

from ..errors import StateNotFoundError
from ..interfaces import PersistedRecord


class InMemoryStateStore:
    """
    In-memory state store.

    Implements StateStoreProtocol.
    """

    def __init__(self):
        self._records: Dict[str, PersistedRecord] = {}

    async def store_state(
        self,
        content_id: str,
        view_type_id: str,
        serialized_state: str,
        message_descriptor: str,
    ) -> None:
        self._records[content_id] = PersistedRecord(
            view_type_id=view_type_id,
            serialized_state=serialized_state,
            message_descriptor=message_descriptor,
        )

    async def get_state(self, content_id: str) -> PersistedRecord:
        record = self._records.get(content_id)
        if record is None:
            raise StateNotFoundError(
                "No stored state for content",
                data={"content_id": content_id},
            )
        return record

    async def delete_state(self, content_id: str) -> None:
        self._records.pop(content_id, None)

    def __contains__(self, content_id: str) -> bool:
        return content_id in self._records

    def __len__(self) -> int:
        return len(self._records)
