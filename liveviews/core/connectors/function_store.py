"""
FunctionStateStore - Adapts a pair of plain functions to StateStoreProtocol.

For hosts that already have their own persistence layer:

    store = FunctionStateStore(store_fn=db.save_view, get_fn=db.load_view)

``get_fn`` returns a PersistedRecord, a dict with the same keys, or None
when there is no record. Functions may be sync or async.
"""

import inspect
from typing import Any, Callable, Optional

from ..errors import ConfigurationError, StateNotFoundError, StoreUnavailableError
from ..interfaces import PersistedRecord


async def _call(fn: Callable, *args) -> Any:
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class FunctionStateStore:
    """State store backed by host-supplied callables."""

    def __init__(
        self,
        store_fn: Optional[Callable],
        get_fn: Optional[Callable],
        delete_fn: Optional[Callable] = None,
    ):
        if not callable(store_fn) or not callable(get_fn):
            raise ConfigurationError(
                "Both a store function and a get function are required",
                data={
                    "store_fn": callable(store_fn),
                    "get_fn": callable(get_fn),
                },
            )
        self._store_fn = store_fn
        self._get_fn = get_fn
        self._delete_fn = delete_fn

    async def store_state(
        self,
        content_id: str,
        view_type_id: str,
        serialized_state: str,
        message_descriptor: str,
    ) -> None:
        await _call(self._store_fn, content_id, view_type_id, serialized_state, message_descriptor)

    async def get_state(self, content_id: str) -> PersistedRecord:
        try:
            result = await _call(self._get_fn, content_id)
        except (StateNotFoundError, StoreUnavailableError):
            raise
        except Exception as e:
            raise StoreUnavailableError(
                "State lookup failed",
                data={"content_id": content_id},
                cause=e,
            ) from e

        if result is None:
            raise StateNotFoundError(
                "No stored state for content",
                data={"content_id": content_id},
            )
        if isinstance(result, PersistedRecord):
            return result
        return PersistedRecord.from_dict(result)

    async def delete_state(self, content_id: str) -> None:
        if self._delete_fn is not None:
            await _call(self._delete_fn, content_id)
