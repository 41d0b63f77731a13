"""
Content handles and inbound interaction context.

A view's ``message`` is one of two handle kinds:

- DirectHandle: channel + message id, editable indefinitely.
- InteractionReplyHandle: message reachable only through an interaction
  token; the token expires, and each new interaction on the same message
  brings a fresher one.

Handles are persisted as a JSON "message descriptor" next to the view state.
"""

import json
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, List, NamedTuple, Optional, Union

from .content import MessageSnapshot

CUSTOM_ID_PREFIX = "~"
CUSTOM_ID_SEPARATOR = ";"


class HandleKind(str, Enum):
    DIRECT = "direct"
    INTERACTION_REPLY = "interaction_reply"


@dataclass(frozen=True)
class DirectHandle:
    channel_id: str
    message_id: str
    kind: HandleKind = field(default=HandleKind.DIRECT, init=False)

    @property
    def content_id(self) -> str:
        return f"{self.channel_id}:{self.message_id}"


@dataclass(frozen=True)
class InteractionReplyHandle:
    target: str
    token: str
    message_id: str
    token_issued_at: float
    kind: HandleKind = field(default=HandleKind.INTERACTION_REPLY, init=False)

    @property
    def content_id(self) -> str:
        return self.message_id

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.token_issued_at < ttl

    def refreshed(self, token: str, issued_at: float) -> 'InteractionReplyHandle':
        """Same message, newer token."""
        return replace(self, token=token, token_issued_at=issued_at)


MessageHandle = Union[DirectHandle, InteractionReplyHandle]


def dump_descriptor(handle: MessageHandle) -> str:
    """Serialize a handle to its message descriptor."""
    match handle.kind:
        case HandleKind.DIRECT:
            data = {
                "kind": handle.kind.value,
                "channel_id": handle.channel_id,
                "message_id": handle.message_id,
            }
        case HandleKind.INTERACTION_REPLY:
            data = {
                "kind": handle.kind.value,
                "target": handle.target,
                "token": handle.token,
                "message_id": handle.message_id,
                "token_issued_at": handle.token_issued_at,
            }
        case _:
            raise ValueError(f"Unknown handle kind: {handle.kind!r}")
    return json.dumps(data, sort_keys=True)


def load_descriptor(descriptor: str) -> MessageHandle:
    """Rebuild a handle from its message descriptor."""
    data = json.loads(descriptor)
    match data.get("kind"):
        case HandleKind.DIRECT.value:
            return DirectHandle(channel_id=data["channel_id"], message_id=data["message_id"])
        case HandleKind.INTERACTION_REPLY.value:
            return InteractionReplyHandle(
                target=data["target"],
                token=data["token"],
                message_id=data["message_id"],
                token_issued_at=float(data["token_issued_at"]),
            )
        case other:
            raise ValueError(f"Unknown message descriptor kind: {other!r}")


class CustomId(NamedTuple):
    """Parsed ``~<view_type_id>;<generation>;<handler_id>``."""
    view_type_id: str
    generation: int
    handler_id: int


def make_custom_id(view_type_id: str, generation: int, handler_id: int) -> str:
    return CUSTOM_ID_SEPARATOR.join(
        (f"{CUSTOM_ID_PREFIX}{view_type_id}", str(generation), str(handler_id))
    )


def parse_custom_id(custom_id: str) -> Optional[CustomId]:
    """
    Split a custom id issued by the runtime.

    The view type may itself contain the separator; the two numeric
    parts are taken from the right. Returns None for foreign ids.
    """
    if not custom_id or not custom_id.startswith(CUSTOM_ID_PREFIX):
        return None
    parts = custom_id[len(CUSTOM_ID_PREFIX):].rsplit(CUSTOM_ID_SEPARATOR, 2)
    if len(parts) != 3:
        return None
    view_type_id, generation, handler_id = parts
    if not view_type_id or not generation.isdigit() or not handler_id.isdigit():
        return None
    return CustomId(view_type_id, int(generation), int(handler_id))


@dataclass
class InteractionContext:
    """
    Transport-neutral component interaction.

    ``snapshot`` is the message content the user clicked on, when the
    transport delivers it; ``raw`` keeps the transport's own object.
    ``responded`` is set once the message was updated as the interaction
    response, ``acknowledged`` once the user was shown a notice.
    """
    content_id: str
    custom_id: str
    user_id: Optional[int] = None
    token: Optional[str] = None
    issued_at: float = field(default_factory=time.time)
    values: List[str] = field(default_factory=list)
    snapshot: Optional[MessageSnapshot] = None
    channel_id: Optional[str] = None
    responded: bool = False
    acknowledged: bool = False
    raw: Any = None

    @property
    def control_id(self) -> Optional[int]:
        parsed = parse_custom_id(self.custom_id)
        return parsed.handler_id if parsed else None
