"""
Views - Stateful interactive messages.

- pipeline.py: MiddlewarePipeline in front of component handlers
- components.py: Buttons, selects, action rows
- content.py: Embeds, rendered and sendable content, remote snapshots
- handles.py: Message handles and interaction context
- view.py: View base class
- differ.py: Remote content vs fresh render
- runtime.py: ViewRuntime
"""

from .pipeline import MiddlewarePipeline
from .components import (
    ActionRow,
    ButtonStyle,
    ComponentKind,
    ComponentSnapshot,
    Emoji,
    InteractableButton,
    LinkButton,
    SelectOption,
    StringSelect,
)
from .content import (
    Embed,
    EmbedAuthor,
    EmbedField,
    EmbedFooter,
    MessageSnapshot,
    RenderedView,
    SendableContent,
)
from .handles import (
    CustomId,
    DirectHandle,
    HandleKind,
    InteractionContext,
    InteractionReplyHandle,
    MessageHandle,
    dump_descriptor,
    load_descriptor,
    make_custom_id,
    parse_custom_id,
)
from .view import DeserializedState, HandlerArena, View, build_sendable
from .differ import embeds_match, messages_match
from .runtime import ViewRuntime

__all__ = [
    "MiddlewarePipeline",
    "ActionRow",
    "ButtonStyle",
    "ComponentKind",
    "ComponentSnapshot",
    "Emoji",
    "InteractableButton",
    "LinkButton",
    "SelectOption",
    "StringSelect",
    "Embed",
    "EmbedAuthor",
    "EmbedField",
    "EmbedFooter",
    "MessageSnapshot",
    "RenderedView",
    "SendableContent",
    "CustomId",
    "DirectHandle",
    "HandleKind",
    "InteractionContext",
    "InteractionReplyHandle",
    "MessageHandle",
    "dump_descriptor",
    "load_descriptor",
    "make_custom_id",
    "parse_custom_id",
    "DeserializedState",
    "HandlerArena",
    "View",
    "build_sendable",
    "embeds_match",
    "messages_match",
    "ViewRuntime",
]
