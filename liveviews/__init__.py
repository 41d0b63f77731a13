"""
liveviews - Interactive view runtime for chat bots.

Structure:
- core/      - Runtime infrastructure (config, errors, cache, state stores)
- common/    - Shared utilities (structured logging)
- modules/   - Views runtime and the Telegram transport
"""

__version__ = "0.3.0"

from .modules.views import (
    ViewRuntime,
    View,
    DeserializedState,
    MiddlewarePipeline,
    RenderedView,
    Embed,
    EmbedField,
    ActionRow,
    InteractableButton,
    LinkButton,
    StringSelect,
    SelectOption,
    InteractionContext,
    messages_match,
)
from .core.cache import ExpiringCache

__all__ = [
    "__version__",
    "ViewRuntime",
    "View",
    "DeserializedState",
    "MiddlewarePipeline",
    "RenderedView",
    "Embed",
    "EmbedField",
    "ActionRow",
    "InteractableButton",
    "LinkButton",
    "StringSelect",
    "SelectOption",
    "InteractionContext",
    "messages_match",
    "ExpiringCache",
]
