"""
View - Base class for stateful interactive messages.

A view renders its props and state into a RenderedView. Every render
rebuilds the handler table: controls are numbered row by row, and the
numbers end up in the custom ids the remote side sends back with events.

Example:
    class CounterView(View):
        view_type_id = "counter"

        def __init__(self, props=None, *, runtime=None):
            super().__init__(props, runtime=runtime)
            self.state = {"count": 0}

        async def increment(self, ctx):
            await self.set_state({"count": self.state["count"] + 1})

        def render(self):
            return RenderedView(
                content=f"Count: {self.state['count']}",
                components=[ActionRow(InteractableButton(self.increment, label="+1"))],
            )

        def serialize_state(self):
            return json.dumps(self.state)

        @classmethod
        def deserialize_state(cls, serialized, ctx):
            return DeserializedState(props={}, state=json.loads(serialized))
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Dict, Mapping, Optional, Union

from liveviews.core.errors import HandlerNotFoundError, ViewNotBoundError, ViewNotSentError

from .components import Handler, normalized_rows
from .content import RenderedView, SendableContent
from .handles import InteractionContext, MessageHandle, make_custom_id
from .pipeline import maybe_await

if TYPE_CHECKING:
    from .runtime import ViewRuntime

DEFAULT_VIEW_ID = "DEFAULT_VIEW_ID"

StateUpdate = Union[
    Mapping[str, Any],
    Callable[[Mapping[str, Any], Mapping[str, Any]], Optional[Mapping[str, Any]]],
    None,
]


@dataclass
class DeserializedState:
    """Props and state rebuilt from a persisted record."""
    props: Dict[str, Any] = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)


class HandlerArena:
    """
    Handlers of the current render, addressed by small integer ids.

    Each reset() starts a new generation: ids restart at 0 and handlers of
    the previous render are gone. Custom ids carry the generation they were
    issued in, so a press on a superseded render is rejected even when the
    same slot is taken again.
    """

    def __init__(self):
        self.generation = 0
        self._handlers: Dict[int, Handler] = {}

    def reset(self, generation: Optional[int] = None) -> None:
        """Start a new render; ``generation`` pins its number instead of advancing."""
        self.generation = self.generation + 1 if generation is None else generation
        self._handlers = {}

    def register(self, handler: Handler) -> int:
        handler_id = len(self._handlers)
        self._handlers[handler_id] = handler
        return handler_id

    def get(self, handler_id: int, generation: Optional[int] = None) -> Handler:
        """
        Raises:
            HandlerNotFoundError: unknown id, or an id from another generation
        """
        handler = self._handlers.get(handler_id)
        if handler is None or (generation is not None and generation != self.generation):
            raise HandlerNotFoundError(
                f"No handler {handler_id} in the current render",
                data={
                    "handler_id": handler_id,
                    "generation": generation,
                    "current_generation": self.generation,
                    "registered": len(self._handlers),
                },
            )
        return handler

    def __len__(self) -> int:
        return len(self._handlers)


class View(ABC):
    """Base class for views managed by a ViewRuntime."""

    view_type_id: str = DEFAULT_VIEW_ID

    def __init__(self, props: Optional[Mapping[str, Any]] = None, *, runtime: Optional['ViewRuntime'] = None):
        self._props: Mapping[str, Any] = MappingProxyType(dict(props or {}))
        self.state: Mapping[str, Any] = {}
        self.message: Optional[MessageHandle] = None
        self.latest_interaction: Optional[InteractionContext] = None
        self.handlers = HandlerArena()
        self._runtime: Optional['ViewRuntime'] = runtime

    def __repr__(self) -> str:
        content_id = self.message.content_id if self.message is not None else None
        return f"<{self.__class__.__name__} {self.view_type_id} content_id={content_id}>"

    @property
    def props(self) -> Mapping[str, Any]:
        return self._props

    @property
    def runtime(self) -> 'ViewRuntime':
        if self._runtime is None:
            raise ViewNotBoundError(
                "View is not bound to a runtime",
                data={"view_type_id": self.view_type_id},
            )
        return self._runtime

    def bind(self, runtime: 'ViewRuntime') -> None:
        self._runtime = runtime

    @property
    def is_bound(self) -> bool:
        return self._runtime is not None

    # --- to implement -------------------------------------------------------

    @abstractmethod
    def render(self) -> RenderedView:
        """Describe the message for the current props and state (may be async)."""

    @abstractmethod
    def serialize_state(self) -> str:
        """Encode state (and whatever props are needed) for the state store."""

    @classmethod
    @abstractmethod
    def deserialize_state(cls, serialized: str, ctx: Optional[InteractionContext]) -> Optional[DeserializedState]:
        """
        Rebuild props and state from serialize_state() output.

        Return None when the record was written by an incompatible version
        of the view; the runtime then deletes the record and the message.
        """

    # --- optional hooks -----------------------------------------------------

    def view_did_send(self) -> Any:
        """Called after the view was first committed or transitioned to."""

    def view_will_leave_cache(self) -> Any:
        """Called when the view is evicted from the in-memory cache; runs in the background."""

    # --- state --------------------------------------------------------------

    async def set_state(self, update: StateUpdate) -> None:
        """
        Merge ``update`` into the state and re-render the remote message.

        ``update`` is a partial mapping or a function ``(state, props)``
        returning one; None means nothing changes.

        Raises:
            ViewNotSentError: the view has no message yet
        """
        if self.message is None:
            raise ViewNotSentError(
                "set_state() called before the view was sent",
                data={"view_type_id": self.view_type_id},
            )
        partial = update(self.state, self.props) if callable(update) else update
        if partial is None:
            return
        await self.runtime.update_view(self, {**self.state, **partial})

    # --- sending ------------------------------------------------------------

    async def send_to_channel(self, channel_id: str) -> MessageHandle:
        return await self.runtime.send_to_channel(self, channel_id)

    async def send_as_reply(self, ctx: InteractionContext, ephemeral: bool = False) -> MessageHandle:
        return await self.runtime.reply_with_view(self, ctx, ephemeral=ephemeral)

    async def transition_to(self, other: 'View') -> None:
        """Replace this view by ``other`` on the same message."""
        await self.runtime.transition(self, other)


async def render_view(view: View) -> RenderedView:
    """Render a view whether its render() is sync or async."""
    return await maybe_await(view.render())


def build_sendable(view: View, rendered: RenderedView, generation: Optional[int] = None) -> SendableContent:
    """
    Turn a render into committable content.

    Starts a new handler generation (or the pinned ``generation``) and
    registers interactive controls in row-major order; view type,
    generation and handler id go into the custom ids.

    Raises:
        ViewNotBoundError: the view has no runtime to receive its events
    """
    if not view.is_bound:
        raise ViewNotBoundError(
            "Cannot render an unbound view",
            data={"view_type_id": view.view_type_id},
        )

    arena = view.handlers
    arena.reset(generation)
    rows = []
    for children in normalized_rows(rendered.components):
        row = []
        for control in children:
            if control.is_interactive:
                handler_id = arena.register(control.handler)
                row.append(control.to_payload(make_custom_id(view.view_type_id, arena.generation, handler_id)))
            else:
                row.append(control.to_payload())
        rows.append(row)

    return SendableContent(
        content=rendered.content,
        embeds=list(rendered.embeds),
        components=rows,
    )
