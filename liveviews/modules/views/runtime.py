"""
ViewRuntime - Owns live views and routes component events to them.

Views that received an event recently are kept in an ExpiringCache keyed
by content id. Every committed render is also written to the state store,
so a view that left the cache (or a process restart) is rebuilt on the
next event for its message:

    event -> resolve (cache, else rehydrate from store)
          -> refresh interaction token
          -> middleware pipeline -> handler -> set_state -> commit + persist

Rehydration compares the message the user clicked on with a fresh render.
If they differ, the message is brought up to date, the user is told to
try again, and the event is not replayed.
"""

import asyncio
import time
from typing import Dict, Iterable, Mapping, Optional, Type, Any

from liveviews.common.logging import get_logger
from liveviews.common.logging.correlation import set_view_id
from liveviews.core.cache import ExpiringCache
from liveviews.core.config import Settings, get_settings
from liveviews.core.errors import (
    ConfigurationError,
    HandlerNotFoundError,
    StateNotFoundError,
    ViewNotSentError,
    ViewRegistrationError,
)
from liveviews.core.interfaces import ConnectorProtocol, StateStoreProtocol
from liveviews.core.monitoring import (
    record_cache_hit,
    record_cache_miss,
    record_commit,
    record_event,
    record_rehydration,
    track_duration,
    view_commit_duration_seconds,
)

from .content import RenderedView, SendableContent
from .differ import messages_match
from .handles import (
    HandleKind,
    InteractionContext,
    MessageHandle,
    dump_descriptor,
    load_descriptor,
    parse_custom_id,
)
from .pipeline import MiddlewarePipeline, Interceptor, maybe_await
from .view import DEFAULT_VIEW_ID, View, build_sendable, render_view

logger = get_logger(__name__)


def _validate_collaborators(connector: Any, store: Any) -> None:
    if connector is None:
        raise ConfigurationError("A connector is required")
    if store is None:
        raise ConfigurationError("A state store is required")
    missing = [
        name for name in ("store_state", "get_state")
        if not callable(getattr(store, name, None))
    ]
    if missing:
        raise ConfigurationError(
            "State store is missing required operations",
            data={"store": type(store).__name__, "missing": missing},
        )


class ViewRuntime:
    """
    Registry, cache and dispatcher for views.

    Args:
        connector: Transport implementing ConnectorProtocol
        store: Durable store implementing StateStoreProtocol
        settings: Runtime settings (default: get_settings())
        cache_ttl: Override for settings.view_cache_ttl

    Raises:
        ConfigurationError: connector or store missing, or store incomplete
    """

    def __init__(
        self,
        connector: ConnectorProtocol,
        store: StateStoreProtocol,
        *,
        settings: Optional[Settings] = None,
        cache_ttl: Optional[float] = None,
    ):
        _validate_collaborators(connector, store)
        self.connector = connector
        self.store = store
        self.settings = settings or get_settings()

        self._views: Dict[str, Type[View]] = {}
        self.cache: ExpiringCache[str, View] = ExpiringCache(
            ttl=cache_ttl or self.settings.view_cache_ttl,
            on_evict=self._on_evict,
        )
        self.component_middleware: MiddlewarePipeline = MiddlewarePipeline()
        self._inflight: Dict[str, asyncio.Task] = {}

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, *view_classes: Type[View]) -> None:
        """
        Make view classes rehydratable by their view_type_id.

        Raises:
            ViewRegistrationError: not a View subclass, or id taken by another class
        """
        for view_cls in view_classes:
            if not (isinstance(view_cls, type) and issubclass(view_cls, View)):
                raise ViewRegistrationError(
                    "Only View subclasses can be registered",
                    data={"object": repr(view_cls)},
                )
            view_type_id = view_cls.view_type_id
            existing = self._views.get(view_type_id)
            if existing is not None and existing is not view_cls:
                raise ViewRegistrationError(
                    f"View type id '{view_type_id}' is already registered",
                    data={
                        "view_type_id": view_type_id,
                        "registered": existing.__name__,
                        "duplicate": view_cls.__name__,
                    },
                )
            if view_type_id == DEFAULT_VIEW_ID:
                logger.warning(
                    "View registered without its own view_type_id",
                    data={"view": view_cls.__name__},
                )
            self._views[view_type_id] = view_cls
            logger.debug("View registered", data={"view_type_id": view_type_id})

    def get_view_class(self, view_type_id: str) -> Optional[Type[View]]:
        return self._views.get(view_type_id)

    @property
    def view_types(self) -> Iterable[str]:
        return list(self._views)

    def use_middleware(self, interceptor: Interceptor) -> None:
        """Add an interceptor in front of every component handler."""
        self.component_middleware.push(interceptor)

    # =========================================================================
    # Sending
    # =========================================================================

    async def send_to_channel(self, view: View, channel_id: str) -> MessageHandle:
        """Send a new view as a message in a channel."""
        view.bind(self)
        rendered = await render_view(view)
        sendable = build_sendable(view, rendered)

        handle = await self.connector.send_to_channel(channel_id, sendable)
        record_commit("send")
        await self._adopt(view, handle)
        return handle

    async def reply_with_view(
        self,
        view: View,
        ctx: InteractionContext,
        ephemeral: bool = False,
    ) -> MessageHandle:
        """Send a new view as the response to an interaction."""
        view.bind(self)
        rendered = await render_view(view)
        sendable = build_sendable(view, rendered)
        sendable.ephemeral = ephemeral

        handle = await self.connector.reply_to_interaction(ctx, sendable, ephemeral=ephemeral)
        record_commit("reply")
        view.latest_interaction = ctx
        await self._adopt(view, handle)
        return handle

    async def _adopt(self, view: View, handle: MessageHandle) -> None:
        view.message = handle
        if view.view_type_id not in self._views:
            logger.warning(
                "Sent view type is not registered and cannot be rehydrated",
                data={"view_type_id": view.view_type_id},
            )
        await self.persist(view)
        self.cache.set(handle.content_id, view)
        logger.info(
            "View sent",
            data={"view_type_id": view.view_type_id, "content_id": handle.content_id},
        )
        await maybe_await(view.view_did_send())

    # =========================================================================
    # Updating
    # =========================================================================

    @track_duration(view_commit_duration_seconds)
    async def update_view(self, view: View, new_state: Mapping[str, Any]) -> None:
        """
        Replace the view's state, re-render and commit the new content.

        Connector and store errors propagate; nothing is retried.

        Raises:
            ViewNotSentError: the view has no message yet
        """
        if view.message is None:
            raise ViewNotSentError(
                "Cannot update a view before it has been sent",
                data={"view_type_id": view.view_type_id},
            )
        view.bind(self)
        view.state = new_state
        rendered = await render_view(view)
        sendable = build_sendable(view, rendered)

        await self._commit(view, sendable)
        await self.persist(view)
        self.cache.set(view.message.content_id, view)

    def _can_update_in_place(self, view: View, ctx: InteractionContext) -> bool:
        if ctx.responded or view.message is None:
            return False
        if ctx.content_id != view.message.content_id:
            return False
        return time.time() - ctx.issued_at < self.settings.interaction_token_ttl

    async def _commit(self, view: View, sendable: SendableContent) -> None:
        ctx = view.latest_interaction
        if ctx is not None and self._can_update_in_place(view, ctx):
            if await self.connector.try_update(ctx, sendable):
                record_commit("interaction_update")
                return

        handle = view.message
        match handle.kind:
            case HandleKind.INTERACTION_REPLY:
                if not handle.is_fresh(time.time(), self.settings.interaction_token_ttl):
                    logger.warning(
                        "Editing interaction reply with an expired token",
                        data={"content_id": handle.content_id},
                    )
                await self.connector.edit_interaction_reply(handle, sendable)
                record_commit("interaction_edit")
            case HandleKind.DIRECT:
                await self.connector.edit_message(handle, sendable)
                record_commit("direct_edit")

    async def transition(self, current: View, target: View) -> None:
        """Show ``target`` on the message ``current`` was rendered to."""
        if current.message is None:
            raise ViewNotSentError(
                "Cannot transition from a view that has not been sent",
                data={"view_type_id": current.view_type_id},
            )
        target.message = current.message
        target.latest_interaction = current.latest_interaction
        target.bind(self)
        # Continue numbering so controls of the old render stay invalid
        target.handlers.reset(current.handlers.generation)

        await self.update_view(target, target.state)
        logger.info(
            "View transitioned",
            data={
                "content_id": target.message.content_id,
                "from": current.view_type_id,
                "to": target.view_type_id,
            },
        )
        await maybe_await(target.view_did_send())

    async def persist(self, view: View) -> None:
        """Write the view's state and message descriptor to the store."""
        if view.message is None:
            raise ViewNotSentError(
                "Cannot persist a view before it has been sent",
                data={"view_type_id": view.view_type_id},
            )
        await self.store.store_state(
            view.message.content_id,
            view.view_type_id,
            view.serialize_state(),
            dump_descriptor(view.message),
        )

    # =========================================================================
    # Lookup and rehydration
    # =========================================================================

    async def resolve(self, content_id: str, ctx: Optional[InteractionContext] = None) -> Optional[View]:
        """
        Return the live view for a message, rehydrating it on a cache miss.

        Concurrent misses for the same message share one rehydration, which
        runs the drift check against the first caller's context. When that
        check found the message out of date, every other caller gets the
        notice too and its event is dropped as well.
        """
        view = self.cache.get(content_id)
        if view is not None:
            record_cache_hit()
            return view

        record_cache_miss()
        task = self._inflight.get(content_id)
        joined = task is not None
        if task is None:
            task = asyncio.get_running_loop().create_task(self.rehydrate(content_id, ctx))
            self._inflight[content_id] = task
            task.add_done_callback(lambda done: self._forget_inflight(content_id, done))

        view = await asyncio.shield(task)
        if view is None and joined and ctx is not None and self.cache.has(content_id):
            # Only the stale path caches a view and still returns None
            await self._notify_stale(ctx)
        return view

    def _forget_inflight(self, content_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(content_id) is task:
            del self._inflight[content_id]

    async def rehydrate(self, content_id: str, ctx: Optional[InteractionContext] = None) -> Optional[View]:
        """
        Rebuild a view from the state store.

        Returns None when there is nothing to rebuild (no record, unknown
        view type, obsolete state) or when the message the user acted on
        was out of date and had to be refreshed.
        """
        try:
            record = await self.store.get_state(content_id)
        except StateNotFoundError:
            record_rehydration("missing")
            logger.debug("No stored view for content", data={"content_id": content_id})
            return None

        view_cls = self._views.get(record.view_type_id)
        if view_cls is None:
            record_rehydration("unknown_type")
            logger.warning(
                "Stored view has an unregistered type",
                data={"content_id": content_id, "view_type_id": record.view_type_id},
            )
            return None

        handle = load_descriptor(record.message_descriptor)
        restored = await maybe_await(view_cls.deserialize_state(record.serialized_state, ctx))
        if restored is None:
            await self._discard_obsolete(content_id, handle, record.view_type_id)
            return None

        view = view_cls(restored.props, runtime=self)
        view.state = restored.state
        view.message = handle
        shown = self._shown_generation(record.view_type_id, ctx)

        rendered = await render_view(view)
        if ctx is not None and ctx.snapshot is not None and not messages_match(ctx.snapshot, rendered):
            await self._refresh_stale(view, rendered, ctx, None if shown is None else shown + 1)
            return None

        build_sendable(view, rendered, generation=shown)
        self.cache.set(content_id, view)
        record_rehydration("ok")
        logger.info(
            "View rehydrated",
            data={"content_id": content_id, "view_type_id": view.view_type_id},
        )
        return view

    async def _discard_obsolete(self, content_id: str, handle: MessageHandle, view_type_id: str) -> None:
        record_rehydration("obsolete")
        logger.info(
            "Discarding view with obsolete state",
            data={"content_id": content_id, "view_type_id": view_type_id},
        )
        delete_state = getattr(self.store, "delete_state", None)
        if callable(delete_state):
            await delete_state(content_id)
        await self.connector.delete_message(handle)

    @staticmethod
    def _shown_generation(view_type_id: str, ctx: Optional[InteractionContext]) -> Optional[int]:
        """
        Render generation of the message the user acted on.

        A rebuilt view reuses it, so controls of the message that is
        actually shown keep working after a restart or an eviction.
        """
        parsed = parse_custom_id(ctx.custom_id) if ctx is not None else None
        if parsed is None or parsed.view_type_id != view_type_id:
            return None
        return parsed.generation

    async def _notify_stale(self, ctx: InteractionContext) -> None:
        if not ctx.acknowledged:
            await self.connector.send_notice(ctx, self.settings.stale_view_notice)

    async def _refresh_stale(
        self,
        view: View,
        rendered: RenderedView,
        ctx: InteractionContext,
        generation: Optional[int] = None,
    ) -> None:
        record_rehydration("stale")
        record_event("stale")
        logger.info(
            "Remote message is out of date, refreshing",
            data={"content_id": view.message.content_id, "view_type_id": view.view_type_id},
        )
        self._refresh_token(view, ctx)
        view.latest_interaction = ctx

        await self._commit(view, build_sendable(view, rendered, generation=generation))
        await self.persist(view)
        self.cache.set(view.message.content_id, view)
        await self._notify_stale(ctx)

    # =========================================================================
    # Events
    # =========================================================================

    def _refresh_token(self, view: View, ctx: InteractionContext) -> bool:
        """Swap in the event's token if it is newer than the stored one."""
        handle = view.message
        if handle is None or handle.kind != HandleKind.INTERACTION_REPLY:
            return False
        token = self.connector.get_interaction_token(ctx)
        if not token or token == handle.token:
            return False
        if ctx.issued_at < handle.token_issued_at:
            logger.debug(
                "Ignoring token older than the stored one",
                data={"content_id": handle.content_id},
            )
            return False
        view.message = handle.refreshed(token, ctx.issued_at)
        return True

    async def handle_event(
        self,
        content_id: str,
        control_id: int,
        ctx: InteractionContext,
        *,
        view_type_id: Optional[str] = None,
        generation: Optional[int] = None,
    ) -> None:
        """
        Run the handler for ``control_id`` on the view shown in ``content_id``.

        Events for messages without a live or stored view are dropped.
        ``view_type_id`` and ``generation`` come from the custom id; when
        given they must name the view and render currently shown.

        Raises:
            HandlerNotFoundError: control does not belong to the current render
        """
        set_view_id(content_id)
        view = await self.resolve(content_id, ctx)
        if view is None:
            record_event("dropped")
            logger.debug(
                "Dropping event without a view",
                data={"content_id": content_id, "control_id": control_id},
            )
            return

        if self._refresh_token(view, ctx):
            await self.persist(view)
        view.latest_interaction = ctx

        if view_type_id is not None and view_type_id != view.view_type_id:
            raise HandlerNotFoundError(
                f"Control of view {view_type_id!r} pressed while {view.view_type_id!r} is shown",
                data={
                    "content_id": content_id,
                    "handler_id": control_id,
                    "view_type_id": view_type_id,
                    "current_view_type_id": view.view_type_id,
                },
            )
        handler = view.handlers.get(control_id, generation)
        await self.component_middleware.execute(handler, ctx)
        record_event("handled")

    async def dispatch(self, ctx: InteractionContext) -> bool:
        """
        Route an interaction to its view.

        Returns:
            False if the custom id was not issued by a view
        """
        parsed = parse_custom_id(ctx.custom_id)
        if parsed is None:
            return False
        await self.handle_event(
            ctx.content_id,
            parsed.handler_id,
            ctx,
            view_type_id=parsed.view_type_id,
            generation=parsed.generation,
        )
        return True

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def _on_evict(self, view: View) -> None:
        await maybe_await(view.view_will_leave_cache())

    async def aclose(self) -> None:
        """Persist cached views and evict them, running their hooks."""
        for content_id in self.cache.keys():
            view = self.cache.get(content_id)
            if view is None:
                continue
            try:
                await self.persist(view)
            except Exception:
                logger.error(
                    "Failed to persist view on shutdown",
                    data={"content_id": content_id},
                    exc_info=True,
                )
        if self._inflight:
            await asyncio.gather(*list(self._inflight.values()), return_exceptions=True)
        await self.cache.drain()
        logger.info("View runtime closed")
