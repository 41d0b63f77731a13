"""Tests for ViewRuntime: sending, updates, rehydration and dispatch.

Uses FakeConnector and InMemoryStateStore from conftest.py; the counter
view from the bot handlers is the main subject.
"""

import asyncio
import json
import time
import pytest
from unittest.mock import AsyncMock

from liveviews.core.connectors import InMemoryStateStore
from liveviews.core.errors import (
    ConfigurationError,
    HandlerNotFoundError,
    ViewNotSentError,
    ViewRegistrationError,
)
from liveviews.modules.bot.handlers.counter import CounterView
from liveviews.modules.views import (
    DeserializedState,
    DirectHandle,
    HandleKind,
    InteractableButton,
    RenderedView,
    View,
    ViewRuntime,
    dump_descriptor,
    load_descriptor,
    make_custom_id,
    messages_match,
)

from conftest import FakeConnector, make_ctx


def custom_id_for(connector, content_id, label):
    """custom_id of the button with ``label`` in the last committed content."""
    for row in connector.messages[content_id].components:
        for payload in row:
            if payload.get("label") == label:
                return payload["custom_id"]
    raise AssertionError(f"No button {label!r} on {content_id}")


def stored_count(store, content_id):
    record = store._records[content_id]
    return json.loads(record.serialized_state)["count"]


class TrackedCounter(CounterView):
    """Counter that records its lifecycle hooks."""

    view_type_id = "tracked-counter"
    hooks = []

    def view_did_send(self):
        TrackedCounter.hooks.append(("did_send", self.state["count"]))

    async def view_will_leave_cache(self):
        TrackedCounter.hooks.append(("left_cache", self.state["count"]))


class SummaryView(View):
    """View without controls, target of transitions."""

    view_type_id = "summary"

    def __init__(self, props=None, *, runtime=None):
        super().__init__(props, runtime=runtime)
        self.state = {"total": 0}

    def render(self):
        return RenderedView(content=f"Total: {self.state['total']}")

    def serialize_state(self):
        return json.dumps(self.state)

    @classmethod
    def deserialize_state(cls, serialized, ctx):
        return DeserializedState(state=json.loads(serialized))


class ConfirmView(View):
    """Yes/No prompt whose first control is destructive."""

    view_type_id = "confirm"
    confirmed = []

    def __init__(self, props=None, *, runtime=None):
        super().__init__(props, runtime=runtime)
        self.state = {"asked": True}

    async def confirm(self, ctx):
        ConfirmView.confirmed.append(ctx)

    async def cancel(self, ctx):
        await self.set_state({"asked": False})

    def render(self):
        return RenderedView(
            content="Delete everything?",
            components=[[
                InteractableButton(self.confirm, label="Yes"),
                InteractableButton(self.cancel, label="No"),
            ]],
        )

    def serialize_state(self):
        return json.dumps(self.state)

    @classmethod
    def deserialize_state(cls, serialized, ctx):
        return DeserializedState(state=json.loads(serialized))


@pytest.fixture(autouse=True)
def clear_hooks():
    ConfirmView.confirmed = []
    TrackedCounter.hooks = []


async def send_counter(runtime, view_cls=CounterView):
    view = view_cls(runtime=runtime)
    handle = await view.send_to_channel("chan-1")
    return view, handle.content_id


async def press(runtime, connector, content_id, label, with_snapshot=False, **kwargs):
    snapshot = connector.snapshot(content_id) if with_snapshot else None
    ctx = make_ctx(content_id, custom_id_for(connector, content_id, label), snapshot=snapshot, **kwargs)
    handled = await runtime.dispatch(ctx)
    return ctx, handled


# =============================================================================
# CONFIGURATION
# =============================================================================

@pytest.mark.unit
class TestRuntimeConfiguration:
    """Fail fast on incomplete wiring."""

    def test_missing_store(self, connector, settings):
        with pytest.raises(ConfigurationError):
            ViewRuntime(connector, None, settings=settings)

    def test_store_without_operations(self, connector, settings):
        """A store lacking get_state is rejected with the missing names."""
        class HalfStore:
            async def store_state(self, *args):
                pass

        with pytest.raises(ConfigurationError) as exc_info:
            ViewRuntime(connector, HalfStore(), settings=settings)
        assert exc_info.value.data["missing"] == ["get_state"]

    def test_missing_connector(self, store, settings):
        with pytest.raises(ConfigurationError):
            ViewRuntime(None, store, settings=settings)

    def test_cache_ttl_from_settings(self, connector, store, settings):
        runtime = ViewRuntime(connector, store, settings=settings)
        assert runtime.cache.ttl == settings.view_cache_ttl

        runtime = ViewRuntime(connector, store, settings=settings, cache_ttl=5)
        assert runtime.cache.ttl == 5


@pytest.mark.unit
class TestRegistration:
    """View registry."""

    def test_duplicate_view_type_rejected(self, runtime):
        class OtherCounter(CounterView):
            view_type_id = "counter"

        with pytest.raises(ViewRegistrationError):
            runtime.register(OtherCounter)

    def test_same_class_twice_is_fine(self, runtime):
        runtime.register(CounterView)
        assert runtime.get_view_class("counter") is CounterView

    def test_non_view_rejected(self, runtime):
        with pytest.raises(ViewRegistrationError):
            runtime.register(dict)


# =============================================================================
# SENDING AND UPDATING
# =============================================================================

@pytest.mark.unit
class TestSendAndUpdate:
    """First commit and state updates."""

    @pytest.mark.asyncio
    async def test_send_assigns_handle_persists_and_caches(self, runtime, connector, store):
        """Send path.

        ЧТО ПРОВЕРЯЕМ:
            Handle set, record stored with descriptor, view cached, hook called
        """
        runtime.register(TrackedCounter)
        view, content_id = await send_counter(runtime, TrackedCounter)

        assert view.message == DirectHandle(channel_id="chan-1", message_id="msg-1")
        assert content_id == "chan-1:msg-1"
        assert runtime.cache.has(content_id)
        record = await store.get_state(content_id)
        assert record.view_type_id == "tracked-counter"
        assert load_descriptor(record.message_descriptor) == view.message
        assert TrackedCounter.hooks == [("did_send", 0)]
        assert connector.messages[content_id].content == "<b>Counter</b>\n\nCount: 0"

    @pytest.mark.asyncio
    async def test_set_state_before_send_raises(self, runtime):
        view = CounterView(runtime=runtime)
        with pytest.raises(ViewNotSentError):
            await view.set_state({"count": 5})

    @pytest.mark.asyncio
    async def test_update_view_before_send_raises(self, runtime):
        with pytest.raises(ViewNotSentError):
            await runtime.update_view(CounterView(runtime=runtime), {"count": 1})

    @pytest.mark.asyncio
    async def test_press_updates_in_place(self, runtime, connector, store):
        """Interaction update path.

        ЧТО ПРОВЕРЯЕМ:
            A press edits the message through the interaction and persists
        """
        view, content_id = await send_counter(runtime)

        ctx, handled = await press(runtime, connector, content_id, "+1")

        assert handled is True
        assert view.state == {"count": 1}
        assert ctx.responded
        assert ("try_update", content_id, True) in connector.calls
        assert "edit_message" not in connector.call_names()
        assert stored_count(store, content_id) == 1
        assert view.latest_interaction is ctx

    @pytest.mark.asyncio
    async def test_responded_interaction_falls_back_to_edit(self, runtime, connector):
        """Direct edit path when the interaction cannot update in place."""
        view, content_id = await send_counter(runtime)
        connector.accept_updates = False

        await press(runtime, connector, content_id, "+1")

        assert connector.call_names()[-1] == "edit_message"
        assert "Count: 1" in connector.messages[content_id].content

    @pytest.mark.asyncio
    async def test_set_state_with_function_and_none(self, runtime, connector):
        """Functional updates get (state, props); None changes nothing."""
        view, content_id = await send_counter(runtime)
        calls_before = len(connector.calls)

        await view.set_state(lambda state, props: None)
        assert len(connector.calls) == calls_before

        await view.set_state(lambda state, props: {"count": state["count"] + 10})
        assert view.state == {"count": 10}

    @pytest.mark.asyncio
    async def test_handler_ids_restart_each_render(self, runtime, connector):
        """Arena is rebuilt with a new generation per render."""
        view, content_id = await send_counter(runtime)
        generation = view.handlers.generation
        assert custom_id_for(connector, content_id, "-1") == f"~counter;{generation};0"
        assert custom_id_for(connector, content_id, "+1") == f"~counter;{generation};1"

        await view.set_state({"count": 1})

        assert view.handlers.generation == generation + 1
        assert custom_id_for(connector, content_id, "-1") == f"~counter;{generation + 1};0"
        assert custom_id_for(connector, content_id, "Reset") == f"~counter;{generation + 1};2"
        assert len(view.handlers) == 3

    @pytest.mark.asyncio
    async def test_transition_reuses_message(self, runtime, connector, store):
        """Transition path.

        ЧТО ПРОВЕРЯЕМ:
            Target takes over the message, cache and record
        """
        runtime.register(SummaryView)
        view, content_id = await send_counter(runtime)
        await view.set_state({"count": 3})

        summary = SummaryView()
        summary.state = {"total": 3}
        await view.transition_to(summary)

        assert summary.message == view.message
        assert runtime.cache.get(content_id) is summary
        assert connector.messages[content_id].content == "Total: 3"
        assert connector.messages[content_id].components == []
        assert (await store.get_state(content_id)).view_type_id == "summary"


# =============================================================================
# DISPATCH
# =============================================================================

@pytest.mark.unit
class TestDispatch:
    """Routing of interactions."""

    @pytest.mark.asyncio
    async def test_foreign_custom_id_not_handled(self, runtime):
        assert await runtime.dispatch(make_ctx("chan-1:msg-1", "main_menu")) is False

    @pytest.mark.asyncio
    async def test_unknown_content_dropped(self, runtime, connector):
        """Events for messages without a view are dropped silently."""
        handled = await runtime.dispatch(make_ctx("chan-9:msg-9", "~counter;1;1"))

        assert handled is True
        assert connector.calls == []

    @pytest.mark.asyncio
    async def test_stale_handler_id_raises(self, runtime, connector):
        view, content_id = await send_counter(runtime)

        with pytest.raises(HandlerNotFoundError) as exc_info:
            await runtime.dispatch(make_ctx(content_id, make_custom_id("counter", view.handlers.generation, 7)))

        assert exc_info.value.data["handler_id"] == 7
        assert exc_info.value.data["current_generation"] == view.handlers.generation

    @pytest.mark.asyncio
    async def test_middleware_can_short_circuit(self, runtime, connector):
        """An interceptor that does not call next blocks the handler."""
        async def only_owner(ctx, next_):
            if ctx.user_id == 1:
                await next_()

        runtime.use_middleware(only_owner)
        view, content_id = await send_counter(runtime)

        await press(runtime, connector, content_id, "+1", user_id=2)
        assert view.state == {"count": 0}

        await press(runtime, connector, content_id, "+1", user_id=1)
        assert view.state == {"count": 1}

    @pytest.mark.asyncio
    async def test_handler_receives_context(self, runtime, connector):
        """The terminal handler gets the interaction context."""
        view, content_id = await send_counter(runtime)
        handler = AsyncMock()
        view.handlers._handlers[1] = handler

        ctx, _ = await press(runtime, connector, content_id, "+1")

        handler.assert_awaited_once_with(ctx)

    @pytest.mark.asyncio
    async def test_late_press_after_transition_raises(self, runtime, connector):
        """Press on a control of the view that was replaced.

        ЧТО ПРОВЕРЯЕМ:
            Counter "-1" (slot 0) pressed after the message became a
            confirm prompt does not run the prompt's "Yes" (also slot 0)
        """
        runtime.register(ConfirmView)
        view, content_id = await send_counter(runtime)
        old_decrement = custom_id_for(connector, content_id, "-1")

        prompt = ConfirmView()
        await view.transition_to(prompt)

        with pytest.raises(HandlerNotFoundError) as exc_info:
            await runtime.dispatch(make_ctx(content_id, old_decrement))

        assert ConfirmView.confirmed == []
        assert exc_info.value.data["view_type_id"] == "counter"
        assert exc_info.value.data["current_view_type_id"] == "confirm"

    @pytest.mark.asyncio
    async def test_late_press_after_rerender_raises(self, runtime, connector):
        """Press on a control of a superseded render of the same view.

        ЧТО ПРОВЕРЯЕМ:
            "+1" keeps its slot across renders, the old custom id is still
            rejected and the count does not move
        """
        view, content_id = await send_counter(runtime)
        old_increment = custom_id_for(connector, content_id, "+1")

        await press(runtime, connector, content_id, "+1")
        assert view.state == {"count": 1}
        assert custom_id_for(connector, content_id, "+1") != old_increment

        with pytest.raises(HandlerNotFoundError):
            await runtime.dispatch(make_ctx(content_id, old_increment))
        assert view.state == {"count": 1}

    @pytest.mark.asyncio
    async def test_transition_continues_generations(self, runtime, connector):
        """The target's first render is numbered after the replaced one."""
        runtime.register(ConfirmView)
        view, content_id = await send_counter(runtime)
        await view.set_state({"count": 2})

        prompt = ConfirmView()
        await view.transition_to(prompt)

        assert prompt.handlers.generation == view.handlers.generation + 1
        await press(runtime, connector, content_id, "Yes")
        assert len(ConfirmView.confirmed) == 1


# =============================================================================
# REHYDRATION
# =============================================================================

@pytest.mark.unit
class TestRehydration:
    """Rebuilding views that left the cache."""

    @pytest.mark.asyncio
    async def test_count_zero_to_one_survives_eviction(self, runtime, connector, store):
        """Scenario: update 0 -> 1, evict, press again.

        ЧТО ПРОВЕРЯЕМ:
            Differ sees no drift, the event is replayed on the rebuilt view
        """
        view, content_id = await send_counter(runtime)
        await press(runtime, connector, content_id, "+1")
        assert stored_count(store, content_id) == 1

        runtime.cache.delete(content_id)
        await asyncio.sleep(0)

        ctx, handled = await press(runtime, connector, content_id, "+1", with_snapshot=True)

        rebuilt = runtime.cache.get(content_id)
        assert rebuilt is not None and rebuilt is not view
        assert rebuilt.state == {"count": 2}
        assert rebuilt.message == view.message
        assert connector.notices == []
        assert stored_count(store, content_id) == 2

    @pytest.mark.asyncio
    async def test_rehydrate_without_snapshot_trusts_store(self, runtime, connector):
        view, content_id = await send_counter(runtime)
        runtime.cache.delete(content_id)

        rebuilt = await runtime.rehydrate(content_id, make_ctx(content_id, "~counter;1;1"))

        assert rebuilt.state == {"count": 0}
        assert len(rebuilt.handlers) == 2

    @pytest.mark.asyncio
    async def test_drifted_message_is_refreshed_not_replayed(self, runtime, connector, store, settings):
        """Stale view path.

        ЧТО ПРОВЕРЯЕМ:
            Remote shows count 0, store says 1: message re-rendered,
            notice shown, handler not run
        """
        view, content_id = await send_counter(runtime)
        old_snapshot = connector.snapshot(content_id)
        connector.accept_updates = False
        await view.set_state({"count": 1})
        runtime.cache.delete(content_id)

        ctx = make_ctx(content_id, custom_id_for(connector, content_id, "+1"), snapshot=old_snapshot)
        connector.accept_updates = True
        await runtime.dispatch(ctx)

        assert connector.notices == [settings.stale_view_notice]
        assert stored_count(store, content_id) == 1
        assert "Count: 1" in connector.messages[content_id].content
        refreshed = runtime.cache.get(content_id)
        assert refreshed is not None
        assert refreshed.state == {"count": 1}

    @pytest.mark.asyncio
    async def test_round_trip_render_matches(self, runtime, connector, store):
        """serialize -> deserialize -> render is equal under the differ."""
        view, content_id = await send_counter(runtime)
        await view.set_state({"count": 4})
        before = view.render()

        record = await store.get_state(content_id)
        restored = CounterView.deserialize_state(record.serialized_state, None)
        clone = CounterView(restored.props, runtime=runtime)
        clone.state = restored.state

        assert clone.render().content == before.content
        assert messages_match(connector.snapshot(content_id), clone.render())

    @pytest.mark.asyncio
    async def test_obsolete_state_deletes_record_and_message(self, runtime, connector, store):
        handle = DirectHandle(channel_id="chan-1", message_id="old-1")
        await store.store_state(
            handle.content_id, "counter", json.dumps({"v": 0, "count": 3}), dump_descriptor(handle)
        )

        handled = await runtime.dispatch(make_ctx(handle.content_id, "~counter;1;1"))

        assert handled is True
        assert handle.content_id not in store
        assert ("delete_message", handle.content_id) in connector.calls
        assert not runtime.cache.has(handle.content_id)

    @pytest.mark.asyncio
    async def test_unknown_view_type_is_dropped(self, runtime, connector, store):
        handle = DirectHandle(channel_id="chan-1", message_id="x")
        await store.store_state(handle.content_id, "retired-view", "{}", dump_descriptor(handle))

        assert await runtime.rehydrate(handle.content_id) is None
        assert connector.calls == []

    @pytest.mark.asyncio
    async def test_concurrent_misses_share_rehydration(self, runtime, connector, store):
        """Two events for an evicted view load it once."""
        view, content_id = await send_counter(runtime)
        runtime.cache.delete(content_id)

        original_get = store.get_state
        calls = []

        async def slow_get(cid):
            calls.append(cid)
            await asyncio.sleep(0.01)
            return await original_get(cid)

        store.get_state = slow_get

        first, second = await asyncio.gather(
            runtime.resolve(content_id, make_ctx(content_id, "~counter;1;1")),
            runtime.resolve(content_id, make_ctx(content_id, "~counter;1;1")),
        )

        assert calls == [content_id]
        assert first is second
        assert runtime._inflight == {}

    @pytest.mark.asyncio
    async def test_rebuilt_view_accepts_shown_render_only(self, runtime, connector):
        """Rehydration reuses the generation of the message on screen.

        ЧТО ПРОВЕРЯЕМ:
            After eviction the shown "+1" works; a control from the view
            shown before a transition is still rejected
        """
        runtime.register(ConfirmView)
        view, content_id = await send_counter(runtime)
        old_increment = custom_id_for(connector, content_id, "+1")
        await view.transition_to(ConfirmView())
        runtime.cache.delete(content_id)
        await asyncio.sleep(0)

        with pytest.raises(HandlerNotFoundError):
            await runtime.dispatch(make_ctx(content_id, old_increment))
        assert ConfirmView.confirmed == []

        runtime.cache.delete(content_id)
        await asyncio.sleep(0)
        await press(runtime, connector, content_id, "Yes", with_snapshot=True)
        assert len(ConfirmView.confirmed) == 1

    @pytest.mark.asyncio
    async def test_every_waiter_on_stale_rehydration_is_notified(self, runtime, connector, store, settings):
        """Two presses on an out-of-date message share one rehydration.

        ЧТО ПРОВЕРЯЕМ:
            Both users get the notice, neither press is replayed
        """
        view, content_id = await send_counter(runtime)
        old_snapshot = connector.snapshot(content_id)
        connector.accept_updates = False
        await view.set_state({"count": 1})
        runtime.cache.delete(content_id)
        connector.accept_updates = True

        original_get = store.get_state

        async def slow_get(cid):
            await asyncio.sleep(0.01)
            return await original_get(cid)

        store.get_state = slow_get
        custom_id = custom_id_for(connector, content_id, "+1")
        first = make_ctx(content_id, custom_id, snapshot=old_snapshot, user_id=1)
        second = make_ctx(content_id, custom_id, snapshot=old_snapshot, user_id=2)

        await asyncio.gather(runtime.dispatch(first), runtime.dispatch(second))

        assert connector.notices == [settings.stale_view_notice] * 2
        assert first.acknowledged and second.acknowledged
        assert stored_count(store, content_id) == 1


# =============================================================================
# INTERACTION TOKENS
# =============================================================================

@pytest.mark.unit
class TestInteractionTokens:
    """Views replied through interactions."""

    async def reply(self, runtime, issued_at):
        ctx = make_ctx("chan-1:cmd", "command", token="t1", issued_at=issued_at)
        view = CounterView(runtime=runtime)
        handle = await view.send_as_reply(ctx, ephemeral=True)
        return view, handle

    @pytest.mark.asyncio
    async def test_token_refreshed_on_newer_interaction(self, runtime, connector, store):
        """Scenario: second interaction brings a newer token.

        ЧТО ПРОВЕРЯЕМ:
            Commit uses the new token, record holds the new descriptor
        """
        now = time.time()
        view, handle = await self.reply(runtime, now - 10)
        assert handle.kind == HandleKind.INTERACTION_REPLY
        content_id = handle.content_id
        connector.accept_updates = False

        await press(runtime, connector, content_id, "+1", token="t2", issued_at=now - 5)

        assert connector.calls[-1] == ("edit_interaction_reply", content_id, "t2")
        assert view.message.token == "t2"
        assert view.message.token_issued_at == now - 5
        record = await store.get_state(content_id)
        assert load_descriptor(record.message_descriptor).token == "t2"

    @pytest.mark.asyncio
    async def test_older_token_ignored(self, runtime, connector):
        """An event carrying an older token does not replace the stored one."""
        now = time.time()
        view, handle = await self.reply(runtime, now - 5)
        connector.accept_updates = False

        await press(runtime, connector, handle.content_id, "+1", token="t0", issued_at=now - 60)

        assert view.message.token == "t1"
        assert connector.calls[-1] == ("edit_interaction_reply", handle.content_id, "t1")

    @pytest.mark.asyncio
    async def test_reply_records_latest_interaction(self, runtime):
        view, handle = await self.reply(runtime, time.time())
        assert view.latest_interaction is not None
        assert view.latest_interaction.token == "t1"


# =============================================================================
# LIFECYCLE
# =============================================================================

@pytest.mark.unit
class TestLifecycle:
    """Eviction hooks and shutdown."""

    @pytest.mark.asyncio
    async def test_expiry_calls_leave_cache_hook(self, connector, store, settings):
        runtime = ViewRuntime(connector, store, settings=settings, cache_ttl=0.05)
        runtime.register(TrackedCounter)
        view, content_id = await send_counter(runtime, TrackedCounter)

        await asyncio.sleep(0.1)
        await asyncio.sleep(0)

        assert not runtime.cache.has(content_id)
        assert TrackedCounter.hooks == [("did_send", 0), ("left_cache", 0)]

    @pytest.mark.asyncio
    async def test_aclose_persists_and_drains(self, runtime, connector, store):
        runtime.register(TrackedCounter)
        view, content_id = await send_counter(runtime, TrackedCounter)
        view.state = {"count": 7}

        await runtime.aclose()

        assert len(runtime.cache) == 0
        assert stored_count(store, content_id) == 7
        assert ("left_cache", 7) in TrackedCounter.hooks

    @pytest.mark.asyncio
    async def test_aclose_survives_store_failure(self, connector, settings):
        store = InMemoryStateStore()
        runtime = ViewRuntime(connector, store, settings=settings)
        runtime.register(CounterView)
        view, content_id = await send_counter(runtime)
        store.store_state = AsyncMock(side_effect=RuntimeError("down"))

        await runtime.aclose()

        assert len(runtime.cache) == 0
