"""
Pytest configuration for liveviews tests.

Automatically adds project root to sys.path so that 'from liveviews...' imports work.
Defines markers and shared fixtures.
"""
import sys
import time
import pytest
from pathlib import Path
from typing import Dict, List, Optional

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from liveviews.core.config import Settings, StoreBackend
from liveviews.core.connectors import InMemoryStateStore
from liveviews.modules.views.components import ComponentKind, ComponentSnapshot, Emoji, SelectOption
from liveviews.modules.views.content import MessageSnapshot, SendableContent
from liveviews.modules.views.handles import (
    DirectHandle,
    InteractionContext,
    InteractionReplyHandle,
)
from liveviews.modules.views.runtime import ViewRuntime


# =============================================================================
# Pytest Markers
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "asyncio: Async tests")
    config.addinivalue_line("markers", "integration: Integration tests (requires services like Redis)")
    config.addinivalue_line("markers", "requires_redis: Requires Redis service")
    config.addinivalue_line("markers", "bot: Telegram bot component tests")


# =============================================================================
# Fakes
# =============================================================================

def snapshot_from_sendable(content: SendableContent) -> MessageSnapshot:
    """What a remote service would show after committing ``content``."""
    rows = []
    for row in content.components:
        snapshots = []
        for payload in row:
            options = payload.get("options")
            snapshots.append(ComponentSnapshot(
                kind=ComponentKind(payload["type"]),
                style=payload.get("style"),
                label=payload.get("label"),
                emoji=Emoji(**payload["emoji"]) if "emoji" in payload else None,
                url=payload.get("url"),
                disabled=payload.get("disabled"),
                placeholder=payload.get("placeholder"),
                min_values=payload.get("min_values"),
                max_values=payload.get("max_values"),
                options=[
                    SelectOption(
                        label=o["label"],
                        value=o["value"],
                        description=o.get("description"),
                        emoji=Emoji(**o["emoji"]) if "emoji" in o else None,
                        default=o.get("default", False),
                    )
                    for o in options
                ] if options is not None else None,
            ))
        rows.append(snapshots)
    return MessageSnapshot(
        content=content.content,
        embeds=list(content.embeds),
        components=rows or None,
    )


class FakeConnector:
    """
    In-memory ConnectorProtocol implementation.

    Records every call in ``calls`` and keeps the last committed content
    per content id in ``messages``.
    """

    def __init__(self, accept_updates: bool = True):
        self.accept_updates = accept_updates
        self.calls: List[tuple] = []
        self.messages: Dict[str, SendableContent] = {}
        self.notices: List[str] = []
        self._next_message_id = 1

    def _new_message_id(self) -> str:
        message_id = f"msg-{self._next_message_id}"
        self._next_message_id += 1
        return message_id

    async def send_to_channel(self, channel_id, content):
        handle = DirectHandle(channel_id=channel_id, message_id=self._new_message_id())
        self.calls.append(("send_to_channel", channel_id))
        self.messages[handle.content_id] = content
        return handle

    async def edit_message(self, handle, content):
        self.calls.append(("edit_message", handle.content_id))
        self.messages[handle.content_id] = content

    async def reply_to_interaction(self, ctx, content, ephemeral=False):
        self.calls.append(("reply_to_interaction", ctx.content_id, ephemeral))
        message_id = self._new_message_id()
        if ephemeral:
            handle = InteractionReplyHandle(
                target=self.get_reply_target(ctx),
                token=self.get_interaction_token(ctx),
                message_id=message_id,
                token_issued_at=ctx.issued_at,
            )
        else:
            handle = DirectHandle(channel_id=ctx.channel_id or "chan", message_id=message_id)
        ctx.responded = True
        self.messages[handle.content_id] = content
        return handle

    async def try_update(self, ctx, content):
        if not self.accept_updates or ctx.responded:
            self.calls.append(("try_update", ctx.content_id, False))
            return False
        self.calls.append(("try_update", ctx.content_id, True))
        ctx.responded = True
        self.messages[ctx.content_id] = content
        return True

    async def edit_interaction_reply(self, handle, content):
        self.calls.append(("edit_interaction_reply", handle.content_id, handle.token))
        self.messages[handle.content_id] = content

    async def delete_message(self, handle):
        self.calls.append(("delete_message", handle.content_id))
        self.messages.pop(handle.content_id, None)

    def get_reply_target(self, ctx):
        return "app-webhook"

    def get_interaction_token(self, ctx):
        return ctx.token or ""

    async def send_notice(self, ctx, text):
        self.calls.append(("send_notice", ctx.content_id))
        self.notices.append(text)
        ctx.acknowledged = True

    def call_names(self) -> List[str]:
        return [call[0] for call in self.calls]

    def snapshot(self, content_id: str) -> MessageSnapshot:
        return snapshot_from_sendable(self.messages[content_id])


def make_ctx(
    content_id: str,
    custom_id: str,
    snapshot: Optional[MessageSnapshot] = None,
    token: Optional[str] = None,
    issued_at: Optional[float] = None,
    user_id: int = 42,
    channel_id: Optional[str] = None,
    values: Optional[List[str]] = None,
) -> InteractionContext:
    """Interaction on ``content_id`` as a transport would report it."""
    return InteractionContext(
        content_id=content_id,
        custom_id=custom_id,
        user_id=user_id,
        token=token,
        issued_at=time.time() if issued_at is None else issued_at,
        values=values or [],
        snapshot=snapshot,
        channel_id=channel_id,
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return project root path."""
    return PROJECT_ROOT


@pytest.fixture
def settings() -> Settings:
    """Settings independent of the environment."""
    return Settings(
        view_cache_ttl=30.0,
        interaction_token_ttl=900.0,
        stale_view_notice="Out of date, refreshed.",
        store_backend=StoreBackend.MEMORY,
        redis_url=None,
        db_path=":memory:",
        telegram_bot_token=None,
    )


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def store() -> InMemoryStateStore:
    return InMemoryStateStore()


@pytest.fixture
def runtime(connector, store, settings) -> ViewRuntime:
    """Runtime with the counter view registered."""
    from liveviews.modules.bot.handlers.counter import CounterView

    rt = ViewRuntime(connector, store, settings=settings)
    rt.register(CounterView)
    return rt
