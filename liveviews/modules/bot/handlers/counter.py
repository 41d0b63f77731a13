"""
Counter handler - /start sends a counter view to the chat.

The view keeps its count in the state store, so the buttons keep working
after the view left memory or the bot restarted.
"""

import json

from aiogram import Router
from aiogram.filters import CommandStart
from aiogram.types import Message

from liveviews.modules.views import (
    ActionRow,
    DeserializedState,
    InteractableButton,
    RenderedView,
    View,
    ViewRuntime,
)
from liveviews.modules.views.components import ButtonStyle

router = Router()

STATE_VERSION = 1


class CounterView(View):
    """Message with a count and buttons to change it."""

    view_type_id = "counter"

    def __init__(self, props=None, *, runtime=None):
        super().__init__(props, runtime=runtime)
        self.state = {"count": 0}

    async def increment(self, ctx):
        await self.set_state(lambda state, props: {"count": state["count"] + 1})

    async def decrement(self, ctx):
        await self.set_state(lambda state, props: {"count": state["count"] - 1})

    async def reset(self, ctx):
        await self.set_state({"count": 0})

    def render(self) -> RenderedView:
        count = self.state["count"]
        return RenderedView(
            content=f"<b>Counter</b>\n\nCount: {count}",
            components=[
                ActionRow(
                    InteractableButton(self.decrement, label="-1"),
                    InteractableButton(self.increment, label="+1", style=ButtonStyle.PRIMARY),
                ),
                ActionRow(
                    count != 0 and InteractableButton(self.reset, label="Reset", style=ButtonStyle.DANGER),
                ),
            ],
        )

    def serialize_state(self) -> str:
        return json.dumps({"v": STATE_VERSION, "props": dict(self.props), "count": self.state["count"]})

    @classmethod
    def deserialize_state(cls, serialized, ctx):
        data = json.loads(serialized)
        if data.get("v") != STATE_VERSION:
            return None
        return DeserializedState(props=data.get("props", {}), state={"count": data["count"]})


@router.message(CommandStart())
async def cmd_start(message: Message, runtime: ViewRuntime):
    """Send a fresh counter."""
    view = CounterView({"owner_id": message.from_user.id}, runtime=runtime)
    await view.send_to_channel(str(message.chat.id))
