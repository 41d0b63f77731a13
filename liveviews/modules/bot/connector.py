"""
AiogramConnector - Telegram transport for views.

Mapping onto the Bot API:
- channel: chat id; content id of a chat message: "<chat_id>:<message_id>"
- interaction: callback query from an inline keyboard button
- interaction reply: message sent in inline mode, editable only through
  its inline_message_id (used as the token)

Telegram shows text and inline buttons only. Embeds, selects, emoji
outside the label and disabled buttons raise ConnectorError. Content is
sent with HTML parse mode and read back with Message.html_text, so views
should use the tags Telegram itself produces (<b>, <i>, <code>, ...).
"""

import time
from typing import Any, Dict, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError, TelegramBadRequest
from aiogram.types import CallbackQuery, Message

from liveviews.common.logging import get_logger
from liveviews.core.errors import ConnectorError
from liveviews.modules.views.content import MessageSnapshot, SendableContent
from liveviews.modules.views.handles import (
    DirectHandle,
    HandleKind,
    InteractionContext,
    InteractionReplyHandle,
    MessageHandle,
)

from .keyboards.inline import markup_to_snapshots, rows_to_markup

logger = get_logger(__name__)


def _not_modified(error: TelegramBadRequest) -> bool:
    return "message is not modified" in str(error)


def context_from_callback(query: CallbackQuery) -> InteractionContext:
    """Build a transport-neutral context from a callback query."""
    if query.inline_message_id:
        return InteractionContext(
            content_id=query.inline_message_id,
            custom_id=query.data or "",
            user_id=query.from_user.id,
            token=query.inline_message_id,
            issued_at=time.time(),
            raw=query,
        )

    message = query.message
    snapshot = None
    if isinstance(message, Message):
        snapshot = MessageSnapshot(
            content=message.html_text,
            components=markup_to_snapshots(message.reply_markup),
        )
    return InteractionContext(
        content_id=f"{message.chat.id}:{message.message_id}",
        custom_id=query.data or "",
        user_id=query.from_user.id,
        issued_at=time.time(),
        snapshot=snapshot,
        channel_id=str(message.chat.id),
        raw=query,
    )


class AiogramConnector:
    """
    ConnectorProtocol implementation on top of an aiogram Bot.

    Args:
        bot: Bot instance (HTML parse mode expected)
    """

    def __init__(self, bot: Bot):
        self.bot = bot

    def _message_kwargs(self, content: SendableContent) -> Dict[str, Any]:
        if content.embeds:
            raise ConnectorError(
                "Telegram messages cannot carry embeds",
                data={"embeds": len(content.embeds)},
            )
        if not content.content:
            raise ConnectorError("Telegram messages need text content")
        return {
            "text": content.content,
            "reply_markup": rows_to_markup(content.components),
        }

    @staticmethod
    def _edit_target(ctx: InteractionContext) -> Dict[str, Any]:
        query = ctx.raw
        if ctx.token:
            return {"inline_message_id": ctx.token}
        if isinstance(query, CallbackQuery) and query.message is not None:
            return {"chat_id": query.message.chat.id, "message_id": query.message.message_id}
        channel_id, _, message_id = ctx.content_id.partition(":")
        return {"chat_id": channel_id, "message_id": int(message_id)}

    async def _call(self, action: str, coro, data: Optional[Dict[str, Any]] = None):
        try:
            return await coro
        except TelegramBadRequest as e:
            if _not_modified(e):
                logger.debug("Message already up to date", data={"action": action, **(data or {})})
                return None
            raise ConnectorError(
                f"Telegram rejected {action}",
                data={"action": action, **(data or {})},
                cause=e,
            ) from e
        except TelegramAPIError as e:
            raise ConnectorError(
                f"Telegram {action} failed",
                data={"action": action, **(data or {})},
                cause=e,
            ) from e

    # =========================================================================
    # ConnectorProtocol
    # =========================================================================

    async def send_to_channel(self, channel_id: str, content: SendableContent) -> DirectHandle:
        kwargs = self._message_kwargs(content)
        message = await self._call(
            "send_message",
            self.bot.send_message(chat_id=channel_id, **kwargs),
            {"chat_id": channel_id},
        )
        return DirectHandle(channel_id=str(message.chat.id), message_id=str(message.message_id))

    async def edit_message(self, handle: DirectHandle, content: SendableContent) -> None:
        kwargs = self._message_kwargs(content)
        await self._call(
            "edit_message_text",
            self.bot.edit_message_text(
                chat_id=handle.channel_id,
                message_id=int(handle.message_id),
                **kwargs,
            ),
            {"content_id": handle.content_id},
        )

    async def reply_to_interaction(
        self,
        ctx: InteractionContext,
        content: SendableContent,
        ephemeral: bool = False,
    ) -> MessageHandle:
        """
        Chat callbacks get a new message in the same chat.

        Inline-mode callbacks have no chat to post into; the inline message
        itself becomes the view.
        """
        if ephemeral:
            logger.warning(
                "Telegram has no ephemeral messages, sending a regular one",
                data={"content_id": ctx.content_id},
            )
        kwargs = self._message_kwargs(content)

        if ctx.token:
            await self._call(
                "edit_message_text",
                self.bot.edit_message_text(inline_message_id=ctx.token, **kwargs),
                {"content_id": ctx.content_id},
            )
            ctx.responded = True
            return InteractionReplyHandle(
                target=self.get_reply_target(ctx),
                token=ctx.token,
                message_id=ctx.content_id,
                token_issued_at=ctx.issued_at,
            )

        if ctx.channel_id is None:
            raise ConnectorError(
                "Interaction has no chat to reply in",
                data={"content_id": ctx.content_id},
            )
        return await self.send_to_channel(ctx.channel_id, content)

    async def try_update(self, ctx: InteractionContext, content: SendableContent) -> bool:
        if ctx.responded:
            return False
        kwargs = self._message_kwargs(content)
        await self._call(
            "edit_message_text",
            self.bot.edit_message_text(**self._edit_target(ctx), **kwargs),
            {"content_id": ctx.content_id},
        )
        ctx.responded = True
        return True

    async def edit_interaction_reply(self, handle: InteractionReplyHandle, content: SendableContent) -> None:
        kwargs = self._message_kwargs(content)
        await self._call(
            "edit_message_text",
            self.bot.edit_message_text(inline_message_id=handle.token, **kwargs),
            {"content_id": handle.content_id},
        )

    async def delete_message(self, handle: MessageHandle) -> None:
        match handle.kind:
            case HandleKind.DIRECT:
                await self._call(
                    "delete_message",
                    self.bot.delete_message(chat_id=handle.channel_id, message_id=int(handle.message_id)),
                    {"content_id": handle.content_id},
                )
            case HandleKind.INTERACTION_REPLY:
                # Inline messages cannot be deleted by bots; drop the keyboard instead.
                await self._call(
                    "edit_message_reply_markup",
                    self.bot.edit_message_reply_markup(inline_message_id=handle.token, reply_markup=None),
                    {"content_id": handle.content_id},
                )

    def get_reply_target(self, ctx: InteractionContext) -> str:
        return str(self.bot.id)

    def get_interaction_token(self, ctx: InteractionContext) -> str:
        return ctx.token or ""

    async def send_notice(self, ctx: InteractionContext, text: str) -> None:
        query = ctx.raw
        if not isinstance(query, CallbackQuery) or ctx.acknowledged:
            logger.debug("Notice not delivered", data={"content_id": ctx.content_id, "text": text})
            return
        await self._call(
            "answer_callback_query",
            self.bot.answer_callback_query(callback_query_id=query.id, text=text, show_alert=True),
            {"content_id": ctx.content_id},
        )
        ctx.acknowledged = True
