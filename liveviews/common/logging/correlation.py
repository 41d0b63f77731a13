"""Correlation ID propagation for bot updates and view events."""

import uuid
import logging
import contextvars
from typing import Callable, Awaitable, Any

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject, Update


# Context variable for correlation ID (async-safe)
correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)

# Context variable for user ID
user_id_var: contextvars.ContextVar[int | None] = contextvars.ContextVar(
    "user_id", default=None
)

# Context variable for the content id of the view being handled
view_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "view_id", default=None
)


def generate_correlation_id() -> str:
    """Generate unique correlation ID."""
    return str(uuid.uuid4())[:8]


def get_correlation_id() -> str | None:
    """Get current correlation ID from context."""
    return correlation_id_var.get()


def set_correlation_id(cid: str):
    """Set correlation ID in context."""
    correlation_id_var.set(cid)


def get_user_id() -> int | None:
    """Get current user ID from context."""
    return user_id_var.get()


def set_user_id(uid: int):
    """Set user ID in context."""
    user_id_var.set(uid)


def get_view_id() -> str | None:
    """Get content id of the view currently handling an event."""
    return view_id_var.get()


def set_view_id(content_id: str):
    """Set content id of the view currently handling an event."""
    view_id_var.set(content_id)


class CorrelationMiddleware(BaseMiddleware):
    """
    Aiogram middleware that sets correlation ID for each update.

    Generates a correlation ID per Telegram update and extracts the
    user id, so every log line emitted while the update is processed
    (including view rehydration and commits) can be traced back to it.
    """

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        cid = generate_correlation_id()
        set_correlation_id(cid)

        if isinstance(event, Update):
            user = None
            if event.message:
                user = event.message.from_user
            elif event.callback_query:
                user = event.callback_query.from_user

            if user:
                set_user_id(user.id)

        data["correlation_id"] = cid

        try:
            return await handler(event, data)
        finally:
            correlation_id_var.set(None)
            user_id_var.set(None)
            view_id_var.set(None)


async def correlation_interceptor(ctx, next_: Callable[[], Awaitable[None]]) -> None:
    """
    View-pipeline interceptor that tags the event with a correlation ID.

    Keeps an ID already set by CorrelationMiddleware, so events coming
    from the aiogram dispatcher keep the update's ID.
    """
    token = None
    if get_correlation_id() is None:
        token = correlation_id_var.set(generate_correlation_id())
    if ctx.user_id is not None and get_user_id() is None:
        set_user_id(ctx.user_id)
    try:
        await next_()
    finally:
        if token is not None:
            correlation_id_var.reset(token)


class CorrelationLogFilter(logging.Filter):
    """
    Logging filter that adds correlation_id, user_id, view_id to log records.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        record.user_id = get_user_id()
        record.view_id = get_view_id()
        return True
