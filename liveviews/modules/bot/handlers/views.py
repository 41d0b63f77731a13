"""
View callbacks - routes inline button presses to the view runtime.
"""

from aiogram import F, Router
from aiogram.types import CallbackQuery

from liveviews.common.logging import get_logger, set_view_id
from liveviews.modules.views import ViewRuntime
from liveviews.modules.views.handles import CUSTOM_ID_PREFIX

from ..connector import context_from_callback

logger = get_logger(__name__)

router = Router()


@router.callback_query(F.data.startswith(CUSTOM_ID_PREFIX))
async def on_view_callback(callback: CallbackQuery, runtime: ViewRuntime):
    """Dispatch the press; the query is always answered."""
    ctx = context_from_callback(callback)
    set_view_id(ctx.content_id)
    try:
        handled = await runtime.dispatch(ctx)
        if not handled:
            logger.debug("Callback is not addressed to a view", data={"data": callback.data})
    finally:
        if not ctx.acknowledged:
            await callback.answer()
