"""
Main router - wires the view runtime into an aiogram dispatcher.

The runtime is passed to handlers through the dispatcher's workflow data,
so any handler can declare a ``runtime: ViewRuntime`` argument.
"""

from typing import Optional, Type

from aiogram import Bot, Dispatcher, Router
from aiogram.enums import ParseMode
from aiogram.client.default import DefaultBotProperties

from liveviews.common.logging import get_logger, CorrelationMiddleware, correlation_interceptor
from liveviews.core.config import Settings, get_settings, create_state_store
from liveviews.core.errors import ConfigurationError
from liveviews.modules.views import View, ViewRuntime

from ..connector import AiogramConnector
from ..handlers import counter, views

logger = get_logger(__name__)


def create_bot(settings: Optional[Settings] = None) -> Bot:
    """Create bot instance."""
    settings = settings or get_settings()
    if not settings.telegram_bot_token:
        raise ConfigurationError("TELEGRAM_BOT_TOKEN environment variable not set")

    return Bot(
        token=settings.telegram_bot_token,
        default=DefaultBotProperties(parse_mode=ParseMode.HTML)
    )


def create_runtime(bot: Bot, settings: Optional[Settings] = None) -> ViewRuntime:
    """Create the view runtime with the configured state store."""
    settings = settings or get_settings()
    runtime = ViewRuntime(
        connector=AiogramConnector(bot),
        store=create_state_store(settings.store_backend),
        settings=settings,
    )
    runtime.use_middleware(correlation_interceptor)
    runtime.register(counter.CounterView)
    return runtime


def create_dispatcher(runtime: ViewRuntime, *routers: Router) -> Dispatcher:
    """Create dispatcher with the view callback router and extra routers."""
    dp = Dispatcher(runtime=runtime)

    # Add correlation ID middleware for request tracing
    dp.update.middleware(CorrelationMiddleware())

    main_router = Router()
    main_router.include_router(views.router)
    main_router.include_router(counter.router)
    for router in routers:
        main_router.include_router(router)

    dp.include_router(main_router)
    dp.shutdown.register(runtime.aclose)

    return dp


async def start_bot(*view_classes: Type[View], routers: tuple = ()):
    """Start the bot with the given extra views and routers."""
    settings = get_settings()
    bot = create_bot(settings)
    runtime = create_runtime(bot, settings)
    runtime.register(*view_classes)
    dp = create_dispatcher(runtime, *routers)

    logger.info("Starting bot...", data={"views": list(runtime.view_types)})

    await dp.start_polling(bot)


__all__ = [
    'create_bot',
    'create_runtime',
    'create_dispatcher',
    'start_bot',
]
