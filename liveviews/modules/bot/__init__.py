"""
Bot - Telegram transport for views (aiogram).

- connector.py: AiogramConnector, context_from_callback
- keyboards/: inline keyboard conversion
- handlers/: view callbacks, counter example
- routers/: bot, runtime and dispatcher wiring
"""

from .connector import AiogramConnector, context_from_callback

__all__ = [
    'AiogramConnector',
    'context_from_callback',
]
