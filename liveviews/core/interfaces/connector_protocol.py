"""
Connector Protocol - Interface to the remote chat service.

The runtime never talks to a transport directly; everything that leaves
the process goes through a connector. Implementation for Telegram:
liveviews.modules.bot.connector.AiogramConnector
"""

from typing import Protocol, runtime_checkable, TYPE_CHECKING

if TYPE_CHECKING:
    from liveviews.modules.views.content import SendableContent
    from liveviews.modules.views.handles import (
        DirectHandle,
        InteractionContext,
        InteractionReplyHandle,
        MessageHandle,
    )


@runtime_checkable
class ConnectorProtocol(Protocol):
    """Protocol for chat transports (DI interface)."""

    async def send_to_channel(self, channel_id: str, content: 'SendableContent') -> 'DirectHandle':
        """Post new content to a channel, return its handle."""
        ...

    async def edit_message(self, handle: 'DirectHandle', content: 'SendableContent') -> None:
        """Replace the content of a message addressed directly."""
        ...

    async def reply_to_interaction(
        self,
        ctx: 'InteractionContext',
        content: 'SendableContent',
        ephemeral: bool = False,
    ) -> 'MessageHandle':
        """Answer an interaction with new content, return its handle."""
        ...

    async def try_update(self, ctx: 'InteractionContext', content: 'SendableContent') -> bool:
        """
        Update the interaction's message in place as the interaction response.

        Returns False when the interaction was already responded to.
        """
        ...

    async def edit_interaction_reply(
        self, handle: 'InteractionReplyHandle', content: 'SendableContent'
    ) -> None:
        """Edit content reachable only through an interaction token."""
        ...

    async def delete_message(self, handle: 'MessageHandle') -> None:
        """Delete remote content."""
        ...

    def get_reply_target(self, ctx: 'InteractionContext') -> str:
        """Identity of the endpoint that can edit interaction replies."""
        ...

    def get_interaction_token(self, ctx: 'InteractionContext') -> str:
        """Token that authorizes edits of the interaction's reply."""
        ...

    async def send_notice(self, ctx: 'InteractionContext', text: str) -> None:
        """Show a short notice to the user behind the interaction."""
        ...
