"""Base gateway interface for chat platform implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..core.formatter import EmbedPayload


class ChatGateway(ABC):
    """Abstract gateway for the chat platform calls the recruitment core needs.

    Implementations raise :class:`~gbf_recruit_bot.core.errors.PlatformError`
    for every failed call.
    """

    @abstractmethod
    async def current_user_id(self) -> int:
        """Return the id of the bot account."""

    @abstractmethod
    async def send_message(
        self,
        channel_id: int,
        content: str,
        embed: EmbedPayload | None = None,
        reply_to: int | None = None,
    ) -> int:
        """Post a message (optionally as a reply) and return its id."""

    @abstractmethod
    async def edit_message(
        self,
        channel_id: int,
        message_id: int,
        content: str | None = None,
        embed: EmbedPayload | None = None,
    ) -> None:
        """Replace the content and/or embed of an existing message."""

    @abstractmethod
    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        """React to a message as the bot."""

    @abstractmethod
    async def fetch_reaction_emojis(self, channel_id: int, message_id: int) -> list[str]:
        """Return the emoji of every reaction entry currently on the message."""

    @abstractmethod
    async def fetch_reaction_users(
        self,
        channel_id: int,
        message_id: int,
        emoji: str,
        after: int | None = None,
        limit: int = 100,
    ) -> list[int]:
        """Return one page of user ids that reacted with ``emoji``."""
