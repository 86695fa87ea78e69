"""Collect the users signed up to a recruitment through reactions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..adapters.base import ChatGateway
from .battle import BattleCategory, normalize_emoji
from .errors import PlatformError

log = logging.getLogger("gbf_recruit.aggregator")

PAGE_SIZE = 100


@dataclass
class ParticipantGroups:
    """Reacting users grouped by emoji, in the category's emoji order."""

    groups: dict[str, list[int]] = field(default_factory=dict)
    failed: set[str] = field(default_factory=set)

    def unique(self) -> list[int]:
        """Distinct users in first-seen order across all groups."""
        seen: dict[int, None] = {}
        for users in self.groups.values():
            for user_id in users:
                seen.setdefault(user_id, None)
        return list(seen)

    @property
    def count(self) -> int:
        return len(self.unique())


class ReactionAggregator:
    def __init__(self, gateway: ChatGateway, page_size: int = PAGE_SIZE) -> None:
        self.gateway = gateway
        self.page_size = page_size

    async def collect(
        self, channel_id: int, message_id: int, category: BattleCategory
    ) -> ParticipantGroups:
        """Return the participants of the message for ``category``.

        Reaction entries whose emoji is not part of the category are ignored.
        A group whose users cannot be fetched is logged, left empty and
        listed in ``failed``; the remaining groups are still collected.
        Failing to read the message itself raises :class:`PlatformError`.
        """
        bot_id = await self.gateway.current_user_id()
        present = {
            normalize_emoji(e): e
            for e in await self.gateway.fetch_reaction_emojis(channel_id, message_id)
        }

        result = ParticipantGroups()
        for emoji in category.emojis:
            result.groups[emoji] = []
            live = present.get(normalize_emoji(emoji))
            if live is None:
                continue
            try:
                users = await self._fetch_all(channel_id, message_id, live)
            except PlatformError:
                log.warning(
                    "Could not fetch %s reactions on message %s; skipping the group",
                    emoji,
                    message_id,
                    exc_info=True,
                )
                result.failed.add(emoji)
                continue
            result.groups[emoji] = [u for u in users if u != bot_id]
        return result

    async def _fetch_all(self, channel_id: int, message_id: int, emoji: str) -> list[int]:
        users: list[int] = []
        seen: set[int] = set()
        after: int | None = None
        while True:
            page = await self.gateway.fetch_reaction_users(
                channel_id, message_id, emoji, after=after, limit=self.page_size
            )
            for user_id in page:
                if user_id not in seen:
                    seen.add(user_id)
                    users.append(user_id)
            if len(page) < self.page_size:
                return users
            after = page[-1]
