"""Shared fixtures: an in-memory chat gateway and a store path."""

from __future__ import annotations

import asyncio
import os
import sys
from dataclasses import dataclass, field
from typing import Any

import pytest

# Make the package importable when the tests run from a plain checkout
# rather than an installed copy.
ROOT_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from gbf_recruit_bot.adapters.base import ChatGateway
from gbf_recruit_bot.core.errors import PlatformError
from gbf_recruit_bot.core.formatter import EmbedPayload

BOT_ID = 999


@dataclass
class SentMessage:
    id: int
    channel_id: int
    content: str
    embed: EmbedPayload | None = None
    reply_to: int | None = None


@dataclass
class FakeGateway(ChatGateway):
    """Records every call and serves reactions like Discord does.

    Every method yields to the event loop once so concurrent handlers
    interleave the way real network calls would.
    """

    bot_id: int = BOT_ID
    next_id: int = 1000
    messages: dict[int, SentMessage] = field(default_factory=dict)
    sent: list[SentMessage] = field(default_factory=list)
    edits: list[tuple[int, str | None, EmbedPayload | None]] = field(default_factory=list)
    reactions: dict[int, dict[str, list[int]]] = field(default_factory=dict)
    user_page_calls: list[tuple[str, int | None]] = field(default_factory=list)
    fail_send: bool = False
    fail_add: set[str] = field(default_factory=set)
    fail_users: set[str] = field(default_factory=set)

    def react(self, message_id: int, emoji: str, user_id: int) -> None:
        users = self.reactions.setdefault(message_id, {}).setdefault(emoji, [])
        if user_id not in users:
            users.append(user_id)

    def replies_to(self, message_id: int) -> list[SentMessage]:
        return [m for m in self.sent if m.reply_to == message_id]

    async def current_user_id(self) -> int:
        await asyncio.sleep(0)
        return self.bot_id

    async def send_message(
        self,
        channel_id: int,
        content: str,
        embed: EmbedPayload | None = None,
        reply_to: int | None = None,
    ) -> int:
        await asyncio.sleep(0)
        if self.fail_send:
            raise PlatformError("send failed", status=500)
        self.next_id += 1
        msg = SentMessage(self.next_id, channel_id, content, embed, reply_to)
        self.messages[msg.id] = msg
        self.sent.append(msg)
        return msg.id

    async def edit_message(
        self,
        channel_id: int,
        message_id: int,
        content: str | None = None,
        embed: EmbedPayload | None = None,
    ) -> None:
        await asyncio.sleep(0)
        msg = self.messages[message_id]
        if content is not None:
            msg.content = content
        if embed is not None:
            msg.embed = embed
        self.edits.append((message_id, content, embed))

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        await asyncio.sleep(0)
        if emoji in self.fail_add:
            raise PlatformError(f"cannot add {emoji}", status=403)
        self.react(message_id, emoji, self.bot_id)

    async def fetch_reaction_emojis(self, channel_id: int, message_id: int) -> list[str]:
        await asyncio.sleep(0)
        return [e for e, users in self.reactions.get(message_id, {}).items() if users]

    async def fetch_reaction_users(
        self,
        channel_id: int,
        message_id: int,
        emoji: str,
        after: int | None = None,
        limit: int = 100,
    ) -> list[int]:
        await asyncio.sleep(0)
        self.user_page_calls.append((emoji, after))
        if emoji in self.fail_users:
            raise PlatformError(f"cannot list {emoji}", status=500)
        users = sorted(self.reactions.get(message_id, {}).get(emoji, []))
        if after is not None:
            users = [u for u in users if u > after]
        return users[:limit]


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def db_path(tmp_path: Any) -> str:
    return str(tmp_path / "recruit.db")
