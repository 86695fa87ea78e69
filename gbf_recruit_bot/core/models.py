"""Data models for the recruitment core.

The models are implemented using :mod:`pydantic` so that rows coming back
from the store are validated once at the boundary and the rest of the code
can rely on proper types (timezone aware datetimes, :class:`BattleCategory`
members instead of raw integers).
"""

from __future__ import annotations

import datetime
from enum import Enum

from pydantic import BaseModel, Field

from .battle import BattleCategory


class RecruitmentStatus(str, Enum):
    """Lifecycle state of a recruitment; only ``OPEN`` is non-terminal."""

    OPEN = "open"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    STARTED = "started"

    @property
    def is_terminal(self) -> bool:
        return self is not RecruitmentStatus.OPEN


class Quest(BaseModel):
    """Canonical quest record resolved from an alias or a target id.

    Attributes
    ----------
    target_id:
        Numeric identifier shared by the quest and all of its aliases.
    name:
        Display name used in recruitment messages.
    default_category:
        Category substituted when a recruitment asks for ``DEFAULT``.

    """

    target_id: int
    name: str
    default_category: BattleCategory = BattleCategory.ALL_ELEMENT


class Recruitment(BaseModel):
    """One open call for party members, tied to a posted message."""

    id: int
    guild_id: int
    channel_id: int
    message_id: int
    target_id: int | None = None
    quest_name: str
    battle_category: BattleCategory
    # ``None`` when the persisted value could not be parsed.
    expiry: datetime.datetime | None = None
    completion_message_id: int | None = None
    # An announcement slot was claimed and its message id is not recorded yet.
    completion_pending: bool = False
    status: RecruitmentStatus = RecruitmentStatus.OPEN
    created_at: datetime.datetime | None = None

    @property
    def key(self) -> tuple[int, int, int]:
        return (self.guild_id, self.channel_id, self.message_id)


class MessageText(BaseModel):
    """Guild specific text looked up by a fixed message key."""

    guild_id: int
    key: str
    text_ja: str
    text_en: str | None = None

    def text_for(self, locale: str) -> str:
        if locale.lower().startswith("en") and self.text_en:
            return self.text_en
        return self.text_ja


class CreatedRecruitment(BaseModel):
    """Result of a successful ``create`` call."""

    guild_id: int
    channel_id: int
    message_id: int
    quest_name: str
    battle_category: BattleCategory
    content: str
    # ``None`` when the message was posted but the row could not be stored.
    recruitment: Recruitment | None = None
    failed_reactions: list[str] = Field(default_factory=list)
