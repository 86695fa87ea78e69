"""Presentation of recruitments as message text and embeds.

Everything here is pure: the same input always renders the same output, no
I/O is performed and no clock is read. Expiry datetimes are rendered in the
timezone they carry, so callers convert before formatting.
"""

from __future__ import annotations

import datetime
from collections.abc import Iterable, Mapping, Sequence

from pydantic import BaseModel, Field

from .battle import BattleCategory
from .dates import format_expiry

EMBED_TITLE = "参加者一覧"
NO_PARTICIPANTS = "現在参加者はいません。"
EMPTY_GROUP = "無し"
CANCELLED_NOTICE = "この募集はキャンセルされました。"
CANCELLED_PREFIX = "【キャンセル】"
NO_ONE_DEPARTING = "参加者がいません"

OPEN_COLOR = 0x3498DB
CANCELLED_COLOR = 0x95A5A6


class EmbedField(BaseModel):
    name: str
    value: str
    inline: bool = False


class EmbedPayload(BaseModel):
    """Platform neutral embed; :meth:`to_dict` yields Discord's JSON shape."""

    title: str
    description: str
    color: int | None = None
    fields: list[EmbedField] = Field(default_factory=list)
    footer: str | None = None

    def to_dict(self) -> dict:
        data: dict = {"title": self.title, "description": self.description}
        if self.color is not None:
            data["color"] = self.color
        if self.fields:
            data["fields"] = [f.model_dump() for f in self.fields]
        if self.footer:
            data["footer"] = {"text": self.footer}
        return data


class RenderedMessage(BaseModel):
    content: str
    embed: EmbedPayload | None = None


def mention(user_id: int) -> str:
    return f"<@{user_id}>"


def mentions(user_ids: Iterable[int], sep: str = " ") -> str:
    return sep.join(mention(u) for u in user_ids)


def announcement_line(quest_name: str, category: BattleCategory) -> str:
    if category.is_all_elements:
        return f"{quest_name}の参加者を募集します！"
    return f"{quest_name}の{category.label}参加者を募集します！"


def announcement_content(
    quest_name: str, category: BattleCategory, expiry: datetime.datetime | None
) -> str:
    return f"{announcement_line(quest_name, category)}\n開催日時：{format_expiry(expiry)}"


def participant_fields(
    category: BattleCategory, groups: Mapping[str, Sequence[int]]
) -> list[EmbedField]:
    """One field per category emoji, in category order."""
    fields = []
    for emoji in category.emojis:
        users = groups.get(emoji) or ()
        value = mentions(users, sep="  ") if users else EMPTY_GROUP
        fields.append(EmbedField(name=emoji, value=value, inline=False))
    return fields


def _distinct_count(groups: Mapping[str, Sequence[int]]) -> int:
    return len({u for users in groups.values() for u in users})


def render_recruitment(
    quest_name: str,
    category: BattleCategory,
    expiry: datetime.datetime | None,
    groups: Mapping[str, Sequence[int]] | None = None,
) -> RenderedMessage:
    """Render the live recruitment message for the current signups."""
    groups = groups or {}
    count = _distinct_count(groups)
    description = f"現在の参加者：{count}人" if count else NO_PARTICIPANTS
    embed = EmbedPayload(
        title=EMBED_TITLE,
        description=description,
        color=OPEN_COLOR,
        fields=participant_fields(category, groups),
    )
    return RenderedMessage(
        content=announcement_content(quest_name, category, expiry), embed=embed
    )


def render_cancelled(
    quest_name: str,
    category: BattleCategory,
    expiry: datetime.datetime | None,
    groups: Mapping[str, Sequence[int]] | None = None,
) -> RenderedMessage:
    groups = groups or {}
    embed = EmbedPayload(
        title=EMBED_TITLE,
        description=CANCELLED_NOTICE,
        color=CANCELLED_COLOR,
        fields=participant_fields(category, groups),
    )
    content = f"{CANCELLED_PREFIX}{announcement_content(quest_name, category, expiry)}"
    return RenderedMessage(content=content, embed=embed)


def completion_content(participants: Iterable[int], text: str) -> str:
    return f"{mentions(participants)}\n{text}"


def cancellation_notice(participants: Sequence[int]) -> str:
    if not participants:
        return CANCELLED_NOTICE
    return f"{mentions(participants)}\n{CANCELLED_NOTICE}"


def start_notice(quest_name: str, participants: Sequence[int]) -> str:
    who = mentions(participants) if participants else NO_ONE_DEPARTING
    return (
        "🚀 **クエスト出発時間です！** 🚀\n\n"
        f"{quest_name}\n\n"
        f"参加者の皆さん: {who}\n\n"
        "クエストを開始してください！"
    )


def help_payload() -> EmbedPayload:
    return EmbedPayload(
        title="GBF Discord Bot Help",
        description=(
            "This bot helps manage Granblue Fantasy game activities in Discord servers."
        ),
        fields=[
            EmbedField(
                name="/recruit",
                value=(
                    "Create a battle recruitment with reactions for different elements.\n"
                    "Usage: `/recruit quest:<quest_name> [battle_type:<type>] "
                    "[event_date:<date>]`"
                ),
            ),
            EmbedField(
                name="/recruit_cancel",
                value=(
                    "Cancel a recruitment and notify its participants.\n"
                    "Usage: `/recruit_cancel message_id:<id>`"
                ),
            ),
            EmbedField(
                name="/environ_load",
                value=(
                    "Reload settings from the database.\n"
                    "Usage: `/environ_load`\n"
                    "Note: Requires the bot control role."
                ),
            ),
            EmbedField(name="/help", value="Show this help message.\nUsage: `/help`"),
        ],
        footer="GBF Discord Bot",
    )
