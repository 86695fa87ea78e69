"""Recruitment lifecycle: create, follow signups, complete, cancel, start.

The engine keeps no state between calls. Every event re-reads the
recruitment row and the live reactions, so concurrent events for different
messages never interfere, and events for the same message only meet at the
store's conditional updates:

* the completion announcement slot is claimed with one conditional write
  before anything is posted, so only one event can announce;
* cancel and start move the row out of ``open`` with one conditional write
  before touching the message, so they win over late reaction events.
"""

from __future__ import annotations

import datetime
import logging
from datetime import UTC

from ..adapters.base import ChatGateway
from ..config import Settings
from ..data.base import MessageTextRepository, QuestDirectory, RecruitmentRepository
from . import formatter
from .aggregator import ParticipantGroups, ReactionAggregator
from .battle import BattleCategory
from .errors import (
    InvalidDateError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    PlatformError,
    QuestResolutionError,
)
from .messages import COMPLETION_MESSAGE_KEY, DEFAULT_COMPLETION_TEXT
from .models import CreatedRecruitment, Quest, Recruitment, RecruitmentStatus

log = logging.getLogger("gbf_recruit.lifecycle")


class RecruitmentEngine:
    """Orchestrates one recruitment message from creation to a terminal state.

    ``settings`` is read on every call, so replacing the attribute (as the
    reload command does) takes effect for the next event.
    """

    def __init__(
        self,
        gateway: ChatGateway,
        quests: QuestDirectory,
        recruitments: RecruitmentRepository,
        texts: MessageTextRepository,
        settings: Settings,
    ) -> None:
        self.gateway = gateway
        self.quests = quests
        self.recruitments = recruitments
        self.texts = texts
        self.settings = settings
        self.aggregator = ReactionAggregator(gateway)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _local(self, value: datetime.datetime | None) -> datetime.datetime | None:
        if value is None:
            return None
        return value.astimezone(self.settings.tzinfo)

    async def _resolve_quest(self, quest_text: str) -> Quest | None:
        try:
            return await self.quests.find_by_alias(quest_text)
        except PersistenceError:
            log.exception("Quest lookup for %r failed; using the literal name", quest_text)
            return None

    async def _load(self, guild_id: int, channel_id: int, message_id: int) -> Recruitment:
        recruitment = await self.recruitments.get_by_message(guild_id, channel_id, message_id)
        if recruitment is None:
            raise NotFoundError(
                f"No recruitment for message {guild_id}/{channel_id}/{message_id}"
            )
        return recruitment

    async def _completion_text(self, guild_id: int) -> str:
        try:
            text = await self.texts.get_message(
                guild_id, COMPLETION_MESSAGE_KEY, self.settings.locale
            )
        except PersistenceError:
            log.exception("Could not load completion text for guild %s", guild_id)
            text = None
        return text or DEFAULT_COMPLETION_TEXT

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    async def create(
        self,
        guild_id: int,
        channel_id: int,
        quest_text: str,
        battle_category: BattleCategory,
        expiry: datetime.datetime,
    ) -> CreatedRecruitment:
        """Post a recruitment message, react to it and store the row.

        An unknown quest is not an error: the text is used as the display
        name. Only a failure to post the message raises
        (:class:`QuestResolutionError`); failed reactions and a failed
        insert are logged and reported on the result.
        """
        if expiry.tzinfo is None or expiry.utcoffset() is None:
            raise InvalidDateError(f"Expiry {expiry.isoformat()} has no timezone")
        quest_text = quest_text.strip()
        quest = await self._resolve_quest(quest_text)
        if quest is None:
            log.info("No quest matches %r; recruiting under the literal name", quest_text)
            quest_name, target_id = quest_text, None
        else:
            quest_name, target_id = quest.name, quest.target_id

        category = battle_category
        if category is BattleCategory.DEFAULT and quest is not None:
            category = quest.default_category

        rendered = formatter.render_recruitment(quest_name, category, self._local(expiry))
        try:
            message_id = await self.gateway.send_message(
                channel_id, rendered.content, embed=rendered.embed
            )
        except PlatformError as exc:
            raise QuestResolutionError(
                f"Could not post the recruitment for {quest_name!r}: {exc}", exc.status
            ) from exc

        failed_reactions = []
        for emoji in category.emojis:
            try:
                await self.gateway.add_reaction(channel_id, message_id, emoji)
            except PlatformError:
                log.warning("Could not add %s to message %s", emoji, message_id, exc_info=True)
                failed_reactions.append(emoji)

        recruitment = None
        try:
            recruitment = await self.recruitments.create(
                guild_id, channel_id, message_id, target_id, quest_name, category, expiry
            )
        except PersistenceError:
            log.exception(
                "Recruitment message %s was posted but could not be stored", message_id
            )
        else:
            log.info(
                "Created recruitment %s for %r (%s) on message %s",
                recruitment.id,
                quest_name,
                category.name,
                message_id,
            )

        return CreatedRecruitment(
            guild_id=guild_id,
            channel_id=channel_id,
            message_id=message_id,
            quest_name=quest_name,
            battle_category=category,
            content=rendered.content,
            recruitment=recruitment,
            failed_reactions=failed_reactions,
        )

    async def on_participant_change(
        self, guild_id: int, channel_id: int, message_id: int
    ) -> ParticipantGroups | None:
        """Refresh the participant list and announce completion once.

        Returns ``None`` when the message is not an active recruitment.
        """
        recruitment = await self.recruitments.get_by_message(guild_id, channel_id, message_id)
        if recruitment is None:
            return None
        if recruitment.status in (RecruitmentStatus.CANCELLED, RecruitmentStatus.STARTED):
            log.debug("Ignoring reaction on %s recruitment %s", recruitment.status.value, recruitment.id)
            return None

        participants = await self.aggregator.collect(
            channel_id, message_id, recruitment.battle_category
        )
        rendered = formatter.render_recruitment(
            recruitment.quest_name,
            recruitment.battle_category,
            self._local(recruitment.expiry),
            participants.groups,
        )
        await self.gateway.edit_message(
            channel_id, message_id, content=rendered.content, embed=rendered.embed
        )

        if (
            participants.count >= self.settings.party_size
            and recruitment.completion_message_id is None
            and not recruitment.completion_pending
        ):
            await self._announce_completion(recruitment, participants)
        return participants

    async def _announce_completion(
        self, recruitment: Recruitment, participants: ParticipantGroups
    ) -> None:
        if not await self.recruitments.claim_completion_announcement(recruitment.id):
            log.debug("Recruitment %s was already announced", recruitment.id)
            return

        text = await self._completion_text(recruitment.guild_id)
        content = formatter.completion_content(participants.unique(), text)
        try:
            announcement_id = await self.gateway.send_message(
                recruitment.channel_id, content, reply_to=recruitment.message_id
            )
        except PlatformError:
            await self.recruitments.release_completion_announcement(recruitment.id)
            raise
        await self.recruitments.record_completion_announcement(
            recruitment.id, announcement_id
        )
        log.info(
            "Recruitment %s is full (%s participants); announced in %s",
            recruitment.id,
            participants.count,
            announcement_id,
        )

    async def cancel(
        self, guild_id: int, channel_id: int, message_id: int
    ) -> ParticipantGroups:
        recruitment = await self._load(guild_id, channel_id, message_id)
        if not await self.recruitments.transition(recruitment.id, RecruitmentStatus.CANCELLED):
            raise InvalidTransitionError(
                f"Recruitment {recruitment.id} is already {recruitment.status.value}"
            )

        participants = await self.aggregator.collect(
            channel_id, message_id, recruitment.battle_category
        )
        rendered = formatter.render_cancelled(
            recruitment.quest_name,
            recruitment.battle_category,
            self._local(recruitment.expiry),
            participants.groups,
        )
        await self.gateway.edit_message(
            channel_id, message_id, content=rendered.content, embed=rendered.embed
        )
        await self.gateway.send_message(
            channel_id,
            formatter.cancellation_notice(participants.unique()),
            reply_to=message_id,
        )
        log.info("Cancelled recruitment %s", recruitment.id)
        return participants

    async def start(
        self, guild_id: int, channel_id: int, message_id: int, recruitment_id: int
    ) -> ParticipantGroups:
        recruitment = await self._load(guild_id, channel_id, message_id)
        if recruitment.id != recruitment_id:
            raise NotFoundError(
                f"Message {message_id} belongs to recruitment {recruitment.id}, "
                f"not {recruitment_id}"
            )
        if not await self.recruitments.transition(recruitment.id, RecruitmentStatus.STARTED):
            raise InvalidTransitionError(
                f"Recruitment {recruitment.id} is already {recruitment.status.value}"
            )

        participants = await self.aggregator.collect(
            channel_id, message_id, recruitment.battle_category
        )
        await self.gateway.send_message(
            channel_id,
            formatter.start_notice(recruitment.quest_name, participants.unique()),
            reply_to=message_id,
        )
        log.info("Started recruitment %s with %s participants", recruitment.id, participants.count)
        return participants

    async def start_due(self, now: datetime.datetime | None = None) -> int:
        """Start every open recruitment whose expiry has passed.

        Only ``open`` rows are swept. A party that already filled up is
        ``complete``, which is terminal, so it gets no departure notice;
        its completion announcement already mentioned everyone.

        Each recruitment is handled on its own; a failure is logged and the
        sweep continues. Returns how many were started.
        """
        now = now or datetime.datetime.now(tz=UTC)
        started = 0
        for recruitment in await self.recruitments.list_due(now):
            try:
                await self.start(
                    recruitment.guild_id,
                    recruitment.channel_id,
                    recruitment.message_id,
                    recruitment.id,
                )
            except InvalidTransitionError:
                continue
            except (PlatformError, PersistenceError, NotFoundError):
                log.exception("Could not start recruitment %s", recruitment.id)
                continue
            started += 1
        return started
