"""Store interfaces consumed by the lifecycle engine."""

from __future__ import annotations

import datetime
from abc import ABC, abstractmethod

from ..core.battle import BattleCategory
from ..core.models import Quest, Recruitment, RecruitmentStatus


class QuestDirectory(ABC):
    """Read-only lookup of quests by alias or target id."""

    @abstractmethod
    async def find_by_alias(self, alias: str) -> Quest | None:
        """Resolve ``alias`` (or an exact quest name) to its quest."""

    @abstractmethod
    async def find_by_target_id(self, target_id: int) -> Quest | None:
        """Return the quest with ``target_id``."""


class RecruitmentRepository(ABC):
    """Persistence of recruitment rows.

    The completion announcement column is written at most once. Callers
    reserve it with :meth:`claim_completion_announcement` before posting and
    either :meth:`record_completion_announcement` or
    :meth:`release_completion_announcement` afterwards; the claim is a single
    conditional write so concurrent reaction events cannot both win.

    While a claim is outstanding the loaded row reports
    ``completion_pending`` and no ``completion_message_id``. A process that
    dies between claim and record leaves the claim behind, blocking the
    announcement; :meth:`release_pending_announcements` clears such claims
    on open recruitments and is run once at startup.
    """

    @abstractmethod
    async def create(
        self,
        guild_id: int,
        channel_id: int,
        message_id: int,
        target_id: int | None,
        quest_name: str,
        battle_category: BattleCategory,
        expiry: datetime.datetime,
    ) -> Recruitment:
        """Insert a new open recruitment."""

    @abstractmethod
    async def get_by_message(
        self, guild_id: int, channel_id: int, message_id: int
    ) -> Recruitment | None:
        """Look a recruitment up by its composite message key."""

    @abstractmethod
    async def has_completion_announcement(self, recruitment_id: int) -> bool | None:
        """``None`` if the recruitment does not exist."""

    @abstractmethod
    async def claim_completion_announcement(self, recruitment_id: int) -> bool:
        """Atomically reserve the announcement slot; ``False`` if already taken."""

    @abstractmethod
    async def record_completion_announcement(
        self, recruitment_id: int, message_id: int
    ) -> None:
        """Store the id of the posted announcement for a claimed slot."""

    @abstractmethod
    async def release_completion_announcement(self, recruitment_id: int) -> None:
        """Give a claimed slot back after the announcement could not be posted."""

    @abstractmethod
    async def release_pending_announcements(self) -> int:
        """Release claims left on open recruitments; returns how many."""

    @abstractmethod
    async def set_completion_announcement(
        self, recruitment_id: int, message_id: int
    ) -> bool:
        """Conditionally set the announcement id; ``False`` if one was set."""

    @abstractmethod
    async def transition(
        self, recruitment_id: int, status: RecruitmentStatus
    ) -> bool:
        """Move an open recruitment to ``status``; ``False`` if it was not open."""

    @abstractmethod
    async def list_due(self, now: datetime.datetime) -> list[Recruitment]:
        """Open recruitments whose expiry is at or before ``now``."""


class MessageTextRepository(ABC):
    """Localized text lookup by fixed message key."""

    @abstractmethod
    async def get_message(self, guild_id: int, key: str, locale: str) -> str | None:
        """Return the text for ``key`` in ``locale`` or ``None`` if unknown."""
