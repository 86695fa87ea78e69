"""Core package for the GBF battle recruitment bot.

This module exposes the recruitment engine, its data models and the SQLite
store so that consumers of the package can simply import them from
``gbf_recruit_bot``. The Discord client lives in :mod:`gbf_recruit_bot.bot`
and is only imported by the entry point.
"""

from .core.battle import BattleCategory
from .core.lifecycle import RecruitmentEngine
from .core.models import Quest, Recruitment, RecruitmentStatus
from .data.store import RecruitStore

__all__ = [
    "BattleCategory",
    "Quest",
    "Recruitment",
    "RecruitmentEngine",
    "RecruitmentStatus",
    "RecruitStore",
]
