"""SQLite persistence for quests, recruitments, message texts and settings."""

from __future__ import annotations

import datetime
import logging
from datetime import UTC
from pathlib import Path
from typing import Any

import aiosqlite

from ..core.battle import BattleCategory
from ..core.errors import PersistenceError
from ..core.models import MessageText, Quest, Recruitment, RecruitmentStatus
from .base import MessageTextRepository, QuestDirectory, RecruitmentRepository

log = logging.getLogger("gbf_recruit.store")

# Marks a completion announcement that is being posted but has no id yet.
# Discord snowflakes are never zero.
CLAIMED = 0

SCHEMA = """
CREATE TABLE IF NOT EXISTS quests (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    target_id INTEGER NOT NULL UNIQUE,
    quest_name TEXT NOT NULL,
    default_battle_type INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS quests_alias (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    target_id INTEGER NOT NULL REFERENCES quests (target_id),
    alias TEXT NOT NULL UNIQUE COLLATE NOCASE,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS battle_recruitments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    guild_id INTEGER NOT NULL,
    channel_id INTEGER NOT NULL,
    message_id INTEGER NOT NULL,
    target_id INTEGER,
    quest_name TEXT NOT NULL,
    battle_type_id INTEGER NOT NULL,
    expiry_date TEXT NOT NULL,
    recruit_end_message_id INTEGER,
    status TEXT NOT NULL DEFAULT 'open',
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (guild_id, channel_id, message_id)
);

CREATE INDEX IF NOT EXISTS idx_battle_recruitments_status
ON battle_recruitments (status);

CREATE TABLE IF NOT EXISTS message_texts (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    guild_id INTEGER NOT NULL,
    message_id TEXT NOT NULL,
    message_jp TEXT NOT NULL,
    message_en TEXT,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL,
    UNIQUE (guild_id, message_id)
);

CREATE TABLE IF NOT EXISTS environments (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.datetime.now(tz=UTC).isoformat()


def _dump_dt(value: datetime.datetime) -> str:
    if value.tzinfo is None or value.utcoffset() is None:
        raise PersistenceError(f"Refusing to store naive datetime {value.isoformat()}")
    return value.astimezone(UTC).isoformat()


def _load_dt(value: Any) -> datetime.datetime | None:
    """Parse a stored timestamp; malformed values load as ``None``."""
    if not value:
        return None
    try:
        parsed = datetime.datetime.fromisoformat(str(value))
    except ValueError:
        log.warning("Ignoring malformed stored datetime %r", value)
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


class RecruitStore(QuestDirectory, RecruitmentRepository, MessageTextRepository):
    """``aiosqlite`` backed store behind all three repository interfaces.

    One connection is shared by every caller. Each public method is a single
    statement (or a read followed by nothing that depends on it), so the
    conditional updates used for the completion announcement and status
    transitions are atomic without any lock in Python.
    """

    def __init__(self, path: str | Path = "gbf_recruit.db") -> None:
        self.path = str(path)
        self._db: aiosqlite.Connection | None = None

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------
    async def open(self) -> None:
        if self._db is not None:
            return
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        try:
            self._db = await aiosqlite.connect(self.path)
            self._db.row_factory = aiosqlite.Row
            if self.path != ":memory:":
                await self._db.execute("PRAGMA journal_mode=WAL")
            await self._db.executescript(SCHEMA)
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(f"Failed to open store at {self.path}: {exc}") from exc
        log.info("Recruit store opened at %s", self.path)

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> RecruitStore:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    @property
    def db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise PersistenceError("Store is not open")
        return self._db

    async def _fetchone(self, sql: str, params: tuple = ()) -> aiosqlite.Row | None:
        try:
            async with self.db.execute(sql, params) as cursor:
                return await cursor.fetchone()
        except aiosqlite.Error as exc:
            raise PersistenceError(str(exc)) from exc

    async def _fetchall(self, sql: str, params: tuple = ()) -> list[aiosqlite.Row]:
        try:
            async with self.db.execute(sql, params) as cursor:
                return list(await cursor.fetchall())
        except aiosqlite.Error as exc:
            raise PersistenceError(str(exc)) from exc

    async def _write(self, sql: str, params: tuple = ()) -> tuple[int, int | None]:
        """Run one write statement and return ``(rowcount, lastrowid)``."""
        try:
            cursor = await self.db.execute(sql, params)
            await self.db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(str(exc)) from exc
        return cursor.rowcount, cursor.lastrowid

    # ------------------------------------------------------------------
    # Quest directory
    # ------------------------------------------------------------------
    @staticmethod
    def _row_to_quest(row: aiosqlite.Row) -> Quest:
        try:
            category = BattleCategory.from_value(row["default_battle_type"])
        except ValueError:
            category = BattleCategory.ALL_ELEMENT
        return Quest(
            target_id=row["target_id"], name=row["quest_name"], default_category=category
        )

    async def add_quest(
        self,
        target_id: int,
        name: str,
        default_category: BattleCategory = BattleCategory.ALL_ELEMENT,
        aliases: list[str] | None = None,
    ) -> Quest:
        now = _now()
        await self._write(
            "INSERT INTO quests (target_id, quest_name, default_battle_type, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (target_id, name, int(default_category), now, now),
        )
        for alias in aliases or []:
            await self.add_alias(target_id, alias)
        return Quest(target_id=target_id, name=name, default_category=default_category)

    async def add_alias(self, target_id: int, alias: str) -> None:
        now = _now()
        await self._write(
            "INSERT INTO quests_alias (target_id, alias, created_at, updated_at) "
            "VALUES (?, ?, ?, ?)",
            (target_id, alias.strip(), now, now),
        )

    async def find_by_alias(self, alias: str) -> Quest | None:
        alias = alias.strip()
        row = await self._fetchone(
            "SELECT q.* FROM quests_alias a JOIN quests q ON q.target_id = a.target_id "
            "WHERE a.alias = ? COLLATE NOCASE",
            (alias,),
        )
        if row is None:
            row = await self._fetchone(
                "SELECT * FROM quests WHERE quest_name = ? COLLATE NOCASE", (alias,)
            )
        return self._row_to_quest(row) if row else None

    async def find_by_target_id(self, target_id: int) -> Quest | None:
        row = await self._fetchone("SELECT * FROM quests WHERE target_id = ?", (target_id,))
        return self._row_to_quest(row) if row else None

    async def search_aliases(self, prefix: str, limit: int = 25) -> list[str]:
        """Aliases and quest names starting with ``prefix`` for autocomplete."""
        pattern = prefix.replace("%", r"\%").replace("_", r"\_") + "%"
        rows = await self._fetchall(
            "SELECT alias AS name FROM quests_alias WHERE alias LIKE ? ESCAPE '\\' "
            "UNION SELECT quest_name AS name FROM quests WHERE quest_name LIKE ? ESCAPE '\\' "
            "ORDER BY name LIMIT ?",
            (pattern, pattern, limit),
        )
        return [row["name"] for row in rows]

    # ------------------------------------------------------------------
    # Recruitments
    # ------------------------------------------------------------------
    @staticmethod
    def _row_to_recruitment(row: aiosqlite.Row) -> Recruitment:
        try:
            category = BattleCategory.from_value(row["battle_type_id"])
        except ValueError:
            log.warning(
                "Recruitment %s has unknown battle type %r", row["id"], row["battle_type_id"]
            )
            category = BattleCategory.DEFAULT
        try:
            status = RecruitmentStatus(row["status"])
        except ValueError:
            status = RecruitmentStatus.OPEN
        end_id = row["recruit_end_message_id"]
        return Recruitment(
            id=row["id"],
            guild_id=row["guild_id"],
            channel_id=row["channel_id"],
            message_id=row["message_id"],
            target_id=row["target_id"],
            quest_name=row["quest_name"],
            battle_category=category,
            expiry=_load_dt(row["expiry_date"]),
            completion_message_id=None if end_id == CLAIMED else end_id,
            completion_pending=end_id == CLAIMED,
            status=status,
            created_at=_load_dt(row["created_at"]),
        )

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
        now = _now()
        _, rid = await self._write(
            "INSERT INTO battle_recruitments (guild_id, channel_id, message_id, target_id, "
            "quest_name, battle_type_id, expiry_date, status, created_at, updated_at) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                guild_id,
                channel_id,
                message_id,
                target_id,
                quest_name,
                int(battle_category),
                _dump_dt(expiry),
                RecruitmentStatus.OPEN.value,
                now,
                now,
            ),
        )
        recruitment = await self.get(rid)
        if recruitment is None:
            raise PersistenceError(f"Recruitment {rid} vanished after insert")
        return recruitment

    async def get(self, recruitment_id: int) -> Recruitment | None:
        row = await self._fetchone(
            "SELECT * FROM battle_recruitments WHERE id = ?", (recruitment_id,)
        )
        return self._row_to_recruitment(row) if row else None

    async def get_by_message(
        self, guild_id: int, channel_id: int, message_id: int
    ) -> Recruitment | None:
        row = await self._fetchone(
            "SELECT * FROM battle_recruitments "
            "WHERE guild_id = ? AND channel_id = ? AND message_id = ?",
            (guild_id, channel_id, message_id),
        )
        return self._row_to_recruitment(row) if row else None

    async def has_completion_announcement(self, recruitment_id: int) -> bool | None:
        row = await self._fetchone(
            "SELECT recruit_end_message_id FROM battle_recruitments WHERE id = ?",
            (recruitment_id,),
        )
        if row is None:
            return None
        return row["recruit_end_message_id"] is not None

    async def claim_completion_announcement(self, recruitment_id: int) -> bool:
        count, _ = await self._write(
            "UPDATE battle_recruitments SET recruit_end_message_id = ?, updated_at = ? "
            "WHERE id = ? AND recruit_end_message_id IS NULL",
            (CLAIMED, _now(), recruitment_id),
        )
        return count == 1

    async def record_completion_announcement(
        self, recruitment_id: int, message_id: int
    ) -> None:
        count, _ = await self._write(
            "UPDATE battle_recruitments SET recruit_end_message_id = ?, "
            "status = CASE WHEN status = 'open' THEN 'complete' ELSE status END, "
            "updated_at = ? WHERE id = ? AND recruit_end_message_id = ?",
            (message_id, _now(), recruitment_id, CLAIMED),
        )
        if count != 1:
            raise PersistenceError(
                f"Recruitment {recruitment_id} has no claimed completion announcement"
            )

    async def release_completion_announcement(self, recruitment_id: int) -> None:
        await self._write(
            "UPDATE battle_recruitments SET recruit_end_message_id = NULL, updated_at = ? "
            "WHERE id = ? AND recruit_end_message_id = ?",
            (_now(), recruitment_id, CLAIMED),
        )

    async def release_pending_announcements(self) -> int:
        count, _ = await self._write(
            "UPDATE battle_recruitments SET recruit_end_message_id = NULL, updated_at = ? "
            "WHERE recruit_end_message_id = ? AND status = ?",
            (_now(), CLAIMED, RecruitmentStatus.OPEN.value),
        )
        if count:
            log.warning("Released %s completion claims left by an earlier run", count)
        return count

    async def set_completion_announcement(
        self, recruitment_id: int, message_id: int
    ) -> bool:
        count, _ = await self._write(
            "UPDATE battle_recruitments SET recruit_end_message_id = ?, "
            "status = CASE WHEN status = 'open' THEN 'complete' ELSE status END, "
            "updated_at = ? WHERE id = ? AND recruit_end_message_id IS NULL",
            (message_id, _now(), recruitment_id),
        )
        return count == 1

    async def transition(
        self, recruitment_id: int, status: RecruitmentStatus
    ) -> bool:
        count, _ = await self._write(
            "UPDATE battle_recruitments SET status = ?, updated_at = ? "
            "WHERE id = ? AND status = ?",
            (status.value, _now(), recruitment_id, RecruitmentStatus.OPEN.value),
        )
        return count == 1

    async def list_due(self, now: datetime.datetime) -> list[Recruitment]:
        rows = await self._fetchall(
            "SELECT * FROM battle_recruitments WHERE status = ? ORDER BY id",
            (RecruitmentStatus.OPEN.value,),
        )
        due = []
        for row in rows:
            recruitment = self._row_to_recruitment(row)
            if recruitment.expiry is not None and recruitment.expiry <= now:
                due.append(recruitment)
        return due

    # ------------------------------------------------------------------
    # Message texts
    # ------------------------------------------------------------------
    async def set_message(
        self, guild_id: int, key: str, text_ja: str, text_en: str | None = None
    ) -> MessageText:
        now = _now()
        await self._write(
            "INSERT INTO message_texts (guild_id, message_id, message_jp, message_en, "
            "created_at, updated_at) VALUES (?, ?, ?, ?, ?, ?) "
            "ON CONFLICT (guild_id, message_id) DO UPDATE SET "
            "message_jp = excluded.message_jp, message_en = excluded.message_en, "
            "updated_at = excluded.updated_at",
            (guild_id, key, text_ja, text_en, now, now),
        )
        return MessageText(guild_id=guild_id, key=key, text_ja=text_ja, text_en=text_en)

    async def get_message(self, guild_id: int, key: str, locale: str) -> str | None:
        row = await self._fetchone(
            "SELECT * FROM message_texts WHERE guild_id = ? AND message_id = ?",
            (guild_id, key),
        )
        if row is None:
            return None
        text = MessageText(
            guild_id=row["guild_id"],
            key=row["message_id"],
            text_ja=row["message_jp"],
            text_en=row["message_en"],
        )
        return text.text_for(locale)

    # ------------------------------------------------------------------
    # Environment rows
    # ------------------------------------------------------------------
    async def set_environment(self, key: str, value: str) -> None:
        await self._write(
            "INSERT INTO environments (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT (key) DO UPDATE SET value = excluded.value, "
            "updated_at = excluded.updated_at",
            (key, value, _now()),
        )

    async def list_environment(self) -> dict[str, str]:
        rows = await self._fetchall("SELECT key, value FROM environments ORDER BY key")
        return {row["key"]: row["value"] for row in rows}
