"""Discord bot wiring reaction events and a start scheduler to the engine."""

from __future__ import annotations

import datetime
from datetime import UTC
from typing import Any

import discord
from discord.ext import commands, tasks

from .core.errors import RecruitError
from .core.lifecycle import RecruitmentEngine
from .logging_config import setup_logging


class RecruitBot(commands.Bot):
    """``discord.py`` client that feeds gateway events to the engine."""

    start_task: tasks.Loop | None

    def __init__(self, engine: RecruitmentEngine, **kwargs: Any) -> None:
        """Initialize the bot with the intents reaction tracking needs."""
        intents = kwargs.pop("intents", None) or discord.Intents.default()
        intents.guild_reactions = True
        # Slash commands and reactions only; message content is not needed.
        intents.message_content = False
        super().__init__(
            command_prefix=kwargs.pop("command_prefix", "!"),
            intents=intents,
        )
        self.engine = engine
        self.log = setup_logging()
        self.start_task = None

    async def setup_hook(self) -> None:
        """Start the departure scheduler and sync slash commands."""
        self.start_task = tasks.loop(
            seconds=float(self.engine.settings.start_poll_seconds), reconnect=True
        )(_start_due_recruitments)
        self.start_task.start(self)

        # Per-guild syncing happens in ``on_ready`` once the guilds are known.
        if not self.engine.settings.sync_per_guild:
            await self.tree.sync()
        await super().setup_hook()

    async def on_ready(self) -> None:  # pragma: no cover - requires discord
        """Log a short confirmation once the bot connected successfully."""
        await self.change_presence(activity=discord.Game(name="Granblue Fantasy"))
        self.log.info(
            "Logged in as %s (%s)",
            self.user,
            self.user.id if self.user else "?",
        )
        if self.engine.settings.sync_per_guild:
            for guild in self.guilds:
                try:
                    self.tree.copy_global_to(guild=guild)
                    await self.tree.sync(guild=guild)
                except discord.HTTPException:
                    self.log.exception("Failed to sync commands for guild %s", guild.id)

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        await self._participants_changed(payload)

    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        await self._participants_changed(payload)

    async def _participants_changed(self, payload: discord.RawReactionActionEvent) -> None:
        if payload.guild_id is None:
            return
        if self.user is not None and payload.user_id == self.user.id:
            return
        try:
            await self.engine.on_participant_change(
                payload.guild_id, payload.channel_id, payload.message_id
            )
        except RecruitError:
            # Reaction events have no user to report to; the event is dropped.
            self.log.exception(
                "Failed to handle reaction on message %s", payload.message_id
            )


async def _start_due_recruitments(bot: RecruitBot) -> None:
    """Background task posting the departure notice for expired recruitments."""
    try:
        started = await bot.engine.start_due(datetime.datetime.now(tz=UTC))
    except RecruitError:
        bot.log.exception("Departure sweep failed")
        return
    if started:
        bot.log.info("Started %s recruitments", started)


__all__ = [
    "RecruitBot",
    "_start_due_recruitments",
]
