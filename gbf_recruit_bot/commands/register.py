"""Registration of slash commands for the bot."""

from __future__ import annotations

import datetime
import logging

import discord
from discord.ext import commands

from ..config import apply_overrides
from ..core.battle import BattleCategory
from ..core.dates import parse_event_date, require_future
from ..core.errors import RecruitError
from ..core.formatter import help_payload
from ..core.lifecycle import RecruitmentEngine
from ..core.messages import text, user_error
from ..data.store import RecruitStore
from ..ui.embeds import to_discord_embed
from .utils import has_control_role, parse_message_id

log = logging.getLogger("gbf_recruit.commands")

BATTLE_TYPE_CHOICES = [
    discord.app_commands.Choice(name=category.label, value=int(category))
    for category in BattleCategory
]


def register_commands(
    bot: commands.Bot, engine: RecruitmentEngine, store: RecruitStore
) -> None:
    """Register the recruitment slash commands on ``bot.tree``."""
    tree = bot.tree

    @tree.command(name="recruit", description="Create a battle recruitment")
    @discord.app_commands.describe(
        quest="Quest name or alias",
        battle_type="Elements to recruit (defaults to the quest's setting)",
        event_date="Departure date and time, e.g. 12/25 21:00",
    )
    @discord.app_commands.choices(battle_type=BATTLE_TYPE_CHOICES)
    async def recruit(
        interaction: discord.Interaction,
        quest: str,
        battle_type: int = int(BattleCategory.DEFAULT),
        event_date: str = "",
    ) -> None:
        locale = str(interaction.locale)
        if interaction.guild_id is None or interaction.channel_id is None:
            await interaction.response.send_message(
                user_error(RecruitError(), locale), ephemeral=True
            )
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            now = datetime.datetime.now(tz=engine.settings.tzinfo)
            expiry = require_future(parse_event_date(event_date, now), now)
            created = await engine.create(
                interaction.guild_id,
                interaction.channel_id,
                quest,
                BattleCategory.from_value(battle_type),
                expiry,
            )
        except RecruitError as exc:
            log.warning("/recruit %r failed: %s", quest, exc)
            await interaction.edit_original_response(content=user_error(exc, locale))
            return
        if created.recruitment is None:
            reply = text("untracked", locale)
        else:
            reply = text("created", locale)
        if created.failed_reactions:
            missing = text("reactions_missing", locale).format(
                emojis=" ".join(created.failed_reactions)
            )
            reply = f"{reply}\n{missing}"
        await interaction.edit_original_response(content=reply)

    @recruit.autocomplete("quest")
    async def recruit_quest_autocomplete(
        interaction: discord.Interaction, current: str
    ) -> list[discord.app_commands.Choice[str]]:
        try:
            names = await store.search_aliases(current, limit=25)
        except RecruitError:
            log.exception("Quest autocomplete failed")
            return []
        return [discord.app_commands.Choice(name=n, value=n) for n in names]

    @tree.command(name="recruit_cancel", description="Cancel a recruitment")
    @discord.app_commands.describe(message_id="ID or link of the recruitment message")
    async def recruit_cancel(interaction: discord.Interaction, message_id: str) -> None:
        locale = str(interaction.locale)
        if interaction.guild_id is None or interaction.channel_id is None:
            await interaction.response.send_message(
                user_error(RecruitError(), locale), ephemeral=True
            )
            return
        perms = getattr(interaction, "permissions", None)
        if not (
            has_control_role(interaction.user, engine.settings.control_role)
            or (perms is not None and perms.manage_messages)
        ):
            await interaction.response.send_message(
                text("no_permission", locale), ephemeral=True
            )
            return
        mid = parse_message_id(message_id)
        if mid is None:
            await interaction.response.send_message(
                text("invalid_message_id", locale), ephemeral=True
            )
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            await engine.cancel(interaction.guild_id, interaction.channel_id, mid)
        except RecruitError as exc:
            log.warning("/recruit_cancel %s failed: %s", mid, exc)
            await interaction.edit_original_response(content=user_error(exc, locale))
            return
        await interaction.edit_original_response(content=text("cancelled", locale))

    @tree.command(name="environ_load", description="Reload bot settings from the database")
    async def environ_load(interaction: discord.Interaction) -> None:
        locale = str(interaction.locale)
        if not has_control_role(interaction.user, engine.settings.control_role):
            await interaction.response.send_message(
                text("no_permission", locale), ephemeral=True
            )
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        try:
            values = await store.list_environment()
        except RecruitError as exc:
            log.exception("Reloading settings failed")
            await interaction.edit_original_response(content=user_error(exc, locale))
            return
        engine.settings = apply_overrides(engine.settings, values)
        log.info("Reloaded %s setting rows", len(values))
        await interaction.edit_original_response(content=text("reloaded", locale))

    @tree.command(name="help", description="Show help")
    async def help_command(interaction: discord.Interaction) -> None:
        await interaction.response.send_message(
            embed=to_discord_embed(help_payload()), ephemeral=True
        )
