from __future__ import annotations

import discord

from ..core.formatter import EmbedPayload


def to_discord_embed(payload: EmbedPayload) -> discord.Embed:
    """Build a :class:`discord.Embed` from a rendered payload."""
    e = discord.Embed(
        title=payload.title,
        description=payload.description,
        color=discord.Color(payload.color) if payload.color is not None else None,
    )
    for field in payload.fields:
        e.add_field(name=field.name, value=field.value, inline=field.inline)
    if payload.footer:
        e.set_footer(text=payload.footer)
    return e
