from __future__ import annotations

import re

import discord

_MESSAGE_LINK = re.compile(r"/channels/(?:\d+|@me)/\d+/(\d+)/?$")


def has_control_role(member: discord.abc.User, role_name: str) -> bool:
    """Return ``True`` if ``member`` carries the role named ``role_name``.

    Users outside a guild (DMs) have no roles and never pass.
    """
    roles = getattr(member, "roles", None) or []
    return any(getattr(role, "name", None) == role_name for role in roles)


def parse_message_id(text: str) -> int | None:
    """Accept either a raw message id or a Discord message link."""
    text = text.strip()
    if text.isdigit():
        return int(text)
    m = _MESSAGE_LINK.search(text)
    return int(m.group(1)) if m else None
