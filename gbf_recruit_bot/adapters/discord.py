"""Discord gateway implementing :class:`~gbf_recruit_bot.adapters.base.ChatGateway`.

The adapter talks to Discord's HTTP API with :mod:`httpx` which keeps the
recruitment core independent from the event client while remaining fully
asynchronous. Every transport or HTTP failure is turned into a
:class:`~gbf_recruit_bot.core.errors.PlatformError`.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from ..core.errors import PlatformError
from ..core.formatter import EmbedPayload
from .base import ChatGateway

log = logging.getLogger("gbf_recruit.discord")


class DiscordAdapter(ChatGateway):
    """Gateway that sends requests directly to the Discord HTTP API."""

    api_base = "https://discord.com/api/v10"

    def __init__(self, token: str, client: httpx.AsyncClient | None = None) -> None:
        """Store authentication ``token`` and optional HTTP ``client``."""
        self.token = token
        self.client = client or httpx.AsyncClient(timeout=None)
        self._user_id: int | None = None

    # ------------------------------------------------------------------
    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        headers = {"Authorization": f"Bot {self.token}"}
        try:
            response = await self.client.request(
                method, f"{self.api_base}{path}", headers=headers, **kwargs
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            log.warning("Discord %s %s failed with HTTP %s", method, path, status)
            raise PlatformError(
                f"Discord {method} {path} failed with HTTP {status}", status=status
            ) from exc
        except httpx.HTTPError as exc:
            log.warning("Discord %s %s failed: %s", method, path, exc)
            raise PlatformError(f"Discord {method} {path} failed: {exc}") from exc
        return response

    @staticmethod
    def _emoji_path(emoji: str) -> str:
        return quote(emoji, safe="")

    # ------------------------------------------------------------------
    async def current_user_id(self) -> int:
        """Return the bot's own user id, fetched once and cached."""
        if self._user_id is None:
            response = await self._request("GET", "/users/@me")
            self._user_id = int(response.json()["id"])
        return self._user_id

    async def send_message(
        self,
        channel_id: int,
        content: str,
        embed: EmbedPayload | None = None,
        reply_to: int | None = None,
    ) -> int:
        """Send a message to a channel.

        Parameters
        ----------
        channel_id:
            Identifier of the Discord channel.
        content:
            Message body to send.
        embed:
            Optional embed attached to the message.
        reply_to:
            Message id to reply to. The reply degrades to a plain message if
            the referenced message no longer exists.

        """
        payload: dict[str, Any] = {"content": content}
        if embed is not None:
            payload["embeds"] = [embed.to_dict()]
        if reply_to is not None:
            payload["message_reference"] = {
                "message_id": str(reply_to),
                "fail_if_not_exists": False,
            }
        response = await self._request(
            "POST", f"/channels/{channel_id}/messages", json=payload
        )
        return int(response.json()["id"])

    async def edit_message(
        self,
        channel_id: int,
        message_id: int,
        content: str | None = None,
        embed: EmbedPayload | None = None,
    ) -> None:
        payload: dict[str, Any] = {}
        if content is not None:
            payload["content"] = content
        if embed is not None:
            payload["embeds"] = [embed.to_dict()]
        await self._request(
            "PATCH", f"/channels/{channel_id}/messages/{message_id}", json=payload
        )

    async def add_reaction(self, channel_id: int, message_id: int, emoji: str) -> None:
        await self._request(
            "PUT",
            f"/channels/{channel_id}/messages/{message_id}"
            f"/reactions/{self._emoji_path(emoji)}/@me",
        )

    async def fetch_reaction_emojis(self, channel_id: int, message_id: int) -> list[str]:
        response = await self._request(
            "GET", f"/channels/{channel_id}/messages/{message_id}"
        )
        data: dict[str, Any] = response.json()
        emojis = []
        for reaction in data.get("reactions") or []:
            name = (reaction.get("emoji") or {}).get("name")
            if name:
                emojis.append(name)
        return emojis

    async def fetch_reaction_users(
        self,
        channel_id: int,
        message_id: int,
        emoji: str,
        after: int | None = None,
        limit: int = 100,
    ) -> list[int]:
        """Return one page of reacting user ids, ordered as Discord returns them."""
        params: dict[str, Any] = {"limit": limit}
        if after is not None:
            params["after"] = str(after)
        response = await self._request(
            "GET",
            f"/channels/{channel_id}/messages/{message_id}"
            f"/reactions/{self._emoji_path(emoji)}",
            params=params,
        )
        return [int(user["id"]) for user in response.json()]

    async def close(self) -> None:
        """Close the underlying :class:`httpx.AsyncClient`."""
        await self.client.aclose()
