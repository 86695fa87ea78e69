from __future__ import annotations

import asyncio

from .adapters.discord import DiscordAdapter
from .bot import RecruitBot
from .commands.register import register_commands
from .config import apply_overrides, load_settings
from .core.lifecycle import RecruitmentEngine
from .data.store import RecruitStore
from .logging_config import setup_logging


def main() -> int:
    log = setup_logging()
    settings = load_settings()
    if not settings.token:
        log.error(
            "DISCORD_BOT_TOKEN is not set. "
            "Export it in your environment before running."
        )
        return 2

    async def runner() -> int:
        gateway = DiscordAdapter(settings.token)
        try:
            async with RecruitStore(settings.database_path) as store:
                # Claims from a previous run can no longer be completed.
                await store.release_pending_announcements()
                effective = apply_overrides(settings, await store.list_environment())
                engine = RecruitmentEngine(gateway, store, store, store, effective)
                bot = RecruitBot(engine)
                register_commands(bot, engine, store)
                async with bot:
                    await bot.start(settings.token)
        except KeyboardInterrupt:
            log.info("Shutting down...")
        finally:
            await gateway.close()
        return 0

    return asyncio.run(runner())


if __name__ == "__main__":
    raise SystemExit(main())
