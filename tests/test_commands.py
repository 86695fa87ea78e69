import asyncio
import datetime
import sys
import types

import pytest

from gbf_recruit_bot.config import Settings
from gbf_recruit_bot.core.battle import BattleCategory
from gbf_recruit_bot.core.errors import PersistenceError
from gbf_recruit_bot.core.lifecycle import RecruitmentEngine
from gbf_recruit_bot.core.models import RecruitmentStatus
from gbf_recruit_bot.data.store import RecruitStore

EXPIRY = datetime.datetime(2024, 12, 25, 21, 0, tzinfo=datetime.UTC)

_RELOADED = (
    "gbf_recruit_bot.commands.register",
    "gbf_recruit_bot.commands.utils",
    "gbf_recruit_bot.ui.embeds",
)


def stub_discord(monkeypatch):
    """Provide a minimal discord package for command registration."""
    discord = types.ModuleType("discord")

    class Response:
        def __init__(self):
            self.sent = []
            self.deferred = False

        async def send_message(self, content=None, **kwargs):
            self.sent.append((content, kwargs))

        async def defer(self, **_kwargs):
            self.deferred = True

    class Interaction:
        def __init__(self, roles=(), manage_messages=False, locale="ja"):
            self.guild_id = 1
            self.channel_id = 2
            self.locale = locale
            self.user = types.SimpleNamespace(
                id=7, roles=[types.SimpleNamespace(name=r) for r in roles]
            )
            self.permissions = types.SimpleNamespace(manage_messages=manage_messages)
            self.response = Response()
            self.edits = []

        async def edit_original_response(self, **kwargs):
            self.edits.append(kwargs)

    discord.Interaction = Interaction

    class Embed:
        def __init__(self, *args, **kwargs):
            self.kwargs = kwargs
            self.fields = []

        def add_field(self, **kwargs):
            self.fields.append(kwargs)

        def set_footer(self, *args, **kwargs):
            pass

    discord.Embed = Embed
    discord.Color = lambda value: value

    app_commands = types.ModuleType("discord.app_commands")

    class Choice:
        def __init__(self, name, value):
            self.name = name
            self.value = value

        def __class_getitem__(cls, _item):
            return cls

    app_commands.Choice = Choice

    def passthrough(**_kwargs):
        def decorator(func):
            return func
        return decorator

    app_commands.describe = passthrough
    app_commands.choices = passthrough

    class Command:
        def __init__(self, callback, name, description):
            self.callback = callback
            self.name = name
            self.description = description
            self.autocomplete_callbacks = {}

        def autocomplete(self, param):
            def decorator(func):
                self.autocomplete_callbacks[param] = func
                return func
            return decorator

    class CommandTree:
        def __init__(self):
            self.commands = {}

        def command(self, *, name, description):
            def decorator(func):
                cmd = Command(func, name, description)
                self.commands[name] = cmd
                return cmd
            return decorator

    app_commands.CommandTree = CommandTree
    discord.app_commands = app_commands

    ext = types.ModuleType("discord.ext")
    commands_mod = types.ModuleType("discord.ext.commands")

    class Bot:
        def __init__(self, *args, **kwargs):
            self.tree = CommandTree()

    commands_mod.Bot = Bot
    ext.commands = commands_mod
    discord.ext = ext

    monkeypatch.setitem(sys.modules, "discord", discord)
    monkeypatch.setitem(sys.modules, "discord.ext", ext)
    monkeypatch.setitem(sys.modules, "discord.ext.commands", commands_mod)
    monkeypatch.setitem(sys.modules, "discord.app_commands", app_commands)
    for name in _RELOADED:
        monkeypatch.delitem(sys.modules, name, raising=False)
    return discord


@pytest.fixture
def discord_stub(monkeypatch):
    discord = stub_discord(monkeypatch)
    yield discord
    # Ensure later tests get a clean import of the real modules
    for name in _RELOADED:
        sys.modules.pop(name, None)


def _setup(discord, store, gateway):
    from gbf_recruit_bot.commands.register import register_commands

    engine = RecruitmentEngine(
        gateway, store, store, store, Settings(token="", timezone="+09:00")
    )
    bot = discord.ext.commands.Bot()
    register_commands(bot, engine, store)
    return bot.tree.commands, engine


def test_recruit_posts_and_confirms(discord_stub, db_path, gateway):
    async def scenario():
        async with RecruitStore(db_path) as store:
            await store.add_quest(10, "Amanda Raid", aliases=["Amanda"])
            cmds, _ = _setup(discord_stub, store, gateway)

            inter = discord_stub.Interaction()
            await cmds["recruit"].callback(inter, "Amanda", 0, "12/25 21:00")

            assert inter.response.deferred
            assert inter.edits == [{"content": "募集を作成しました。"}]
            assert len(gateway.sent) == 1
            assert "12/25 21:00" in gateway.sent[0].content

            bad = discord_stub.Interaction(locale="en-US")
            await cmds["recruit"].callback(bad, "Amanda", 0, "someday")
            assert bad.edits == [
                {"content": "Could not understand the event date. Example: 12/25 21:00"}
            ]
            assert len(gateway.sent) == 1

            choices = await cmds["recruit"].autocomplete_callbacks["quest"](inter, "am")
            assert [c.value for c in choices] == ["Amanda", "Amanda Raid"]

    asyncio.run(scenario())


class _BrokenInsertStore(RecruitStore):
    async def create(self, *args, **kwargs):
        raise PersistenceError("disk full")


def test_recruit_reports_an_untracked_message(discord_stub, db_path, gateway):
    async def scenario():
        async with _BrokenInsertStore(db_path) as store:
            cmds, _ = _setup(discord_stub, store, gateway)
            gateway.fail_add.add("💧")

            inter = discord_stub.Interaction()
            await cmds["recruit"].callback(inter, "Somebody", 1, "")

            assert len(gateway.sent) == 1
            content = inter.edits[0]["content"]
            assert content.startswith("募集メッセージは投稿されましたが")
            assert content.endswith("一部のリアクションを追加できませんでした: 💧")

    asyncio.run(scenario())


def test_recruit_rejects_a_passed_date(discord_stub, db_path, gateway):
    async def scenario():
        async with RecruitStore(db_path) as store:
            cmds, _ = _setup(discord_stub, store, gateway)

            inter = discord_stub.Interaction()
            await cmds["recruit"].callback(inter, "Somebody", 1, "2020/1/1 12:00")

            assert inter.edits == [{"content": "開催日時が既に過ぎています。"}]
            assert gateway.sent == []

    asyncio.run(scenario())


def test_recruit_cancel_checks_permission(discord_stub, db_path, gateway):
    async def scenario():
        async with RecruitStore(db_path) as store:
            cmds, engine = _setup(discord_stub, store, gateway)
            created = await engine.create(
                1, 2, "Somebody", BattleCategory.ALL_ELEMENT, EXPIRY
            )
            mid = created.message_id

            denied = discord_stub.Interaction()
            await cmds["recruit_cancel"].callback(denied, str(mid))
            assert denied.response.sent[0][0] == "このコマンドを実行する権限がありません。"

            garbled = discord_stub.Interaction(manage_messages=True)
            await cmds["recruit_cancel"].callback(garbled, "not an id")
            assert garbled.response.sent[0][0] == "メッセージIDが正しくありません。"

            allowed = discord_stub.Interaction(roles=["gbf_bot_control"])
            await cmds["recruit_cancel"].callback(
                allowed, f"https://discord.com/channels/1/2/{mid}"
            )
            assert allowed.edits == [{"content": "募集をキャンセルしました。"}]
            row = await store.get_by_message(1, 2, mid)
            assert row.status is RecruitmentStatus.CANCELLED

            again = discord_stub.Interaction(roles=["gbf_bot_control"])
            await cmds["recruit_cancel"].callback(again, str(mid))
            assert again.edits == [{"content": "この募集は既に終了しています。"}]

    asyncio.run(scenario())


def test_environ_load_applies_database_rows(discord_stub, db_path, gateway):
    async def scenario():
        async with RecruitStore(db_path) as store:
            await store.set_environment("PARTY_SIZE", "4")
            cmds, engine = _setup(discord_stub, store, gateway)

            denied = discord_stub.Interaction()
            await cmds["environ_load"].callback(denied)
            assert engine.settings.party_size == 6

            inter = discord_stub.Interaction(roles=["gbf_bot_control"])
            await cmds["environ_load"].callback(inter)
            assert engine.settings.party_size == 4
            assert inter.edits == [{"content": "環境変数の読み込みが完了しました。"}]

    asyncio.run(scenario())


def test_help_lists_commands(discord_stub, db_path, gateway):
    async def scenario():
        async with RecruitStore(db_path) as store:
            cmds, _ = _setup(discord_stub, store, gateway)
            inter = discord_stub.Interaction()
            await cmds["help"].callback(inter)
            embed = inter.response.sent[0][1]["embed"]
            assert {f["name"] for f in embed.fields} >= {"/recruit", "/recruit_cancel"}

    asyncio.run(scenario())
