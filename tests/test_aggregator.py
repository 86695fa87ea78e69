"""Tests for :class:`ReactionAggregator`."""

import asyncio
from typing import Any

from gbf_recruit_bot.core.aggregator import ReactionAggregator
from gbf_recruit_bot.core.battle import BattleCategory

MSG = 42


def run(coro: Any) -> Any:
    return asyncio.run(coro)


def test_bot_is_excluded_and_users_deduplicated(gateway) -> None:
    for emoji in BattleCategory.ALL_ELEMENT.emojis:
        gateway.react(MSG, emoji, gateway.bot_id)
    gateway.react(MSG, "🔥", 1)
    gateway.react(MSG, "💧", 1)
    gateway.react(MSG, "💧", 2)

    result = run(ReactionAggregator(gateway).collect(2, MSG, BattleCategory.ALL_ELEMENT))

    assert result.groups["🔥"] == [1]
    assert result.groups["💧"] == [1, 2]
    assert result.groups["✨"] == []
    assert list(result.groups) == list(BattleCategory.ALL_ELEMENT.emojis)
    assert result.unique() == [1, 2]
    assert result.count == 2


def test_follows_pagination_to_the_end(gateway) -> None:
    for user_id in range(1, 6):
        gateway.react(MSG, "🔥", user_id)
    gateway.react(MSG, "🔥", gateway.bot_id)

    aggregator = ReactionAggregator(gateway, page_size=2)
    result = run(aggregator.collect(2, MSG, BattleCategory.FIRE))

    assert result.groups["🔥"] == [1, 2, 3, 4, 5]
    assert gateway.user_page_calls == [("🔥", None), ("🔥", 2), ("🔥", 4), ("🔥", 999)]


def test_emoji_outside_the_category_is_ignored(gateway) -> None:
    gateway.react(MSG, "🔥", 1)
    gateway.react(MSG, "💧", 2)
    gateway.react(MSG, "👍", 3)

    result = run(ReactionAggregator(gateway).collect(2, MSG, BattleCategory.WATER))

    assert result.groups == {"💧": [2]}
    assert [call[0] for call in gateway.user_page_calls] == ["💧"]


def test_one_failing_group_does_not_abort_the_rest(gateway) -> None:
    gateway.react(MSG, "🔥", 1)
    gateway.react(MSG, "💧", 2)
    gateway.fail_users.add("🔥")

    result = run(ReactionAggregator(gateway).collect(2, MSG, BattleCategory.ALL_ELEMENT))

    assert result.failed == {"🔥"}
    assert result.groups["🔥"] == []
    assert result.groups["💧"] == [2]


def test_reaction_without_variation_selector_is_matched(gateway) -> None:
    gateway.react(MSG, "\U0001f32a", 8)

    result = run(ReactionAggregator(gateway).collect(2, MSG, BattleCategory.WIND))

    assert result.unique() == [8]
