"""Battle categories and the reaction emoji that sign a user up for them."""

from __future__ import annotations

from enum import IntEnum

FIRE = "🔥"
WATER = "💧"
EARTH = "🌱"
WIND = "\U0001f32a\ufe0f"
LIGHT = "✨"
DARK = "🌑"

ELEMENT_EMOJIS: tuple[str, ...] = (FIRE, WATER, EARTH, WIND, LIGHT, DARK)


def normalize_emoji(text: str) -> str:
    """Strip variation selectors so ``🌪️`` and ``🌪`` compare equal."""
    return text.replace("\ufe0f", "").replace("\ufe0e", "").strip()


class BattleCategory(IntEnum):
    """Closed set of battle categories a recruitment can ask for.

    The integer values are persisted, so they must never be renumbered.
    """

    DEFAULT = 0
    ALL_ELEMENT = 1
    FIRE = 2
    WATER = 3
    EARTH = 4
    WIND = 5
    LIGHT = 6
    DARK = 7

    @classmethod
    def from_value(cls, value: int) -> BattleCategory:
        try:
            return cls(int(value))
        except ValueError:
            raise ValueError(f"Unknown battle category: {value!r}") from None

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def emojis(self) -> tuple[str, ...]:
        return _EMOJIS[self]

    @property
    def is_all_elements(self) -> bool:
        return self in (BattleCategory.DEFAULT, BattleCategory.ALL_ELEMENT)

    def accepts(self, emoji: str) -> bool:
        """Return ``True`` if ``emoji`` signs a user up for this category."""
        wanted = normalize_emoji(emoji)
        return any(normalize_emoji(e) == wanted for e in self.emojis)


_LABELS: dict[BattleCategory, str] = {
    BattleCategory.DEFAULT: "デフォルト",
    BattleCategory.ALL_ELEMENT: "全属性",
    BattleCategory.FIRE: "火属性",
    BattleCategory.WATER: "水属性",
    BattleCategory.EARTH: "土属性",
    BattleCategory.WIND: "風属性",
    BattleCategory.LIGHT: "光属性",
    BattleCategory.DARK: "闇属性",
}

_EMOJIS: dict[BattleCategory, tuple[str, ...]] = {
    BattleCategory.DEFAULT: ELEMENT_EMOJIS,
    BattleCategory.ALL_ELEMENT: ELEMENT_EMOJIS,
    BattleCategory.FIRE: (FIRE,),
    BattleCategory.WATER: (WATER,),
    BattleCategory.EARTH: (EARTH,),
    BattleCategory.WIND: (WIND,),
    BattleCategory.LIGHT: (LIGHT,),
    BattleCategory.DARK: (DARK,),
}
