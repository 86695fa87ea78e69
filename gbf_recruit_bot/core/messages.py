"""User-facing strings that are not part of a rendered recruitment."""

from __future__ import annotations

from .errors import (
    InvalidDateError,
    InvalidTransitionError,
    NotFoundError,
    PastEventDateError,
    PersistenceError,
    PlatformError,
    QuestResolutionError,
    RecruitError,
)

COMPLETION_MESSAGE_KEY = "MSG00032"
DEFAULT_COMPLETION_TEXT = "募集が完了しました！"

_ERRORS: dict[type[RecruitError], dict[str, str]] = {
    NotFoundError: {
        "ja": "募集が見つかりませんでした。",
        "en": "The recruitment could not be found.",
    },
    InvalidTransitionError: {
        "ja": "この募集は既に終了しています。",
        "en": "This recruitment has already ended.",
    },
    PastEventDateError: {
        "ja": "開催日時が既に過ぎています。",
        "en": "That event date has already passed.",
    },
    InvalidDateError: {
        "ja": "開催日時を解釈できませんでした。例: 12/25 21:00",
        "en": "Could not understand the event date. Example: 12/25 21:00",
    },
    QuestResolutionError: {
        "ja": "募集メッセージを送信できませんでした。",
        "en": "The recruitment message could not be posted.",
    },
    PlatformError: {
        "ja": "Discordとの通信に失敗しました。",
        "en": "Communication with Discord failed.",
    },
    PersistenceError: {
        "ja": "データベースエラーが発生しました。",
        "en": "A database error occurred.",
    },
    RecruitError: {
        "ja": "エラーが発生しました。",
        "en": "An error occurred.",
    },
}

_TEXTS: dict[str, dict[str, str]] = {
    "created": {"ja": "募集を作成しました。", "en": "Recruitment created."},
    "cancelled": {"ja": "募集をキャンセルしました。", "en": "Recruitment cancelled."},
    "no_permission": {
        "ja": "このコマンドを実行する権限がありません。",
        "en": "You do not have permission to run this command.",
    },
    "reloaded": {
        "ja": "環境変数の読み込みが完了しました。",
        "en": "Settings reloaded.",
    },
    "invalid_message_id": {
        "ja": "メッセージIDが正しくありません。",
        "en": "That message id is not valid.",
    },
    "untracked": {
        "ja": "募集メッセージは投稿されましたが、保存に失敗したため参加者を集計できません。",
        "en": "The recruitment was posted but could not be saved, so signups will not be counted.",
    },
    "reactions_missing": {
        "ja": "一部のリアクションを追加できませんでした: {emojis}",
        "en": "Some reactions could not be added: {emojis}",
    },
}


def _lang(locale: str | None) -> str:
    return "en" if (locale or "").lower().startswith("en") else "ja"


def user_error(exc: RecruitError, locale: str | None) -> str:
    """Ephemeral text describing the failure category of ``exc``."""
    lang = _lang(locale)
    for cls in type(exc).__mro__:
        if cls in _ERRORS:
            return _ERRORS[cls][lang]
    return _ERRORS[RecruitError][lang]


def text(key: str, locale: str | None) -> str:
    return _TEXTS[key][_lang(locale)]
