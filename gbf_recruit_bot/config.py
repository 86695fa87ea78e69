import dataclasses
import datetime
import logging
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

log = logging.getLogger("gbf_recruit.config")

_OFFSET = re.compile(r"^([+-])(\d{2}):(\d{2})$")


@dataclass(frozen=True)
class Settings:
    token: str
    database_path: str = "gbf_recruit.db"
    # Members need this role to run /environ_load
    control_role: str = "gbf_bot_control"
    # Distinct participants needed before the completion announcement
    party_size: int = 6
    # IANA name, "UTC" or a fixed offset such as "+09:00"
    timezone: str = "Asia/Tokyo"
    locale: str = "ja"
    start_poll_seconds: int = 60
    # Set to True to sync commands per guild for faster propagation
    sync_per_guild: bool = True

    @property
    def tzinfo(self) -> datetime.tzinfo:
        return resolve_timezone(self.timezone)


def resolve_timezone(name: str) -> datetime.tzinfo:
    if name.upper() == "UTC":
        return datetime.UTC
    m = _OFFSET.match(name)
    if m:
        sign = 1 if m.group(1) == "+" else -1
        delta = datetime.timedelta(hours=int(m.group(2)), minutes=int(m.group(3)))
        return datetime.timezone(sign * delta)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning("Unknown timezone %r, falling back to UTC", name)
        return datetime.UTC


def _int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        log.warning("Ignoring non-integer setting value %r", value)
        return default


def _bool(value: str | None, default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    token = os.getenv("DISCORD_BOT_TOKEN", "").strip()
    defaults = Settings(token="")
    return Settings(
        token=token or "",
        database_path=os.getenv("GBF_DATABASE_PATH", "").strip() or defaults.database_path,
        control_role=os.getenv("GBF_CONTROL_ROLE", "").strip() or defaults.control_role,
        party_size=_int(os.getenv("GBF_PARTY_SIZE"), defaults.party_size),
        timezone=os.getenv("GBF_TIMEZONE", "").strip() or defaults.timezone,
        locale=os.getenv("GBF_LOCALE", "").strip() or defaults.locale,
        start_poll_seconds=_int(
            os.getenv("GBF_START_POLL_SECONDS"), defaults.start_poll_seconds
        ),
        sync_per_guild=_bool(os.getenv("GBF_SYNC_PER_GUILD"), defaults.sync_per_guild),
    )


# Keys of the ``environments`` table that /environ_load may change at runtime.
_OVERRIDABLE = {
    "CONTROL_ROLE": "control_role",
    "PARTY_SIZE": "party_size",
    "TIMEZONE": "timezone",
    "LOCALE": "locale",
}


def apply_overrides(settings: Settings, values: Mapping[str, str]) -> Settings:
    """Return a copy of ``settings`` updated from environment table rows.

    Unknown keys are ignored; an invalid party size keeps the current value.
    """
    changes: dict[str, object] = {}
    for key, value in values.items():
        name = _OVERRIDABLE.get(key.upper().removeprefix("GBF_"))
        if name is None:
            continue
        if name == "party_size":
            size = _int(value, settings.party_size)
            changes[name] = size if size > 0 else settings.party_size
        elif value.strip():
            changes[name] = value.strip()
    return dataclasses.replace(settings, **changes)
