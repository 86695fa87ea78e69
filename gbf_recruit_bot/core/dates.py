"""Parsing of the free-text event date given to ``/recruit``."""

from __future__ import annotations

import datetime
import re

from .errors import InvalidDateError, PastEventDateError

DEFAULT_HOUR = 21
DISPLAY_FORMAT = "%m/%d %H:%M"

_RELATIVE = re.compile(r"^(今日|明日)\s*(?:(\d{1,2}):(\d{2}))?$")
_CALENDAR = re.compile(
    r"^(?:(\d{4})[/-])?(\d{1,2})[/-](\d{1,2})(?:\s+(\d{1,2}):(\d{2}))?$"
)
_TIME_ONLY = re.compile(r"^(\d{1,2}):(\d{2})$")


def default_expiry(now: datetime.datetime) -> datetime.datetime:
    """The next 21:00 in the timezone of ``now``; tomorrow once it has passed."""
    today = now.replace(hour=DEFAULT_HOUR, minute=0, second=0, microsecond=0)
    if today <= now:
        return today + datetime.timedelta(days=1)
    return today


def require_future(expiry: datetime.datetime, now: datetime.datetime) -> datetime.datetime:
    """Return ``expiry`` unless it is at or before ``now``."""
    if expiry <= now:
        raise PastEventDateError(
            f"Event date {expiry.isoformat()} is not after {now.isoformat()}"
        )
    return expiry


def format_expiry(expiry: datetime.datetime | None, placeholder: str = "未定") -> str:
    if expiry is None:
        return placeholder
    return expiry.strftime(DISPLAY_FORMAT)


def parse_event_date(text: str | None, now: datetime.datetime) -> datetime.datetime:
    """Turn ``text`` into a timezone aware datetime in the timezone of ``now``.

    Empty input yields :func:`default_expiry`. Input that has a recognised
    shape but names an impossible date or time (``2/30``, ``25:70``) also
    degrades to the default. Anything else raises :class:`InvalidDateError`.

    A bare time that has already passed today means tomorrow, and a month
    and day without a year that has already passed means next year. Explicit
    days (``今日``, a full date) are taken as written.
    """
    stripped = (text or "").strip()
    if not stripped:
        return default_expiry(now)

    fallback = default_expiry(now)

    m = _RELATIVE.match(stripped)
    if m:
        day = now.date()
        if m.group(1) == "明日":
            day += datetime.timedelta(days=1)
        return _build(now, day.year, day.month, day.day, m.group(2), m.group(3)) or fallback

    m = _CALENDAR.match(stripped)
    if m:
        year = int(m.group(1)) if m.group(1) else now.year
        parsed = _build(now, year, int(m.group(2)), int(m.group(3)), m.group(4), m.group(5))
        if parsed is None:
            return fallback
        if not m.group(1) and parsed <= now:
            # 2/29 has no counterpart in a non-leap year
            rolled = _build(now, year + 1, parsed.month, parsed.day, m.group(4), m.group(5))
            return rolled or fallback
        return parsed

    m = _TIME_ONLY.match(stripped)
    if m:
        parsed = _build(now, now.year, now.month, now.day, m.group(1), m.group(2))
        if parsed is None:
            return fallback
        if parsed <= now:
            parsed += datetime.timedelta(days=1)
        return parsed

    raise InvalidDateError(f"Unable to parse date string '{stripped}'")


def _build(
    now: datetime.datetime,
    year: int,
    month: int,
    day: int,
    hour: str | None,
    minute: str | None,
) -> datetime.datetime | None:
    try:
        return datetime.datetime(
            year,
            month,
            day,
            int(hour) if hour is not None else DEFAULT_HOUR,
            int(minute) if minute is not None else 0,
            tzinfo=now.tzinfo,
        )
    except ValueError:
        return None
