"""Timezone-pinned clock parts and HH:MM window helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "America/New_York"

_HM_PATTERN = re.compile(r"([0-9]{1,2}):([0-9]{2})")

# Weekday names are fixed English tokens; rule data is authored against them,
# so they must not follow the process locale.
_WEEKDAY_LONG = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

_MONTH_LONG = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)

_DOW3_BY_LONG = {
    "monday": "MON",
    "tuesday": "TUE",
    "wednesday": "WED",
    "thursday": "THU",
    "friday": "FRI",
    "saturday": "SAT",
    "sunday": "SUN",
}


@dataclass(frozen=True, slots=True)
class NowParts:
    """A single instant broken into the local parts rules are matched against."""

    timezone: str
    dow_long: str
    dow3: str
    date_local: str
    minutes: int
    date_long: str = ""


def utc_now() -> datetime:
    """Get current datetime in UTC."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Ensure datetime is in UTC timezone."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def is_timezone_valid(zone_name: str) -> bool:
    try:
        ZoneInfo(zone_name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def dow3_from_long(dow_long: str | None) -> str:
    """Map a long weekday name to its three-letter code. Unknown names map to ''."""
    return _DOW3_BY_LONG.get(str(dow_long or "").strip().lower(), "")


def now_parts(timezone: str, instant: datetime | None = None) -> NowParts:
    """Localize ``instant`` (default: now) into ``timezone`` and split it into parts.

    Naive instants are treated as UTC so the result never depends on the
    machine's local zone.
    """
    zone = ZoneInfo(timezone)
    moment = ensure_utc(instant) if instant is not None else utc_now()
    local = moment.astimezone(zone)
    dow_long = _WEEKDAY_LONG[local.weekday()]
    date_long = f"{dow_long.upper()}\n{_MONTH_LONG[local.month - 1]} {local.day}, {local.year}"
    return NowParts(
        timezone=timezone,
        dow_long=dow_long,
        dow3=dow3_from_long(dow_long),
        date_local=local.date().isoformat(),
        minutes=local.hour * 60 + local.minute,
        date_long=date_long,
    )


def parse_hm(value: object) -> int | None:
    """Parse a strict ``H:MM``/``HH:MM`` string into minutes since midnight."""
    if not isinstance(value, str):
        return None
    match = _HM_PATTERN.fullmatch(value)
    if not match:
        return None
    hour = int(match.group(1))
    minute = int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour * 60 + minute


def in_window(now_min: int, start_min: int, end_min: int) -> bool:
    """Half-open ``[start, end)`` containment with wrap past midnight.

    A window whose start equals its end never matches.
    """
    if start_min == end_min:
        return False
    if start_min < end_min:
        return start_min <= now_min < end_min
    return now_min >= start_min or now_min < end_min


def format_time_12h(value: object) -> str:
    """Format ``HH:MM`` as ``h:MM AM/PM``; unparsable input yields ''."""
    minutes = parse_hm(value)
    if minutes is None:
        return ""
    hour, minute = divmod(minutes, 60)
    suffix = "PM" if hour >= 12 else "AM"
    hour = hour % 12 or 12
    return f"{hour}:{minute:02d} {suffix}"


def format_range_12h(start: object, end: object) -> str:
    first = format_time_12h(start)
    second = format_time_12h(end)
    if not first or not second:
        return ""
    return f"{first}–{second}"
