"""Time zone resolution and naming."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone, tzinfo
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydatenorm._constants import DEFAULT_TIMEZONE_NAME
from pydatenorm._errors import ERR_MSG_UNKNOWN_TIMEZONE, InvalidTimezoneError

OFFSET_RE = re.compile(r"^(?:GMT|UTC)?([+-])(\d{1,2})(?::?(\d{2}))?(?::?(\d{2}))?$")

UTC = ZoneInfo(DEFAULT_TIMEZONE_NAME)


def fixed_offset(sign: str, hours: int, minutes: int = 0, seconds: int = 0) -> timezone:
    """Build a fixed-offset zone from its parts."""
    delta = timedelta(hours=hours, minutes=minutes, seconds=seconds)
    if sign == "-":
        delta = -delta
    return timezone(delta)


@lru_cache(maxsize=256)
def _lookup(name: str) -> tzinfo:
    if name.upper() in ("Z", "UTC", "GMT"):
        return UTC
    m = OFFSET_RE.match(name)
    if m:
        sign, hh, mm, ss = m.groups()
        return fixed_offset(sign, int(hh), int(mm or 0), int(ss or 0))
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidTimezoneError(
            ERR_MSG_UNKNOWN_TIMEZONE,
            f"unknown or bad timezone ({name})",
            wrapped=e,
        ) from e


def resolve_timezone(value: tzinfo | str | None) -> tzinfo | None:
    """Resolve a zone identifier, offset string or ``tzinfo`` to a ``tzinfo``.

    ``None`` stays ``None``. Raises InvalidTimezoneError for unknown names.
    """
    if value is None or isinstance(value, tzinfo):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidTimezoneError(
            ERR_MSG_UNKNOWN_TIMEZONE,
            f"timezone must be a tzinfo or a non-empty string, got {value!r}",
        )
    return _lookup(value.strip())


def format_offset(offset: timedelta | None, colon: bool = True) -> str:
    """Render a UTC offset as ``+HH:MM`` (or ``+HHMM``)."""
    total = int((offset or timedelta(0)).total_seconds())
    sign = "-" if total < 0 else "+"
    total = abs(total)
    hours, rest = divmod(total, 3600)
    minutes = rest // 60
    sep = ":" if colon else ""
    return f"{sign}{hours:02d}{sep}{minutes:02d}"


def timezone_name(value: datetime) -> str:
    """Return the identifier of the zone attached to ``value``.

    Named zones report their key, fixed offsets report ``+HH:MM``.
    """
    tz = value.tzinfo
    if tz is None or tz is timezone.utc:
        return DEFAULT_TIMEZONE_NAME
    key = getattr(tz, "key", None)
    if key:
        return key
    zone = getattr(tz, "zone", None)  # pytz-style zones
    if isinstance(zone, str):
        return zone
    return format_offset(value.utcoffset())


def ensure_aware(value: datetime) -> datetime:
    """Attach the default zone to naive values."""
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=UTC)
    return value
