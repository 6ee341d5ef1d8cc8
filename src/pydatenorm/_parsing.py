"""Flexible date-time parsing used when no format pattern applies."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone, tzinfo

from dateutil import parser as dateutil_parser

from pydatenorm._timezones import UTC, ensure_aware

LOGGER = logging.getLogger(__name__)

_RELATIVE_DAYS = {
    "today": 0,
    "midnight": 0,
    "tomorrow": 1,
    "yesterday": -1,
}


def parse_flexible(text: str, tz: tzinfo | None = None, now: datetime | None = None) -> datetime:
    """Parse ISO 8601 and common natural date strings.

    Understands ``now``, ``today``, ``midnight``, ``tomorrow``,
    ``yesterday`` and ``@<epoch seconds>`` in addition to everything
    dateutil accepts. Values without a zone get ``tz`` (UTC by default).

    Raises:
        ValueError: If the string cannot be parsed.
        OverflowError: If the parsed value is out of range.
    """
    zone = tz or UTC
    current = (now or datetime.now(timezone.utc)).astimezone(zone)
    s = text.strip()
    keyword = s.lower()

    if keyword.startswith("@"):
        seconds = float(keyword[1:])
        return datetime(1970, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=seconds)
    if keyword == "now":
        return current
    if keyword in _RELATIVE_DAYS:
        midnight = current.replace(hour=0, minute=0, second=0, microsecond=0)
        return midnight + timedelta(days=_RELATIVE_DAYS[keyword])

    LOGGER.debug("parsing %r with dateutil", s)
    default = current.replace(hour=0, minute=0, second=0, microsecond=0)
    return ensure_aware(dateutil_parser.parse(s, default=default))
