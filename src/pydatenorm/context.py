"""Normalization context for date-time values."""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping
from dataclasses import dataclass, replace
from datetime import tzinfo
from typing import Any

from pydatenorm._constants import CAST_KEY, DEFAULT_FORMAT, FORMAT_KEY, TIMEZONE_KEY
from pydatenorm._errors import InvalidArgumentError
from pydatenorm._timezones import resolve_timezone

LOGGER = logging.getLogger(__name__)


class DateTimeCast(enum.StrEnum):
    """Normalized representations of a date-time."""

    INT = "int"
    FLOAT = "float"
    ARRAY = "array"


def coerce_cast(value: Any) -> DateTimeCast | None:
    if value is None or isinstance(value, DateTimeCast):
        return value
    try:
        return DateTimeCast(value)
    except ValueError:
        LOGGER.warning("unrecognized %s %r, falling back to string output", CAST_KEY, value)
        return None


def validate_format(value: Any) -> str:
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(
            "invalid date format",
            f"{FORMAT_KEY} must be a non-empty string, got {value!r}",
        )
    return value


@dataclass(frozen=True)
class DateTimeContext:
    """Options governing date-time normalization.

    ``timezone`` may be a ``tzinfo`` or an identifier; ``None`` keeps the
    value's own zone. ``cast`` of ``None`` produces a formatted string.
    """

    format: str = DEFAULT_FORMAT
    timezone: tzinfo | str | None = None
    cast: DateTimeCast | None = None

    def __post_init__(self) -> None:
        validate_format(self.format)
        object.__setattr__(self, "cast", coerce_cast(self.cast))

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> DateTimeContext:
        return cls().with_overrides(options)

    def with_overrides(self, options: Mapping[str, Any] | DateTimeContext) -> DateTimeContext:
        """Return a copy with ``options`` merged over this context.

        Keys that are absent (or ``None`` for the format) keep their
        current value.
        """
        if isinstance(options, DateTimeContext):
            options = options.as_mapping()
        changes: dict[str, Any] = {}
        if options.get(FORMAT_KEY) is not None:
            changes["format"] = options[FORMAT_KEY]
        if TIMEZONE_KEY in options:
            changes["timezone"] = options[TIMEZONE_KEY]
        if CAST_KEY in options:
            changes["cast"] = options[CAST_KEY]
        return replace(self, **changes)

    def as_mapping(self) -> dict[str, Any]:
        return {
            FORMAT_KEY: self.format,
            TIMEZONE_KEY: self.timezone,
            CAST_KEY: self.cast,
        }

    def resolved_timezone(self) -> tzinfo | None:
        """Resolve ``timezone`` to a ``tzinfo``.

        Raises InvalidTimezoneError for unknown identifiers.
        """
        return resolve_timezone(self.timezone)
