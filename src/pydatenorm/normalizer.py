"""Bidirectional date-time normalizer.

Normalizes ``datetime`` values to a formatted string, an integer, a float
or a ``{"date": ..., "timezone": ...}`` record, and denormalizes any of
those (or an existing ``datetime``) back to a ``datetime``.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Mapping
from datetime import datetime, tzinfo
from typing import Any

from pydatenorm._base import Context, Denormalizer, Normalizer
from pydatenorm._constants import (
    CAST_KEY,
    DESERIALIZATION_PATH_KEY,
    FORMAT_KEY,
    RFC3339_MICRO,
    TIMEZONE_KEY,
)
from pydatenorm._errors import (
    ERR_MSG_NOT_A_DATETIME,
    ERR_MSG_NOT_A_STRING,
    ERR_MSG_UNSUPPORTED_TYPE,
    InvalidArgumentError,
    InvalidTimezoneError,
    NormalizationError,
    NotNormalizableValueError,
    debug_type,
)
from pydatenorm._format import format_datetime, parse_with_format
from pydatenorm._parsing import parse_flexible
from pydatenorm._timezones import ensure_aware, resolve_timezone, timezone_name
from pydatenorm.context import DateTimeCast, DateTimeContext, coerce_cast, validate_format

LOGGER = logging.getLogger(__name__)

_INT_PREFIX_RE = re.compile(r"\s*[+-]?\d+")
_FLOAT_PREFIX_RE = re.compile(r"\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")

EXPECTED_TYPES = ["string"]


class _Shape(enum.Enum):
    """Recognized shapes of denormalization input."""

    DATETIME = "datetime"
    NUMBER = "number"
    RECORD = "record"
    STRING = "string"
    OTHER = "other"


def _classify(data: Any) -> _Shape:
    if isinstance(data, datetime):
        return _Shape.DATETIME
    if isinstance(data, bool):
        return _Shape.OTHER
    if isinstance(data, (int, float)):
        return _Shape.NUMBER
    if isinstance(data, Mapping) and "date" in data:
        return _Shape.RECORD
    if isinstance(data, str):
        return _Shape.STRING
    return _Shape.OTHER


def _leading_int(text: str) -> int:
    m = _INT_PREFIX_RE.match(text)
    return int(m.group(0)) if m else 0


def _leading_float(text: str) -> float:
    m = _FLOAT_PREFIX_RE.match(text)
    return float(m.group(0)) if m else 0.0


def _as_type(value: datetime, cls: type[datetime]) -> datetime:
    if type(value) is cls:
        return value
    return cls(
        value.year,
        value.month,
        value.day,
        value.hour,
        value.minute,
        value.second,
        value.microsecond,
        tzinfo=value.tzinfo,
        fold=value.fold,
    )


def _error_code(e: Exception) -> int:
    code = getattr(e, "code", 0)
    return code if isinstance(code, int) else 0


class DateTimeNormalizer(Normalizer, Denormalizer):
    """Normalizer for ``datetime.datetime`` values.

    Options are read from the per-call context first and from the
    default context second (keys ``datetime_format``,
    ``datetime_timezone`` and ``datetime_cast``).
    """

    FORMAT_KEY = FORMAT_KEY
    TIMEZONE_KEY = TIMEZONE_KEY
    CAST_KEY = CAST_KEY

    def __init__(self, default_context: Mapping[str, Any] | DateTimeContext | None = None) -> None:
        self._default_context = DateTimeContext()
        if default_context is not None:
            self.default_context = default_context

    @property
    def default_context(self) -> DateTimeContext:
        return self._default_context

    @default_context.setter
    def default_context(self, value: Mapping[str, Any] | DateTimeContext) -> None:
        # Merged over the existing defaults; the old record is left untouched.
        self._default_context = self._default_context.with_overrides(value)

    def get_supported_types(self) -> dict[type, bool]:
        return {datetime: True}

    # --- normalization ---

    def supports_normalization(self, data: Any, format: str | None = None, context: Context | None = None) -> bool:
        return isinstance(data, datetime)

    def normalize(
        self, value: Any, format: str | None = None, context: Context | None = None
    ) -> str | int | float | dict[str, str]:
        """Convert a ``datetime`` into its configured representation.

        Raises:
            InvalidArgumentError: If ``value`` is not a ``datetime``.
            InvalidTimezoneError: If the configured zone is unknown.
        """
        if not isinstance(value, datetime):
            raise InvalidArgumentError(
                ERR_MSG_NOT_A_DATETIME,
                f"cannot normalize a value of type {debug_type(value)}",
            )
        context = context or {}

        pattern = validate_format(self._option(context, FORMAT_KEY, self._default_context.format))
        tz = self._timezone(context)
        value = ensure_aware(value)
        if tz is not None:
            value = value.astimezone(tz)

        raw_cast = context.get(CAST_KEY)
        cast = self._default_context.cast if raw_cast is None else coerce_cast(raw_cast)

        formatted = format_datetime(value, pattern)
        if cast is DateTimeCast.INT:
            return _leading_int(formatted)
        if cast is DateTimeCast.FLOAT:
            return _leading_float(formatted)
        if cast is DateTimeCast.ARRAY:
            return {"date": formatted, "timezone": timezone_name(value)}
        return formatted

    # --- denormalization ---

    def supports_denormalization(
        self, data: Any, type_: type, format: str | None = None, context: Context | None = None
    ) -> bool:
        return isinstance(type_, type) and issubclass(type_, datetime)

    def denormalize(
        self, data: Any, type_: type, format: str | None = None, context: Context | None = None
    ) -> datetime:
        """Convert ``data`` into an instance of ``type_``.

        ``type_`` may be ``datetime`` or one of its subclasses; the result
        is a plain ``datetime`` unless a subclass is requested.

        Raises:
            NotNormalizableValueError: If ``data`` has the wrong shape or
                cannot be parsed.
            InvalidTimezoneError: If the configured zone is unknown.
        """
        context = context or {}
        target = self._target_type(type_)
        path = context.get(DESERIALIZATION_PATH_KEY)
        shape = _classify(data)

        if shape is _Shape.DATETIME:
            return self._create_datetime(
                format_datetime(data, RFC3339_MICRO), target, None, {**context, FORMAT_KEY: RFC3339_MICRO}
            )

        tz = self._timezone(context)

        if shape is _Shape.NUMBER:
            pattern = self._option(context, FORMAT_KEY, self._default_context.format)
            if pattern in ("U", "U.u"):
                try:
                    data = "%d" % data if pattern == "U" else "%.6f" % data
                except (ValueError, OverflowError) as e:
                    raise NotNormalizableValueError.for_unexpected_data_type(
                        f"Cannot use {data!r} as a unix timestamp: {e}", data, EXPECTED_TYPES, path, previous=e
                    ) from e
                shape = _Shape.STRING

        if shape is _Shape.RECORD:
            date = data["date"]
            if not isinstance(date, str) or not date.strip():
                raise self._not_a_string(data, path)
            zone = data.get("timezone")
            if isinstance(zone, str):
                try:
                    tz = resolve_timezone(zone)
                except InvalidTimezoneError as e:
                    raise NotNormalizableValueError.for_unexpected_data_type(
                        e.internal(), data, EXPECTED_TYPES, path, previous=e
                    ) from e
            return self._create_datetime(date, target, tz, context)

        if shape is not _Shape.STRING or not data.strip():
            raise self._not_a_string(data, path)

        return self._create_datetime(data, target, tz, context)

    def _create_datetime(
        self,
        data: str,
        target: type[datetime],
        tz: tzinfo | None,
        context: Context,
    ) -> datetime:
        path = context.get(DESERIALIZATION_PATH_KEY)
        try:
            pattern = context.get(FORMAT_KEY)
            if pattern is not None:
                result = parse_with_format(data, pattern, tz)
                if result.value is not None:
                    return _as_type(result.value, target)
                message = (
                    f'Parsing datetime string "{data}" using format "{pattern}" '
                    f"resulted in {result.error_count} errors: \n"
                    + "\n".join(result.formatted_errors())
                )
                raise NotNormalizableValueError.for_unexpected_data_type(
                    message, data, EXPECTED_TYPES, path, True
                )

            default_pattern = self._default_context.format
            if default_pattern is not None:
                result = parse_with_format(data, default_pattern, tz)
                if result.value is not None:
                    return _as_type(result.value, target)

            LOGGER.debug("falling back to flexible parsing for %r", data)
            return _as_type(parse_flexible(data, tz), target)
        except NotNormalizableValueError:
            raise
        except (NormalizationError, ValueError, OverflowError) as e:
            message = e.internal() if isinstance(e, NormalizationError) else str(e)
            raise NotNormalizableValueError.for_unexpected_data_type(
                message, data, EXPECTED_TYPES, path, False, _error_code(e), e
            ) from e

    # --- helpers ---

    @staticmethod
    def _option(context: Context, key: str, default: Any) -> Any:
        value = context.get(key)
        return default if value is None else value

    def _timezone(self, context: Context) -> tzinfo | None:
        return resolve_timezone(self._option(context, TIMEZONE_KEY, self._default_context.timezone))

    @staticmethod
    def _target_type(type_: Any) -> type[datetime]:
        if not isinstance(type_, type) or not issubclass(type_, datetime):
            raise InvalidArgumentError(
                ERR_MSG_UNSUPPORTED_TYPE,
                f"cannot denormalize into {type_!r}; expected datetime or a subclass",
            )
        return type_

    @staticmethod
    def _not_a_string(data: Any, path: str | None) -> NotNormalizableValueError:
        return NotNormalizableValueError.for_unexpected_data_type(
            ERR_MSG_NOT_A_STRING, data, EXPECTED_TYPES, path, True
        )
