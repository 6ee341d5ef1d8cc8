"""Exception hierarchy for date-time normalization."""

from __future__ import annotations

from typing import Any


class NormalizationError(Exception):
    """Base exception for normalization and denormalization errors.

    Provides dual messaging: a sanitized user-facing message and
    internal details for logging.
    """

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details or user_message
        self.wrapped = wrapped

    def internal(self) -> str:
        return self.internal_details


class InvalidArgumentError(NormalizationError):
    """Raised when a normalizer receives an argument it cannot handle."""


class InvalidTimezoneError(NormalizationError):
    """Raised when a time zone identifier cannot be resolved."""


class FormatPatternError(NormalizationError):
    """Raised when a date format pattern cannot be parsed."""


def debug_type(value: Any) -> str:
    """Return a short type name for diagnostics."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    t = type(value)
    if t.__module__ == "builtins":
        return t.__name__
    return f"{t.__module__}.{t.__qualname__}"


class NotNormalizableValueError(NormalizationError):
    """Raised when a value has the wrong shape or cannot be parsed.

    Carries the offending value, the accepted type names and the
    deserialization path supplied by the pipeline.
    """

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
        *,
        data: Any = None,
        expected_types: list[str] | None = None,
        current_type: str | None = None,
        path: str | None = None,
        can_use_message_for_user: bool = False,
        code: int = 0,
    ) -> None:
        super().__init__(user_message, internal_details, wrapped)
        self.data = data
        self.expected_types = list(expected_types or [])
        self.current_type = current_type
        self.path = path
        self.can_use_message_for_user = can_use_message_for_user
        self.code = code

    @classmethod
    def for_unexpected_data_type(
        cls,
        message: str,
        data: Any,
        expected_types: list[str],
        path: str | None = None,
        use_message_for_user: bool = False,
        code: int = 0,
        previous: Exception | None = None,
    ) -> NotNormalizableValueError:
        current = debug_type(data)
        details = message
        if path:
            details = f"{message} (path: {path!r}, expected {' | '.join(expected_types)}, got {current})"
        user_message = message if use_message_for_user else ERR_MSG_NOT_NORMALIZABLE
        return cls(
            user_message,
            details,
            previous,
            data=data,
            expected_types=expected_types,
            current_type=current,
            path=path,
            can_use_message_for_user=use_message_for_user,
            code=code,
        )


# Sanitized user-facing error message constants
ERR_MSG_NOT_NORMALIZABLE = "the value could not be normalized"
ERR_MSG_NOT_A_STRING = (
    "The data is either not an string, an empty string, or null; you should pass "
    "a string that can be parsed with the passed format or a valid DateTime string."
)
ERR_MSG_NOT_A_DATETIME = 'The object must be a "datetime.datetime" instance.'
ERR_MSG_UNSUPPORTED_TYPE = "unsupported type"
ERR_MSG_INVALID_PATTERN = "invalid format pattern"
ERR_MSG_UNKNOWN_TIMEZONE = "unknown time zone"
