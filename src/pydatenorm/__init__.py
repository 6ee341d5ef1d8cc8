"""pydatenorm - Bidirectional date-time normalization for serialization pipelines."""

from __future__ import annotations

from collections.abc import Mapping
from importlib.metadata import PackageNotFoundError, version
from typing import Any

from pydatenorm._constants import (
    CAST_KEY,
    DESERIALIZATION_PATH_KEY,
    FORMAT_KEY,
    IGNORED_ATTRIBUTES_KEY,
    RFC3339,
    RFC3339_EXTENDED,
    TIMEZONE_KEY,
)
from pydatenorm._errors import (
    FormatPatternError,
    InvalidArgumentError,
    InvalidTimezoneError,
    NormalizationError,
    NotNormalizableValueError,
)
from pydatenorm.context import DateTimeCast, DateTimeContext
from pydatenorm.mapper import Mapper
from pydatenorm.normalizer import DateTimeNormalizer
from pydatenorm.row import Row, RowNormalizer
from pydatenorm.serializer import Serializer

try:
    __version__ = version("pydatenorm")
except PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0.dev0"

__all__ = [
    "create_mapper",
    "create_serializer",
    "CAST_KEY",
    "DESERIALIZATION_PATH_KEY",
    "FORMAT_KEY",
    "IGNORED_ATTRIBUTES_KEY",
    "RFC3339",
    "RFC3339_EXTENDED",
    "TIMEZONE_KEY",
    "DateTimeCast",
    "DateTimeContext",
    "DateTimeNormalizer",
    "FormatPatternError",
    "InvalidArgumentError",
    "InvalidTimezoneError",
    "Mapper",
    "NormalizationError",
    "NotNormalizableValueError",
    "Row",
    "RowNormalizer",
    "Serializer",
]


def create_serializer(
    *,
    datetime_context: Mapping[str, Any] | DateTimeContext | None = None,
    row_context: Mapping[str, Any] | None = None,
) -> Serializer:
    """Build a serializer with the default normalizers.

    Args:
        datetime_context: Default context for the date-time normalizer.
        row_context: Default context for the row normalizer.

    Returns:
        A Serializer chaining the row and date-time normalizers.
    """
    return Serializer([
        RowNormalizer(row_context),
        DateTimeNormalizer(datetime_context),
    ])


def create_mapper(
    *,
    datetime_context: Mapping[str, Any] | DateTimeContext | None = None,
    row_context: Mapping[str, Any] | None = None,
) -> Mapper:
    """Build a Mapper backed by :func:`create_serializer`."""
    return Mapper(create_serializer(datetime_context=datetime_context, row_context=row_context))
