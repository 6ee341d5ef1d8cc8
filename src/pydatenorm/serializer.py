"""Normalizer chain.

Dispatches each value to the first registered normalizer that supports
it. Scalars pass through unchanged; lists, tuples and mappings have
their items normalized.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydatenorm._base import Context, Denormalizer, Normalizer
from pydatenorm._constants import DESERIALIZATION_PATH_KEY
from pydatenorm._errors import (
    NotNormalizableValueError,
    debug_type,
)

LOGGER = logging.getLogger(__name__)

_SCALARS = (str, int, float, bool, type(None))


class Serializer:
    """Ordered chain of normalizers and denormalizers."""

    def __init__(self, normalizers: Iterable[Normalizer | Denormalizer]) -> None:
        self._normalizers = list(normalizers)
        for normalizer in self._normalizers:
            set_serializer = getattr(normalizer, "set_serializer", None)
            if set_serializer is not None:
                set_serializer(self)

    @property
    def normalizers(self) -> list[Normalizer | Denormalizer]:
        return list(self._normalizers)

    def get_normalizer(self, data: Any, format: str | None = None, context: Context | None = None) -> Normalizer | None:
        for normalizer in self._normalizers:
            if isinstance(normalizer, Normalizer) and normalizer.supports_normalization(data, format, context):
                return normalizer
        return None

    def get_denormalizer(
        self, data: Any, type_: type, format: str | None = None, context: Context | None = None
    ) -> Denormalizer | None:
        for normalizer in self._normalizers:
            if isinstance(normalizer, Denormalizer) and normalizer.supports_denormalization(
                data, type_, format, context
            ):
                return normalizer
        return None

    def supports_normalization(self, data: Any, format: str | None = None, context: Context | None = None) -> bool:
        return self.get_normalizer(data, format, context) is not None

    def supports_denormalization(
        self, data: Any, type_: type, format: str | None = None, context: Context | None = None
    ) -> bool:
        return self.get_denormalizer(data, type_, format, context) is not None

    def normalize(self, value: Any, format: str | None = None, context: Context | None = None) -> Any:
        """Normalize ``value`` through the chain.

        Raises:
            NotNormalizableValueError: If no normalizer supports an object value.
        """
        context = context or {}
        normalizer = self.get_normalizer(value, format, context)
        if normalizer is not None:
            LOGGER.debug("normalizing %s with %s", debug_type(value), type(normalizer).__name__)
            return normalizer.normalize(value, format, context)
        if isinstance(value, _SCALARS):
            return value
        if isinstance(value, Mapping):
            return {key: self.normalize(item, format, context) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.normalize(item, format, context) for item in value]
        raise NotNormalizableValueError.for_unexpected_data_type(
            f"Could not normalize object of type {debug_type(value)}, no supporting normalizer found.",
            value,
            ["scalar", "list", "mapping"],
            context.get(DESERIALIZATION_PATH_KEY),
        )

    def denormalize(
        self, data: Any, type_: type, format: str | None = None, context: Context | None = None
    ) -> Any:
        """Denormalize ``data`` into ``type_`` through the chain.

        Raises:
            NotNormalizableValueError: If no denormalizer supports ``type_``
                or the selected one rejects ``data``.
        """
        context = context or {}
        denormalizer = self.get_denormalizer(data, type_, format, context)
        if denormalizer is not None:
            LOGGER.debug("denormalizing %s into %r with %s", debug_type(data), type_, type(denormalizer).__name__)
            return denormalizer.denormalize(data, type_, format, context)
        if isinstance(type_, type) and issubclass(type_, _SCALARS) and isinstance(data, type_):
            return data
        raise NotNormalizableValueError.for_unexpected_data_type(
            f"Could not denormalize object of type {getattr(type_, '__name__', type_)!s}, "
            "no supporting normalizer found.",
            data,
            [getattr(type_, "__name__", str(type_))],
            context.get(DESERIALIZATION_PATH_KEY),
        )
