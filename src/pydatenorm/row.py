"""Database row type and its normalizer."""

from __future__ import annotations

import sqlite3
from collections.abc import Mapping, Sequence
from typing import Any

from pydatenorm._base import Context, Denormalizer, Normalizer, SerializerAware
from pydatenorm._constants import DESERIALIZATION_PATH_KEY, IGNORED_ATTRIBUTES_KEY
from pydatenorm._errors import NotNormalizableValueError


class Row(dict):
    """Result row with attribute access to its columns.

    Usable as a ``sqlite3`` row factory via :meth:`factory`.
    """

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__!r} has no column {name!r}") from None

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None

    def to_dict(self) -> dict[str, Any]:
        return dict(self)

    @classmethod
    def factory(cls, cursor: sqlite3.Cursor, values: Sequence[Any]) -> Row:
        columns = [description[0] for description in cursor.description]
        return cls(zip(columns, values))


class RowNormalizer(SerializerAware, Normalizer, Denormalizer):
    """Normalizes database rows to plain mappings and back.

    Column values are normalized through the serializer chain when one
    is attached, so date-time columns come out formatted.
    """

    def __init__(self, default_context: Mapping[str, Any] | None = None) -> None:
        self._default_context: dict[str, Any] = {IGNORED_ATTRIBUTES_KEY: []}
        if default_context:
            self._default_context = {**self._default_context, **default_context}

    @property
    def default_context(self) -> dict[str, Any]:
        return dict(self._default_context)

    def get_supported_types(self) -> dict[type, bool]:
        return {Row: True, sqlite3.Row: True}

    def supports_normalization(self, data: Any, format: str | None = None, context: Context | None = None) -> bool:
        return isinstance(data, (Row, sqlite3.Row))

    def normalize(self, value: Any, format: str | None = None, context: Context | None = None) -> dict[str, Any]:
        context = {**self._default_context, **(context or {})}
        ignored = set(context.get(IGNORED_ATTRIBUTES_KEY) or ())
        result: dict[str, Any] = {}
        for column in value.keys():
            if column in ignored:
                continue
            item = value[column]
            if self.serializer is not None:
                item = self.serializer.normalize(item, format, context)
            result[column] = item
        return result

    def supports_denormalization(
        self, data: Any, type_: type, format: str | None = None, context: Context | None = None
    ) -> bool:
        return isinstance(type_, type) and issubclass(type_, Row)

    def denormalize(self, data: Any, type_: type, format: str | None = None, context: Context | None = None) -> Row:
        """Build a ``type_`` row from a mapping of column values.

        Raises:
            NotNormalizableValueError: If ``data`` is not a mapping.
        """
        if isinstance(data, sqlite3.Row):
            data = {column: data[column] for column in data.keys()}
        if not isinstance(data, Mapping):
            raise NotNormalizableValueError.for_unexpected_data_type(
                f"A row can only be built from a mapping, got {type(data).__name__}.",
                data,
                ["mapping"],
                (context or {}).get(DESERIALIZATION_PATH_KEY),
                True,
            )
        return type_(data)
