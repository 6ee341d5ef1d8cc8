"""Object mapper facade over a denormalizer."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class SupportsDenormalize(Protocol):
    """Minimal denormalizer protocol accepted by the mapper."""

    def denormalize(
        self, data: Any, type_: type, format: str | None = ..., context: dict[str, Any] | None = ...
    ) -> Any: ...


class Mapper:
    """Maps raw data onto a target type.

    Errors raised by the underlying denormalizer propagate unchanged.
    """

    def __init__(self, serializer: SupportsDenormalize) -> None:
        self._serializer = serializer

    def map(self, data: Any, type_: type[T], context: dict[str, Any] | None = None) -> T:
        """Denormalize ``data`` into ``type_``.

        Raises:
            NotNormalizableValueError: If ``data`` cannot be mapped.
        """
        return self._serializer.denormalize(data, type_, None, context or {})
