"""Abstract base classes for normalizers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pydatenorm.serializer import Serializer

Context = dict[str, Any]
"""Option name to value map passed through the pipeline."""


class Normalizer(ABC):
    """Converts internal values into external representations."""

    @abstractmethod
    def get_supported_types(self) -> dict[type, bool]: ...

    @abstractmethod
    def supports_normalization(self, data: Any, format: str | None = None, context: Context | None = None) -> bool: ...

    @abstractmethod
    def normalize(self, value: Any, format: str | None = None, context: Context | None = None) -> Any: ...


class Denormalizer(ABC):
    """Converts external representations back into internal values."""

    @abstractmethod
    def get_supported_types(self) -> dict[type, bool]: ...

    @abstractmethod
    def supports_denormalization(
        self, data: Any, type_: type, format: str | None = None, context: Context | None = None
    ) -> bool: ...

    @abstractmethod
    def denormalize(
        self, data: Any, type_: type, format: str | None = None, context: Context | None = None
    ) -> Any: ...


class SerializerAware:
    """Mixin for normalizers that delegate nested values to the chain."""

    serializer: Serializer | None = None

    def set_serializer(self, serializer: Serializer) -> None:
        self.serializer = serializer
