"""Shared test fixtures."""

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from pydatenorm import DateTimeNormalizer, create_serializer

UTC = ZoneInfo("UTC")
PRAGUE = ZoneInfo("Europe/Prague")

NEW_YEAR = datetime(2024, 1, 1, tzinfo=UTC)
NEW_YEAR_EPOCH = 1704067200


class CustomDateTime(datetime):
    """A datetime subclass used as an explicitly requested target type."""


@pytest.fixture
def normalizer():
    return DateTimeNormalizer()


@pytest.fixture
def serializer():
    return create_serializer()
