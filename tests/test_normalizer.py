"""DateTimeNormalizer tests."""

import logging
import math
from datetime import date, datetime, timedelta

import pytest

from conftest import NEW_YEAR, NEW_YEAR_EPOCH, PRAGUE, UTC, CustomDateTime
from pydatenorm import (
    CAST_KEY,
    DESERIALIZATION_PATH_KEY,
    FORMAT_KEY,
    RFC3339,
    RFC3339_EXTENDED,
    TIMEZONE_KEY,
    DateTimeCast,
    DateTimeNormalizer,
    InvalidArgumentError,
    InvalidTimezoneError,
    NotNormalizableValueError,
)
from pydatenorm._errors import ERR_MSG_NOT_A_STRING, ERR_MSG_NOT_NORMALIZABLE
from pydatenorm._format import format_datetime

ROUND_TRIP_CASES = [
    pytest.param(
        "2024-01-01 00:00:00",
        datetime,
        {FORMAT_KEY: "Y-m-d H:i:s"},
        id="formatted-string",
    ),
    pytest.param(
        NEW_YEAR_EPOCH,
        CustomDateTime,
        {FORMAT_KEY: "U", CAST_KEY: "int"},
        id="epoch-int",
    ),
    pytest.param(
        float(NEW_YEAR_EPOCH),
        CustomDateTime,
        {FORMAT_KEY: "U.u", CAST_KEY: "float"},
        id="epoch-float",
    ),
    pytest.param(
        {"date": "2024-01-01T00:00:00+00:00", "timezone": "UTC"},
        datetime,
        {CAST_KEY: "array"},
        id="record",
    ),
]


class TestNormalize:
    @pytest.mark.parametrize("normalized,cls,context", ROUND_TRIP_CASES)
    def test_normalize(self, normalizer, normalized, cls, context):
        assert normalizer.supports_normalization(NEW_YEAR)
        result = normalizer.normalize(NEW_YEAR, context=context)
        assert result == normalized
        assert type(result) is type(normalized)

    def test_default_is_rfc3339(self, normalizer):
        assert normalizer.normalize(NEW_YEAR) == "2024-01-01T00:00:00+00:00"

    def test_rfc3339_extended_keeps_milliseconds(self, normalizer):
        value = datetime(2024, 1, 1, 8, 30, 15, 123456, tzinfo=UTC)
        context = {FORMAT_KEY: RFC3339_EXTENDED}
        result = normalizer.normalize(value, context=context)
        assert result == "2024-01-01T08:30:15.123+00:00"
        assert normalizer.denormalize(result, datetime, context=context) == value.replace(microsecond=123000)

    def test_epoch_int(self, normalizer):
        result = normalizer.normalize(NEW_YEAR, context={CAST_KEY: "int", FORMAT_KEY: "U"})
        assert result == NEW_YEAR_EPOCH

    def test_epoch_float(self, normalizer):
        result = normalizer.normalize(NEW_YEAR, context={CAST_KEY: "float", FORMAT_KEY: "U.u"})
        assert result == 1704067200.0
        assert isinstance(result, float)

    def test_array(self, normalizer):
        result = normalizer.normalize(NEW_YEAR, context={CAST_KEY: DateTimeCast.ARRAY})
        assert result == {"date": "2024-01-01T00:00:00+00:00", "timezone": "UTC"}

    def test_array_reports_named_zone(self, normalizer):
        value = datetime(2024, 6, 1, 12, tzinfo=PRAGUE)
        result = normalizer.normalize(value, context={CAST_KEY: "array"})
        assert result == {"date": "2024-06-01T12:00:00+02:00", "timezone": "Europe/Prague"}

    def test_timezone_conversion(self, normalizer):
        value = datetime(2024, 1, 1, 12, tzinfo=UTC)
        result = normalizer.normalize(value, context={TIMEZONE_KEY: "Europe/Prague"})
        assert result == "2024-01-01T13:00:00+01:00"
        assert value.tzinfo is UTC

    def test_timezone_from_default_context(self):
        normalizer = DateTimeNormalizer({TIMEZONE_KEY: PRAGUE})
        assert normalizer.normalize(datetime(2024, 1, 1, 12, tzinfo=UTC)) == "2024-01-01T13:00:00+01:00"

    def test_unknown_timezone(self, normalizer):
        with pytest.raises(InvalidTimezoneError):
            normalizer.normalize(NEW_YEAR, context={TIMEZONE_KEY: "Mars/Olympus"})

    def test_naive_value_is_utc(self, normalizer):
        assert normalizer.normalize(datetime(2024, 1, 1)) == "2024-01-01T00:00:00+00:00"

    def test_int_cast_uses_leading_number(self, normalizer):
        result = normalizer.normalize(NEW_YEAR, context={FORMAT_KEY: "Y-m-d", CAST_KEY: "int"})
        assert result == 2024

    def test_float_cast_without_number(self, normalizer):
        result = normalizer.normalize(NEW_YEAR, context={FORMAT_KEY: "D", CAST_KEY: "float"})
        assert result == 0.0

    def test_unknown_cast_falls_back_to_string(self, normalizer, caplog):
        with caplog.at_level(logging.WARNING, logger="pydatenorm.context"):
            result = normalizer.normalize(NEW_YEAR, context={CAST_KEY: "json"})
        assert result == "2024-01-01T00:00:00+00:00"
        assert "json" in caplog.text

    def test_cast_from_default_context(self):
        normalizer = DateTimeNormalizer({FORMAT_KEY: "U", CAST_KEY: "int"})
        assert normalizer.normalize(NEW_YEAR) == NEW_YEAR_EPOCH

    def test_rejects_non_datetime(self, normalizer):
        assert not normalizer.supports_normalization("2024-01-01")
        with pytest.raises(InvalidArgumentError):
            normalizer.normalize("2024-01-01")

    def test_rejects_date(self, normalizer):
        with pytest.raises(InvalidArgumentError):
            normalizer.normalize(date(2024, 1, 1))

    def test_empty_format(self, normalizer):
        with pytest.raises(InvalidArgumentError):
            normalizer.normalize(NEW_YEAR, context={FORMAT_KEY: ""})


class TestDenormalize:
    @pytest.mark.parametrize("normalized,cls,context", ROUND_TRIP_CASES)
    def test_denormalize(self, normalizer, normalized, cls, context):
        assert normalizer.supports_denormalization(normalized, cls)
        result = normalizer.denormalize(normalized, cls, context=context)
        assert isinstance(result, cls)
        assert format_datetime(result, "c") == format_datetime(NEW_YEAR, "c")

    def test_plain_datetime_by_default(self, normalizer):
        result = normalizer.denormalize("2024-01-01T00:00:00+00:00", datetime)
        assert type(result) is datetime

    def test_timezone_from_context(self, normalizer):
        result = normalizer.denormalize(
            "2024-01-01 12:00:00",
            datetime,
            context={FORMAT_KEY: "Y-m-d H:i:s", TIMEZONE_KEY: "Europe/Prague"},
        )
        assert result.tzinfo is PRAGUE
        assert result.utcoffset() == timedelta(hours=1)

    def test_record_timezone_overrides_context(self, normalizer):
        result = normalizer.denormalize(
            {"date": "2024-06-01 12:00:00", "timezone": "Europe/Prague"},
            datetime,
            context={FORMAT_KEY: "Y-m-d H:i:s", TIMEZONE_KEY: "UTC"},
        )
        assert result.utcoffset() == timedelta(hours=2)
        assert result == datetime(2024, 6, 1, 10, tzinfo=UTC)

    def test_record_with_unknown_timezone(self, normalizer):
        with pytest.raises(NotNormalizableValueError) as exc_info:
            normalizer.denormalize({"date": "2024-06-01", "timezone": "Mars/Olympus"}, datetime)
        assert isinstance(exc_info.value.wrapped, InvalidTimezoneError)

    def test_record_ignores_non_string_timezone(self, normalizer):
        result = normalizer.denormalize({"date": "2024-01-01T00:00:00+00:00", "timezone": 3}, datetime)
        assert result == NEW_YEAR

    def test_epoch_float_keeps_fraction(self, normalizer):
        result = normalizer.denormalize(NEW_YEAR_EPOCH + 0.5, datetime, context={FORMAT_KEY: "U.u"})
        assert result == NEW_YEAR + timedelta(microseconds=500000)

    def test_epoch_from_default_context(self):
        normalizer = DateTimeNormalizer({FORMAT_KEY: "U"})
        assert normalizer.denormalize(NEW_YEAR_EPOCH, datetime) == NEW_YEAR

    def test_default_format_is_tried(self):
        normalizer = DateTimeNormalizer({FORMAT_KEY: "!d/m/Y"})
        result = normalizer.denormalize("05/03/2024", datetime)
        assert result == datetime(2024, 3, 5, tzinfo=UTC)

    def test_flexible_fallback(self, normalizer):
        result = normalizer.denormalize("1 January 2024 10:00", datetime)
        assert result == datetime(2024, 1, 1, 10, tzinfo=UTC)

    def test_flexible_fallback_uses_timezone(self, normalizer):
        result = normalizer.denormalize("2024-01-01 10:00", datetime, context={TIMEZONE_KEY: PRAGUE})
        assert result == datetime(2024, 1, 1, 9, tzinfo=UTC)

    def test_unsupported_target(self, normalizer):
        assert not normalizer.supports_denormalization("2024-01-01", date)
        assert not normalizer.supports_denormalization("2024-01-01", str)
        assert not normalizer.supports_denormalization("2024-01-01", "datetime")
        with pytest.raises(InvalidArgumentError):
            normalizer.denormalize("2024-01-01", date)


class TestDenormalizeInstance:
    def test_returns_distinct_equal_value(self, normalizer):
        value = datetime(2024, 1, 1, tzinfo=UTC)
        assert normalizer.supports_denormalization(value, datetime)
        result = normalizer.denormalize(value, datetime)
        assert type(result) is datetime
        assert result is not value
        assert format_datetime(result, "c") == format_datetime(value, "c")

    def test_keeps_microseconds(self, normalizer):
        value = datetime(2024, 1, 1, 8, 30, 15, 123456, tzinfo=PRAGUE)
        result = normalizer.denormalize(value, datetime)
        assert result == value
        assert result.microsecond == 123456

    def test_requested_subclass(self, normalizer):
        result = normalizer.denormalize(NEW_YEAR, CustomDateTime)
        assert isinstance(result, CustomDateTime)
        assert result == NEW_YEAR

    def test_naive_instance_becomes_utc(self, normalizer):
        result = normalizer.denormalize(datetime(2024, 1, 1), datetime)
        assert result == NEW_YEAR


class TestDenormalizeInvalid:
    @pytest.mark.parametrize(
        "data",
        [
            pytest.param("abcdef", id="garbage-string"),
            pytest.param({}, id="empty-mapping"),
            pytest.param([], id="empty-list"),
            pytest.param({"date": 123}, id="date-not-a-string"),
            pytest.param({"date": ""}, id="date-empty"),
            pytest.param({"date": "   "}, id="date-blank"),
            pytest.param("  ", id="blank-string"),
            pytest.param(None, id="none"),
            pytest.param(True, id="bool"),
            pytest.param(NEW_YEAR_EPOCH, id="epoch-without-context"),
        ],
    )
    def test_invalid(self, normalizer, data):
        with pytest.raises(NotNormalizableValueError):
            normalizer.denormalize(data, datetime)

    def test_not_a_string_message(self, normalizer):
        with pytest.raises(NotNormalizableValueError) as exc_info:
            normalizer.denormalize({"date": 123}, datetime, context={DESERIALIZATION_PATH_KEY: "created_at"})
        err = exc_info.value
        assert str(err) == ERR_MSG_NOT_A_STRING
        assert err.can_use_message_for_user is True
        assert err.expected_types == ["string"]
        assert err.current_type == "dict"
        assert err.path == "created_at"

    def test_explicit_format_failure_lists_errors(self, normalizer):
        with pytest.raises(NotNormalizableValueError) as exc_info:
            normalizer.denormalize("2024-13", datetime, context={FORMAT_KEY: "Y-m-d"})
        err = exc_info.value
        assert str(err) == (
            'Parsing datetime string "2024-13" using format "Y-m-d" resulted in 1 errors: \n'
            "at position 7: Not enough data available to satisfy format"
        )
        assert err.data == "2024-13"
        assert err.can_use_message_for_user is True

    def test_explicit_format_failure_counts_every_error(self, normalizer):
        with pytest.raises(NotNormalizableValueError) as exc_info:
            normalizer.denormalize("abcdef", datetime, context={FORMAT_KEY: RFC3339})
        assert str(exc_info.value) == (
            'Parsing datetime string "abcdef" using format "Y-m-d\\TH:i:sP" resulted in 13 errors: \n'
            "at position 0: Trailing data"
        )

    @pytest.mark.parametrize("pattern", ["U", "U.u"])
    @pytest.mark.parametrize(
        "data",
        [
            pytest.param(math.nan, id="nan"),
            pytest.param(math.inf, id="inf"),
            pytest.param(-math.inf, id="negative-inf"),
        ],
    )
    def test_non_finite_epoch(self, normalizer, data, pattern):
        with pytest.raises(NotNormalizableValueError) as exc_info:
            normalizer.denormalize(data, datetime, context={FORMAT_KEY: pattern})
        assert exc_info.value.expected_types == ["string"]

    def test_non_finite_epoch_from_default_context(self):
        normalizer = DateTimeNormalizer({FORMAT_KEY: "U"})
        with pytest.raises(NotNormalizableValueError) as exc_info:
            normalizer.denormalize(math.inf, datetime, context={DESERIALIZATION_PATH_KEY: "seen_at"})
        err = exc_info.value
        assert isinstance(err.wrapped, OverflowError)
        assert err.path == "seen_at"

    def test_explicit_format_is_not_followed_by_fallback(self, normalizer):
        with pytest.raises(NotNormalizableValueError):
            normalizer.denormalize("2024-01-01T00:00:00+00:00", datetime, context={FORMAT_KEY: "Y-m-d"})

    def test_fallback_failure_is_wrapped(self, normalizer):
        with pytest.raises(NotNormalizableValueError) as exc_info:
            normalizer.denormalize("abcdef", datetime)
        err = exc_info.value
        assert str(err) == ERR_MSG_NOT_NORMALIZABLE
        assert err.can_use_message_for_user is False
        assert isinstance(err.wrapped, ValueError)
        assert "abcdef" in err.internal()


class TestDefaultContext:
    def test_defaults(self, normalizer):
        ctx = normalizer.default_context
        assert ctx.format == "Y-m-d\\TH:i:sP"
        assert ctx.timezone is None
        assert ctx.cast is None

    def test_assignment_merges(self):
        normalizer = DateTimeNormalizer({FORMAT_KEY: "Y-m-d"})
        before = normalizer.default_context
        normalizer.default_context = {CAST_KEY: "array"}
        after = normalizer.default_context
        assert after.format == "Y-m-d"
        assert after.cast is DateTimeCast.ARRAY
        assert before.cast is None
        assert before is not after

    def test_get_supported_types(self, normalizer):
        assert normalizer.get_supported_types() == {datetime: True}


class TestRoundTrip:
    @pytest.mark.parametrize(
        "value",
        [
            datetime(2024, 1, 1, tzinfo=UTC),
            datetime(1999, 12, 31, 23, 59, 59, 999999, tzinfo=PRAGUE),
            datetime(2024, 7, 15, 6, 30, tzinfo=PRAGUE),
            datetime(1969, 7, 20, 20, 17, 40, tzinfo=UTC),
        ],
    )
    def test_rfc3339(self, normalizer, value):
        context = {FORMAT_KEY: "Y-m-d\\TH:i:sP"}
        normalized = normalizer.normalize(value, context=context)
        assert normalizer.denormalize(normalized, datetime, context=context) == value.replace(microsecond=0)

    def test_array_keeps_zone(self, normalizer):
        value = datetime(2024, 7, 15, 6, 30, tzinfo=PRAGUE)
        context = {CAST_KEY: "array", FORMAT_KEY: "Y-m-d H:i:s"}
        result = normalizer.denormalize(normalizer.normalize(value, context=context), datetime, context=context)
        assert result == value
        assert result.tzinfo is PRAGUE
