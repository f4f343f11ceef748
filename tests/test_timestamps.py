"""Tests for timestamp normalization utilities."""

from datetime import datetime, timezone

import pytest
from dateutil.tz import tzoffset

from thermweb_monitor.utils.timestamps import format_local, normalize_timestamp, to_epoch_ms


class TestNormalizeTimestamp:
    """Tests for normalize_timestamp function."""

    def test_millisecond_timestamp(self) -> None:
        """Alert records store epoch milliseconds."""
        result = normalize_timestamp(1705084800000)
        assert result == datetime(2024, 1, 12, 18, 40, tzinfo=timezone.utc)

    def test_second_timestamp(self) -> None:
        """Portal "last" fields are epoch seconds."""
        result = normalize_timestamp(1705084800)
        assert result == datetime(2024, 1, 12, 18, 40, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["1705084800", " 1705084800000 "])
    def test_numeric_string(self, value: str) -> None:
        assert normalize_timestamp(value) == datetime(2024, 1, 12, 18, 40, tzinfo=timezone.utc)

    def test_naive_string_is_utc(self) -> None:
        assert normalize_timestamp("2024-01-12 18:40:00") == datetime(2024, 1, 12, 18, 40, tzinfo=timezone.utc)

    def test_float_timestamp(self) -> None:
        result = normalize_timestamp(1705084800.5)
        assert result.year == 2024
        assert result.tzinfo == timezone.utc

    def test_iso_string_with_z(self) -> None:
        result = normalize_timestamp("2024-01-12T20:00:00Z")
        assert result.hour == 20
        assert result.tzinfo == timezone.utc

    def test_iso_string_with_offset(self) -> None:
        # 2024-01-12T15:00:00-05:00 = 2024-01-12T20:00:00Z
        result = normalize_timestamp("2024-01-12T15:00:00-05:00")
        assert result.hour == 20
        assert result.tzinfo == timezone.utc

    def test_naive_datetime_assume_utc(self) -> None:
        result = normalize_timestamp(datetime(2024, 1, 12, 20, 0, 0))
        assert result.hour == 20
        assert result.tzinfo == timezone.utc

    def test_aware_datetime_conversion(self) -> None:
        eastern = tzoffset("EST", -5 * 3600)
        result = normalize_timestamp(datetime(2024, 1, 12, 15, 0, 0, tzinfo=eastern))
        assert result.hour == 20
        assert result.tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [[1, 2, 3], None, True, "not a date"])
    def test_unparseable_raises_valueerror(self, value: object) -> None:
        with pytest.raises(ValueError, match="Cannot parse timestamp"):
            normalize_timestamp(value)


class TestEpochMs:
    def test_to_epoch_ms(self) -> None:
        assert to_epoch_ms(datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)) == 1717243200000

    def test_whole_seconds_round_trip(self) -> None:
        dt = datetime(2024, 6, 1, 12, 0, 5, tzinfo=timezone.utc)
        assert normalize_timestamp(to_epoch_ms(dt)) == dt


class TestFormatLocal:
    """Tests for format_local()."""

    def test_puerto_rico_default(self) -> None:
        # UTC-4, no DST
        assert format_local(1717243200) == "06/01/2024, 08:00:00 AM"

    def test_explicit_timezone(self) -> None:
        assert format_local(1717243200000, "UTC") == "06/01/2024, 12:00:00 PM"

    @pytest.mark.parametrize("value", [None, "garbage"])
    def test_missing_or_bad_value(self, value: object) -> None:
        assert format_local(value) == "—"
