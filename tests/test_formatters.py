"""Tests for probe display formatting."""

import pytest

from thermweb_monitor.utils.formatters import (
    celsius_to_fahrenheit,
    format_number,
    format_probe_value,
    probe_activity,
    probe_type_label,
)

NOW_EPOCH = 1717243200


class TestProbeValue:
    @pytest.mark.parametrize(
        "value,probetype,expected",
        [
            (-3.0, "tf", "-3°C (26.6°F)"),
            (-18.5, "tf", "-18.5°C (-1.3°F)"),
            (48.0, "rh", "48%"),
            (0.05, "", "0.05"),
            (None, "tf", "—"),
        ],
    )
    def test_format_probe_value(self, value, probetype, expected) -> None:
        assert format_probe_value(value, probetype) == expected

    def test_celsius_to_fahrenheit(self) -> None:
        assert celsius_to_fahrenheit(-5) == 23.0
        assert celsius_to_fahrenheit(100) == 212.0

    def test_format_number_drops_trailing_zero(self) -> None:
        assert format_number(4.0) == "4"
        assert format_number(0.171) == "0.171"


class TestProbeType:
    @pytest.mark.parametrize(
        "probetype,expected",
        [("tf", "Temperature"), ("rh", "Humidity"), ("", "Other"), ("co2", "co2"), (None, "Unknown")],
    )
    def test_probe_type_label(self, probetype, expected) -> None:
        assert probe_type_label(probetype) == expected


class TestProbeActivity:
    def test_recent_reading_is_active(self) -> None:
        assert probe_activity(NOW_EPOCH - 15 * 60, NOW_EPOCH) == "🟢 Active"

    def test_stale_reading(self) -> None:
        assert probe_activity(NOW_EPOCH - 40 * 60, NOW_EPOCH) == "🔴 Inactive (40min ago)"

    def test_never_reported(self) -> None:
        assert probe_activity(None, NOW_EPOCH) == "🔴 No readings"
