"""Display formatting for probe values and types."""

from typing import Any, Optional

PROBE_TYPE_LABELS = {
    "tf": "Temperature",
    "rh": "Humidity",
    "": "Other",
}

# Readings older than this are shown as inactive
PROBE_ACTIVE_WINDOW_SECONDS = 15 * 60


def probe_type_label(probetype: Optional[str]) -> str:
    if probetype is None:
        return "Unknown"
    return PROBE_TYPE_LABELS.get(probetype, probetype or "Unknown")


def celsius_to_fahrenheit(value: float) -> float:
    return value * 9 / 5 + 32


def format_number(value: float) -> str:
    """Render 4.0 as "4" and 4.25 as "4.25"."""
    return f"{value:g}"


def format_probe_value(value: Optional[float], probetype: Optional[str]) -> str:
    """Format a probe value for display.

    Temperature probes report Celsius and are shown with a Fahrenheit
    conversion, humidity probes as a percentage.
    """
    if value is None:
        return "—"
    if probetype == "tf":
        return f"{format_number(value)}°C ({celsius_to_fahrenheit(value):.1f}°F)"
    if probetype == "rh":
        return f"{format_number(value)}%"
    return format_number(value)


def probe_activity(last: Optional[Any], now_epoch: float) -> str:
    """Status text for a probe based on the age of its last reading."""
    if last is None:
        return "🔴 No readings"
    age_minutes = int((now_epoch - float(last)) // 60)
    if age_minutes <= PROBE_ACTIVE_WINDOW_SECONDS // 60:
        return "🟢 Active"
    return f"🔴 Inactive ({age_minutes}min ago)"
