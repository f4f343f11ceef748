"""Utility helpers for Thermweb Monitor."""

from thermweb_monitor.utils.formatters import (
    format_probe_value,
    probe_activity,
    probe_type_label,
)
from thermweb_monitor.utils.timestamps import format_local, normalize_timestamp, to_epoch_ms

__all__ = [
    "format_local",
    "format_probe_value",
    "normalize_timestamp",
    "probe_activity",
    "probe_type_label",
    "to_epoch_ms",
]
