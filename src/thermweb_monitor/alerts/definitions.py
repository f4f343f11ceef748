"""Per-alert configuration table.

One AlertDefinition per monitored condition drives both the health checker
and the dashboard: which key it is stored under, which way the value crosses
its threshold, which threshold field applies, and the message texts.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Tuple

from thermweb_monitor.alerts.evaluator import Comparator, Transition
from thermweb_monitor.alerts.models import AlertKind, alert_key
from thermweb_monitor.config import MonitorSettings
from thermweb_monitor.thresholds import ThresholdSet
from thermweb_monitor.utils.formatters import celsius_to_fahrenheit, format_number


@dataclass(frozen=True)
class AlertDefinition:
    """How one alert kind is evaluated, stored and announced.

    Message templates are ``str.format`` strings filled from the context the
    health checker builds (``value``, ``threshold``, ``name``,
    ``last_reading``, ``lasted`` and friends).
    """

    kind: AlertKind
    key: str
    icon: str
    comparator: Comparator
    threshold_field: str
    raised_title: str
    raised_message: str
    cleared_title: str
    cleared_message: str
    display_message: str = ""

    def threshold(self, thresholds: ThresholdSet) -> float:
        return getattr(thresholds, self.threshold_field)

    def render(self, transition: Transition, context: Mapping[str, Any]) -> Tuple[str, str]:
        """Return ``(message, title)`` for a notifying transition."""
        if transition is Transition.RAISED:
            return self.raised_message.format(**context), self.raised_title
        if transition is Transition.CLEARED:
            return self.cleared_message.format(**context), self.cleared_title
        raise ValueError(f"{transition.value} transitions are not announced")


@dataclass(frozen=True)
class ProbeCheck:
    """A probe whose single reading feeds one or more alert definitions."""

    probe_id: str
    label: str
    icon: str
    ok_message: str
    definitions: Tuple[AlertDefinition, ...] = field(default_factory=tuple)


_LAST_READING = "\n\nLast reading: {last_reading}"

FREEZER_TEMP = AlertDefinition(
    kind=AlertKind.FREEZER_TEMP,
    key=alert_key(AlertKind.FREEZER_TEMP),
    icon="🧊",
    comparator=Comparator.ABOVE,
    threshold_field="freezer_max_temp_c",
    raised_title="🧊 Freezer Temperature Alert",
    raised_message=(
        "🚨 FREEZER ALERT: Temperature is {value}°C ({value_f}°F) "
        "(above safe limit of {threshold}°C)" + _LAST_READING
    ),
    cleared_title="🧊 Freezer Temperature Normal",
    cleared_message=(
        "✅ FREEZER RECOVERED: Temperature is now {value}°C ({value_f}°F) "
        "(back within safe range of {threshold}°C){lasted}" + _LAST_READING
    ),
    display_message="Freezer temperature: {value}°C ({value_f}°F) - above {threshold}°C limit",
)

HUMIDITY = AlertDefinition(
    kind=AlertKind.HUMIDITY,
    key=alert_key(AlertKind.HUMIDITY),
    icon="💧",
    comparator=Comparator.ABOVE,
    threshold_field="humidity_max_percent",
    raised_title="💧 Humidity Level Alert",
    raised_message=(
        "💧 HUMIDITY ALERT: Level is {value}% (above safe limit of {threshold}%)"
        + _LAST_READING
    ),
    cleared_title="💧 Humidity Level Normal",
    cleared_message=(
        "✅ HUMIDITY RECOVERED: Level is now {value}% "
        "(back within safe range of {threshold}%){lasted}" + _LAST_READING
    ),
    display_message="Humidity level: {value}% (above {threshold}% limit)",
)

DEPTH_EMPTY = AlertDefinition(
    kind=AlertKind.DEPTH_EMPTY,
    key=alert_key(AlertKind.DEPTH_EMPTY),
    icon="🛢️",
    comparator=Comparator.ABOVE,
    threshold_field="depth_max_level",
    raised_title="🛢️ Tank Low Alert",
    raised_message=(
        "🚨 TANK LOW: Depth reading is {value} (above empty limit of {threshold})"
        + _LAST_READING
    ),
    cleared_title="🛢️ Tank Level Normal",
    cleared_message=(
        "✅ TANK LOW RECOVERED: Depth reading is now {value} "
        "(back within empty limit of {threshold}){lasted}" + _LAST_READING
    ),
    display_message="Tank depth: {value} - above {threshold} empty limit",
)

DEPTH_FULL = AlertDefinition(
    kind=AlertKind.DEPTH_FULL,
    key=alert_key(AlertKind.DEPTH_FULL),
    icon="🛢️",
    comparator=Comparator.BELOW,
    threshold_field="depth_min_level",
    raised_title="🛢️ Tank Full Alert",
    raised_message=(
        "🚨 TANK FULL: Depth reading is {value} (below full limit of {threshold})"
        + _LAST_READING
    ),
    cleared_title="🛢️ Tank Level Normal",
    cleared_message=(
        "✅ TANK FULL RECOVERED: Depth reading is now {value} "
        "(back within full limit of {threshold}){lasted}" + _LAST_READING
    ),
    display_message="Tank depth: {value} - below {threshold} full limit",
)


def device_offline_definition(device_id: str) -> AlertDefinition:
    """Offline alert for one registered device; the value is seconds since last report."""
    return AlertDefinition(
        kind=AlertKind.DEVICE_OFFLINE,
        key=alert_key(AlertKind.DEVICE_OFFLINE, device_id),
        icon="📡",
        comparator=Comparator.ABOVE,
        threshold_field="device_offline_timeout_seconds",
        raised_title="📡 Device Offline Alert",
        raised_message="🔴 DEVICE OFFLINE: {name} ({minutes}min offline, last seen: {last_seen})",
        cleared_title="📡 Device Recovery",
        cleared_message=(
            "✅ DEVICE RECOVERED: {name} is back online{lasted}\n\nLast reading: {last_seen}"
        ),
    )


def build_probe_checks(settings: MonitorSettings) -> List[ProbeCheck]:
    """Probe checks for the configured freezer, humidity and tank depth probes."""
    return [
        ProbeCheck(
            probe_id=settings.freezer_probe_id,
            label="Freezer temperature",
            icon="🧊",
            ok_message=(
                "Freezer temperature: {value}°C ({value_f}°F, "
                "limit: {freezer_max_temp_c}°C/{freezer_max_temp_f}°F)"
            ),
            definitions=(FREEZER_TEMP,),
        ),
        ProbeCheck(
            probe_id=settings.humidity_probe_id,
            label="Humidity level",
            icon="💧",
            ok_message="Humidity level: {value}% (limit: {humidity_max_percent}%)",
            definitions=(HUMIDITY,),
        ),
        ProbeCheck(
            probe_id=settings.depth_probe_id,
            label="Tank depth",
            icon="🛢️",
            ok_message="Tank depth: {value} (limits: {depth_min_level} to {depth_max_level})",
            definitions=(DEPTH_EMPTY, DEPTH_FULL),
        ),
    ]


def device_alert_keys(known_devices: Mapping[str, str]) -> Dict[str, str]:
    """Alert key for each registered device id."""
    return {device_id: device_offline_definition(device_id).key for device_id in known_devices}


def all_alert_keys(
    probe_checks: List[ProbeCheck],
    known_devices: Mapping[str, str],
) -> List[str]:
    keys = [d.key for check in probe_checks for d in check.definitions]
    keys.extend(device_alert_keys(known_devices).values())
    return keys


def threshold_context(thresholds: ThresholdSet) -> Dict[str, str]:
    """Every threshold formatted for message templates, by field name."""
    context = {f.name: format_number(getattr(thresholds, f.name)) for f in fields(ThresholdSet)}
    context["freezer_max_temp_f"] = f"{celsius_to_fahrenheit(thresholds.freezer_max_temp_c):.1f}"
    return context


def value_context(value: float) -> Dict[str, str]:
    return {
        "value": format_number(value),
        "value_f": f"{celsius_to_fahrenheit(value):.1f}",
    }
