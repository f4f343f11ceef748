"""Dashboard alert summary.

Read-only view over the alert state store and live portal data. Nothing in
this module writes alert state or sends notifications.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from thermweb_monitor.alerts.definitions import (
    ProbeCheck,
    all_alert_keys,
    device_offline_definition,
    threshold_context,
    value_context,
)
from thermweb_monitor.alerts.evaluator import condition_holds, format_duration, minutes_offline
from thermweb_monitor.alerts.models import AlertRecord
from thermweb_monitor.alerts.store import AlertStateStore
from thermweb_monitor.portal import Device, ProbeSummary
from thermweb_monitor.thresholds import ThresholdSet


@dataclass
class AlertLine:
    """One row of the alert summary box."""

    status: str  # "ok" or "error"
    icon: str
    message: str
    source: str

    @property
    def is_alert(self) -> bool:
        return self.status == "error"


@dataclass
class AlertSummary:
    lines: List[AlertLine] = field(default_factory=list)

    @property
    def has_alerts(self) -> bool:
        return any(line.is_alert for line in self.lines)

    @property
    def title(self) -> str:
        return "⚠️ Active Alerts" if self.has_alerts else "✅ All Systems Normal"

    @property
    def css_class(self) -> str:
        return "alerts-section" if self.has_alerts else "alerts-section no-alerts"


def _alert_suffix(record: AlertRecord, now: datetime) -> str:
    if not record.active:
        return ""
    minutes = record.duration_minutes(now)
    if minutes is None:
        return " 🚨 ALERT SENT"
    return f" 🚨 ALERT: {format_duration(minutes)}"


def _probe_lines(
    check: ProbeCheck,
    probe: ProbeSummary,
    records: Mapping[str, AlertRecord],
    thresholds: ThresholdSet,
    now: datetime,
) -> List[AlertLine]:
    context = {**threshold_context(thresholds), **value_context(probe.value)}
    source = probe.name or check.label
    lines = []
    firing = []

    for definition in check.definitions:
        if condition_holds(probe.value, definition.threshold(thresholds), definition.comparator):
            firing.append(definition)

    if not firing:
        lines.append(AlertLine("ok", check.icon, check.ok_message.format(**context), source))
        return lines

    for definition in firing:
        record = records.get(definition.key, AlertRecord())
        message = definition.display_message.format(
            **context, threshold=context[definition.threshold_field]
        )
        lines.append(
            AlertLine("error", definition.icon, message + _alert_suffix(record, now), source)
        )
    return lines


def _device_line(
    device_id: str,
    registered_name: str,
    live: Optional[Mapping[str, Device]],
    record: AlertRecord,
    thresholds: ThresholdSet,
    now: datetime,
) -> AlertLine:
    source = f"{registered_name} Device"
    device = live.get(device_id) if live is not None else None

    if device is not None and device.last is not None:
        now_epoch = now.timestamp()
        definition = device_offline_definition(device_id)
        offline = condition_holds(
            now_epoch - device.last, definition.threshold(thresholds), definition.comparator
        )
        if not offline:
            return AlertLine("ok", "📡", f"{registered_name} device: Online", source)
        minutes = minutes_offline(now_epoch, device.last)
        return AlertLine(
            "error",
            "📡",
            f"{registered_name} device: Offline 🚨 OFFLINE: {format_duration(minutes)}",
            source,
        )

    # No live data this request, fall back to the last persisted state
    if not record.active:
        return AlertLine("ok", "📡", f"{registered_name} device: Online", source)
    minutes = record.duration_minutes(now)
    suffix = " 🚨 OFFLINE" if minutes is None else f" 🚨 OFFLINE: {format_duration(minutes)}"
    return AlertLine("error", "📡", f"{registered_name} device: Offline{suffix}", source)


def build_alert_summary(
    probes: Sequence[ProbeSummary],
    devices: Optional[Mapping[str, Device]],
    records: Mapping[str, AlertRecord],
    thresholds: ThresholdSet,
    probe_checks: Sequence[ProbeCheck],
    known_devices: Mapping[str, str],
    now: datetime,
) -> AlertSummary:
    """Build the alert summary shown above the probe listing.

    Args:
        probes: Probes with live values (value None when unavailable).
        devices: Live devices keyed by id, or None when the fetch failed.
        records: Stored alert records keyed by alert key.
        thresholds: Thresholds resolved for this request.
        probe_checks: Monitored probes and their alert definitions.
        known_devices: Registered device ids mapped to display names.
        now: Current UTC time.

    Returns:
        AlertSummary with one line per monitored probe condition that has a
        live value, and one line per registered device.
    """
    by_id = {p.id: p for p in probes}
    summary = AlertSummary()

    for check in probe_checks:
        probe = by_id.get(check.probe_id)
        if probe is None or probe.value is None:
            continue
        summary.lines.extend(_probe_lines(check, probe, records, thresholds, now))

    for device_id, name in known_devices.items():
        record = records.get(device_offline_definition(device_id).key, AlertRecord())
        summary.lines.append(_device_line(device_id, name, devices, record, thresholds, now))

    return summary


def read_alert_records(
    store: AlertStateStore,
    probe_checks: Sequence[ProbeCheck],
    known_devices: Mapping[str, str],
) -> Dict[str, AlertRecord]:
    """Current record for every monitored alert key."""
    return store.snapshot(all_alert_keys(list(probe_checks), known_devices))
