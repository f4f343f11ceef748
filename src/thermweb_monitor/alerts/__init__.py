"""Alert state machine and health checking.

This module provides the persisted AlertRecord, the AlertStateStore on top of
the edge cache, the pure transition evaluator, the per-kind alert definition
table, the HealthChecker that runs scheduled checks, and the read-only
dashboard summary.
"""

from thermweb_monitor.alerts.checker import CheckOutcome, HealthChecker, HealthCheckReport
from thermweb_monitor.alerts.definitions import (
    DEPTH_EMPTY,
    DEPTH_FULL,
    FREEZER_TEMP,
    HUMIDITY,
    AlertDefinition,
    ProbeCheck,
    all_alert_keys,
    build_probe_checks,
    device_offline_definition,
)
from thermweb_monitor.alerts.evaluator import (
    Comparator,
    Transition,
    classify,
    condition_holds,
    format_duration,
    minutes_offline,
    next_record,
)
from thermweb_monitor.alerts.models import ALERT_KEY_BASE, AlertKind, AlertRecord, alert_key
from thermweb_monitor.alerts.store import AlertStateDecodeError, AlertStateStore, decode_record
from thermweb_monitor.alerts.summary import (
    AlertLine,
    AlertSummary,
    build_alert_summary,
    read_alert_records,
)

__all__ = [
    # Records
    "ALERT_KEY_BASE",
    "AlertKind",
    "AlertRecord",
    "alert_key",
    # Store
    "AlertStateDecodeError",
    "AlertStateStore",
    "decode_record",
    # Evaluator
    "Comparator",
    "Transition",
    "classify",
    "condition_holds",
    "format_duration",
    "minutes_offline",
    "next_record",
    # Definitions
    "AlertDefinition",
    "DEPTH_EMPTY",
    "DEPTH_FULL",
    "FREEZER_TEMP",
    "HUMIDITY",
    "ProbeCheck",
    "all_alert_keys",
    "build_probe_checks",
    "device_offline_definition",
    # Checker
    "CheckOutcome",
    "HealthCheckReport",
    "HealthChecker",
    # Summary
    "AlertLine",
    "AlertSummary",
    "build_alert_summary",
    "read_alert_records",
]
