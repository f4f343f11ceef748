"""Scheduled health check: evaluate readings, persist alert state, notify on transitions.

The HealthChecker is the only writer of alert state. A run:
1. Resolves thresholds from the threshold store (fresh every run)
2. Fetches the device list and evaluates offline alerts for registered devices
3. Fetches the freezer, humidity and tank depth probes concurrently and
   evaluates each alert definition against its threshold
4. Notifies on RAISED/CLEARED transitions and persists the resulting record

Failures are contained at two levels. A failing fetch or alert key only skips
its own alerts; anything that escapes is caught at the top of ``run``,
logged, and reported through a best-effort notification.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import structlog

from thermweb_monitor.alerts.definitions import (
    AlertDefinition,
    ProbeCheck,
    build_probe_checks,
    device_offline_definition,
    threshold_context,
    value_context,
)
from thermweb_monitor.alerts.evaluator import (
    Transition,
    classify,
    condition_holds,
    format_duration,
    minutes_offline,
    next_record,
)
from thermweb_monitor.alerts.models import AlertKind
from thermweb_monitor.alerts.store import AlertStateStore
from thermweb_monitor.config import MonitorSettings
from thermweb_monitor.notify import Notifier
from thermweb_monitor.portal import (
    GatewayResult,
    SensorGateway,
    devices_from_payload,
    reading_from_payload,
)
from thermweb_monitor.thresholds import DEFAULT_THRESHOLDS, ThresholdSet, ThresholdSource, resolve_thresholds
from thermweb_monitor.utils.timestamps import format_local

log = structlog.get_logger()

ERROR_TITLE = "Thermweb Monitor Error"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CheckOutcome:
    """Result of evaluating one alert key in one run."""

    key: str
    kind: AlertKind
    transition: Optional[Transition] = None
    value: Optional[float] = None
    threshold: Optional[float] = None
    notified: bool = False
    skipped: Optional[str] = None
    error: Optional[str] = None


@dataclass
class HealthCheckReport:
    """Everything a run did, for logs, the admin page and ``--run-once``."""

    started_at: datetime
    thresholds: ThresholdSet = DEFAULT_THRESHOLDS
    outcomes: List[CheckOutcome] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    finished_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        return not self.errors

    def transitions(self) -> List[CheckOutcome]:
        """Outcomes that raised or cleared an alert."""
        return [o for o in self.outcomes if o.transition is not None and o.transition.notifies]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "thresholds": asdict(self.thresholds),
            "errors": list(self.errors),
            "outcomes": [
                {
                    **asdict(o),
                    "kind": o.kind.value,
                    "transition": o.transition.value if o.transition else None,
                }
                for o in self.outcomes
            ],
        }


class HealthChecker:
    """Runs one health check per call to ``run``.

    Not reentrant: a run reads, decides and writes each alert key in order.
    Overlapping runs in different processes may both see the same old state
    and both notify; the schedule interval is expected to be long compared
    to a run.
    """

    def __init__(
        self,
        gateway: SensorGateway,
        store: AlertStateStore,
        notifier: Notifier,
        probe_checks: Sequence[ProbeCheck],
        known_devices: Mapping[str, str],
        threshold_source: Optional[ThresholdSource] = None,
        clock: Callable[[], datetime] = utcnow,
        display_timezone: str = "America/Puerto_Rico",
    ) -> None:
        """Initialize the health checker.

        Args:
            gateway: Sensor portal gateway.
            store: Alert state store (sole writer is this checker).
            notifier: Push notification sink.
            probe_checks: Probes and the alert definitions each one feeds.
            known_devices: Registered device ids mapped to display names.
            threshold_source: Threshold store, None when not provisioned.
            clock: Returns the current UTC time.
            display_timezone: Timezone for timestamps inside notification texts.
        """
        self.gateway = gateway
        self.store = store
        self.notifier = notifier
        self.probe_checks = list(probe_checks)
        self.known_devices = dict(known_devices)
        self.threshold_source = threshold_source
        self.clock = clock
        self.display_timezone = display_timezone

    @classmethod
    def from_settings(
        cls,
        settings: MonitorSettings,
        gateway: SensorGateway,
        store: AlertStateStore,
        notifier: Notifier,
        threshold_source: Optional[ThresholdSource] = None,
    ) -> "HealthChecker":
        return cls(
            gateway=gateway,
            store=store,
            notifier=notifier,
            probe_checks=build_probe_checks(settings),
            known_devices=settings.known_devices,
            threshold_source=threshold_source,
            display_timezone=settings.display_timezone,
        )

    def run(self) -> HealthCheckReport:
        """Execute one health check. Never raises."""
        now = self.clock()
        report = HealthCheckReport(started_at=now)
        log.info("health_check_started")

        try:
            report.thresholds = resolve_thresholds(self.threshold_source)
            self._check_devices(report.thresholds, now, report)
            self._check_probes(report.thresholds, now, report)
        except Exception as e:
            log.exception("health_check_failed", error=str(e))
            report.errors.append(str(e))
            self._notify_error(f"Device health check failed: {e}")

        report.finished_at = self.clock()
        log.info(
            "health_check_finished",
            transitions=len(report.transitions()),
            errors=len(report.errors),
        )
        return report

    def _skip_devices(self, report: HealthCheckReport, error: str) -> None:
        # Offline state cannot be judged without the list; probe checks still run
        report.errors.append(f"device list: {error}")
        for device_id in self.known_devices:
            definition = device_offline_definition(device_id)
            report.outcomes.append(
                CheckOutcome(key=definition.key, kind=definition.kind, skipped="device list unavailable")
            )

    def _check_devices(self, thresholds: ThresholdSet, now: datetime, report: HealthCheckReport) -> None:
        result = self.gateway.list_devices()
        if not result.ok:
            log.error("device_fetch_failed", error=str(result.error))
            self._skip_devices(report, str(result.error))
            return

        try:
            devices = devices_from_payload(result.data)
        except ValueError as e:
            log.error("device_list_unreadable", error=str(e))
            self._skip_devices(report, str(e))
            return
        now_epoch = now.timestamp()

        for device_id, registered_name in self.known_devices.items():
            definition = device_offline_definition(device_id)
            device = devices.get(device_id)
            if device is None or device.last is None:
                log.warning("device_not_reported", device_id=device_id)
                report.outcomes.append(
                    CheckOutcome(key=definition.key, kind=definition.kind, skipped="device not reported")
                )
                continue

            seconds_silent = now_epoch - device.last
            name = device.name if device.name and device.name != "Unknown" else registered_name
            context = {
                "name": name,
                "minutes": minutes_offline(now_epoch, device.last),
                "last_seen": format_local(device.last, self.display_timezone),
            }
            try:
                outcome = self._apply(
                    definition,
                    value=seconds_silent,
                    thresholds=thresholds,
                    now=now,
                    context=context,
                    device_id=device_id,
                    device_name=name,
                )
            except Exception as e:
                log.exception("device_check_failed", device_id=device_id, error=str(e))
                report.errors.append(f"{name}: {e}")
                outcome = CheckOutcome(key=definition.key, kind=definition.kind, error=str(e))
            report.outcomes.append(outcome)

    def _check_probes(self, thresholds: ThresholdSet, now: datetime, report: HealthCheckReport) -> None:
        if not self.probe_checks:
            return

        # Fetches are independent; evaluation stays sequential per key
        with ThreadPoolExecutor(
            max_workers=len(self.probe_checks),
            thread_name_prefix="probe-fetch",
        ) as pool:
            futures: List[Future] = [
                pool.submit(self.gateway.get_probe, check.probe_id) for check in self.probe_checks
            ]

        for check, future in zip(self.probe_checks, futures):
            try:
                report.outcomes.extend(self._check_probe(check, future.result(), thresholds, now, report))
            except Exception as e:
                log.exception("probe_check_failed", probe_id=check.probe_id, error=str(e))
                report.errors.append(f"{check.label}: {e}")
                report.outcomes.extend(
                    CheckOutcome(key=d.key, kind=d.kind, error=str(e)) for d in check.definitions
                )
                self._notify_error(f"{check.label} check failed: {e}")

    def _check_probe(
        self,
        check: ProbeCheck,
        result: GatewayResult,
        thresholds: ThresholdSet,
        now: datetime,
        report: HealthCheckReport,
    ) -> List[CheckOutcome]:
        if not result.ok:
            log.error("probe_fetch_failed", probe_id=check.probe_id, error=str(result.error))
            return [
                CheckOutcome(key=d.key, kind=d.kind, skipped=f"fetch failed: {result.error.message}")
                for d in check.definitions
            ]

        reading = reading_from_payload(result.data, check.probe_id)
        if reading.value is None:
            log.info("probe_no_reading", probe_id=check.probe_id, label=check.label)
            return [CheckOutcome(key=d.key, kind=d.kind, skipped="no reading") for d in check.definitions]

        context: Dict[str, Any] = {
            **threshold_context(thresholds),
            **value_context(reading.value),
            "name": reading.name or check.label,
            "last_reading": reading.time_last or format_local(reading.last, self.display_timezone),
        }
        outcomes = []
        # Each key is read, decided and written on its own
        for definition in check.definitions:
            try:
                outcome = self._apply(definition, reading.value, thresholds, now, context)
            except Exception as e:
                log.exception("alert_check_failed", key=definition.key, error=str(e))
                report.errors.append(f"{check.label}: {e}")
                outcome = CheckOutcome(key=definition.key, kind=definition.kind, error=str(e))
                self._notify_error(f"{check.label} check failed: {e}")
            outcomes.append(outcome)
        return outcomes

    def _apply(
        self,
        definition: AlertDefinition,
        value: float,
        thresholds: ThresholdSet,
        now: datetime,
        context: Mapping[str, Any],
        device_id: Optional[str] = None,
        device_name: Optional[str] = None,
    ) -> CheckOutcome:
        """Read, decide and write one alert key."""
        threshold = definition.threshold(thresholds)
        outcome = CheckOutcome(key=definition.key, kind=definition.kind, value=value, threshold=threshold)

        holds = condition_holds(value, threshold, definition.comparator)
        if holds is None:
            outcome.skipped = "value not evaluable"
            return outcome

        previous = self.store.get(definition.key)
        transition = classify(previous.active, holds)
        outcome.transition = transition

        if transition.notifies:
            lasted = previous.duration_minutes(now)
            message, title = definition.render(
                transition,
                {
                    **context,
                    "threshold": f"{threshold:g}",
                    "lasted": f" after {format_duration(lasted)}" if lasted is not None else "",
                },
            )
            outcome.notified = self.notifier.send(message, title)
            log.info(
                f"alert_{transition.value}",
                key=definition.key,
                value=value,
                threshold=threshold,
                notified=outcome.notified,
            )
        else:
            log.debug(
                "alert_unchanged",
                key=definition.key,
                transition=transition.value,
                value=value,
                threshold=threshold,
            )

        if transition is Transition.CLEARED:
            self.store.clear(
                definition.key,
                now,
                last_value=value,
                device_id=device_id,
                device_name=device_name,
                previous=previous,
            )
            return outcome

        record = next_record(
            transition,
            previous,
            now,
            value=value,
            device_id=device_id,
            device_name=device_name,
        )
        if record is not None:
            self.store.set(definition.key, record)
        return outcome

    def _notify_error(self, message: str) -> None:
        try:
            self.notifier.send(message, ERROR_TITLE)
        except Exception as e:
            log.error("error_notification_failed", error=str(e))
