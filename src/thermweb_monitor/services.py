"""Wiring of the monitor's collaborators from settings.

The web app, the scheduler and the CLI all work from one MonitorServices
instance so they share the same gateway, cache and alert state store.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from thermweb_monitor.alerts import AlertStateStore, HealthChecker, ProbeCheck, build_probe_checks
from thermweb_monitor.cache import EdgeCache, create_cache
from thermweb_monitor.config import MonitorSettings
from thermweb_monitor.notify import Notifier, PushoverNotifier
from thermweb_monitor.portal import SensorGateway
from thermweb_monitor.thresholds import ThresholdSource, YamlThresholdStore

log = structlog.get_logger()


@dataclass
class MonitorServices:
    settings: MonitorSettings
    gateway: SensorGateway
    cache: EdgeCache
    notifier: Notifier
    threshold_source: Optional[ThresholdSource] = None
    probe_checks: List[ProbeCheck] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.probe_checks:
            self.probe_checks = build_probe_checks(self.settings)
        self.store = AlertStateStore(self.cache)
        self.checker = HealthChecker(
            gateway=self.gateway,
            store=self.store,
            notifier=self.notifier,
            probe_checks=self.probe_checks,
            known_devices=self.settings.known_devices,
            threshold_source=self.threshold_source,
            display_timezone=self.settings.display_timezone,
        )

    @classmethod
    def from_settings(cls, settings: MonitorSettings) -> "MonitorServices":
        threshold_source = None
        if settings.thresholds_path:
            threshold_source = YamlThresholdStore(settings.thresholds_path)
        else:
            log.info("threshold_store_not_configured", using="defaults")

        return cls(
            settings=settings,
            gateway=SensorGateway.from_settings(settings),
            cache=create_cache(settings),
            notifier=PushoverNotifier.from_settings(settings),
            threshold_source=threshold_source,
        )

    def close(self) -> None:
        self.gateway.close()
        close_notifier = getattr(self.notifier, "close", None)
        if close_notifier is not None:
            close_notifier()
