"""Shared fixtures for Thermweb Monitor tests."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from unittest.mock import MagicMock

import pytest

from thermweb_monitor.alerts import AlertStateStore, build_probe_checks
from thermweb_monitor.cache import MemoryEdgeCache
from thermweb_monitor.config import MonitorSettings
from thermweb_monitor.notify import RecordingNotifier
from thermweb_monitor.portal import GatewayResult, SensorGateway

FREEZER_ID = "4c7525046c96-101252130008001E"
HUMIDITY_ID = "4c7525046c96-0e76b286d29e_rh"
DEPTH_ID = "44179312cc0f-depth"
STORAGE_ID = "4c7525046c96"
TANKS_ID = "44179312cc0f"

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def settings(monkeypatch: pytest.MonkeyPatch) -> MonitorSettings:
    """Settings with fake credentials and the in-memory cache."""
    monkeypatch.delenv("CONFIG_PATH", raising=False)
    return MonitorSettings(
        portal_base_url="http://portal.test",
        portal_user="42",
        portal_session="session-token",
        pushover_token="app-token",
        pushover_user="user-key",
        cache_backend="memory",
    )


@pytest.fixture
def cache() -> MemoryEdgeCache:
    return MemoryEdgeCache()


@pytest.fixture
def store(cache: MemoryEdgeCache) -> AlertStateStore:
    return AlertStateStore(cache)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def probe_checks(settings: MonitorSettings):
    return build_probe_checks(settings)


def make_gateway(
    devices: Optional[Dict[str, Any]] = None,
    probes: Optional[Dict[str, Any]] = None,
    device_error: Optional[Exception] = None,
) -> MagicMock:
    """Gateway mock answering from canned payloads.

    ``probes`` maps probe id to either a payload dict or a PortalError.
    Probes not listed have no reading.
    """
    gateway = MagicMock(spec=SensorGateway)

    if device_error is not None:
        gateway.list_devices.return_value = GatewayResult.failure(device_error)
    else:
        gateway.list_devices.return_value = GatewayResult.success({"devices": devices or {}})

    probes = probes or {}

    def get_probe(probe_id: str) -> GatewayResult:
        payload = probes.get(probe_id, {"id": probe_id, "value": None})
        if isinstance(payload, Exception):
            return GatewayResult.failure(payload)
        return GatewayResult.success(payload)

    gateway.get_probe.side_effect = get_probe
    return gateway


@pytest.fixture
def gateway_factory() -> Callable[..., MagicMock]:
    return make_gateway


def online_devices(now: datetime = NOW, age_seconds: int = 60) -> Dict[str, Any]:
    """Both registered devices, last reported ``age_seconds`` ago."""
    last = int(now.timestamp()) - age_seconds
    return {
        STORAGE_ID: {"name": "Storage", "last": last},
        TANKS_ID: {"name": "Tanks", "last": last},
    }
