"""Tests for the command line entry point."""

import json
from typing import Iterator
from unittest.mock import MagicMock, patch

import pytest

from conftest import FREEZER_ID, make_gateway, online_devices
from thermweb_monitor import __version__
from thermweb_monitor.__main__ import (
    EXIT_AUTH_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_SUCCESS,
    main,
)
from thermweb_monitor.cache import MemoryEdgeCache
from thermweb_monitor.config import MonitorSettings, SettingsError
from thermweb_monitor.notify import RecordingNotifier
from thermweb_monitor.portal import ConfigurationError, TransportError, UpstreamError
from thermweb_monitor.scheduler import SchedulerError
from thermweb_monitor.services import MonitorServices

FREEZER_KEY = "https://alerts.cache/freezer-temp-alert"


@pytest.fixture(autouse=True)
def no_logging_setup() -> Iterator[MagicMock]:
    """Keep structlog unconfigured so output stays capturable."""
    with patch("thermweb_monitor.logging.configure_logging") as mock:
        yield mock


@pytest.fixture
def services(settings: MonitorSettings, cache: MemoryEdgeCache, notifier: RecordingNotifier) -> MonitorServices:
    probes = {FREEZER_ID: {"id": FREEZER_ID, "probetype": "tf", "value": -2.0}}
    return MonitorServices(
        settings=settings,
        gateway=make_gateway(online_devices(), probes),
        cache=cache,
        notifier=notifier,
    )


@pytest.fixture
def wired(settings: MonitorSettings, services: MonitorServices) -> Iterator[MonitorServices]:
    """Route main() to the test settings and services."""
    with patch("thermweb_monitor.config.loader.load_config", return_value=settings), patch(
        "thermweb_monitor.services.MonitorServices.from_settings", return_value=services
    ):
        yield services


class TestArguments:
    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out

    def test_run_once_and_checks_only_are_exclusive(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--run-once", "--checks-only"])

        assert exc_info.value.code == 2

    def test_dry_run_requires_run_once(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--dry-run"]) == EXIT_CONFIG_ERROR
        assert "--dry-run requires --run-once" in capsys.readouterr().err


class TestConfigurationFailures:
    def test_settings_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch(
            "thermweb_monitor.config.loader.load_config",
            side_effect=SettingsError("Configuration file not found: /nope.yaml"),
        ):
            assert main([]) == EXIT_CONFIG_ERROR

        assert "Configuration file not found" in capsys.readouterr().err

    def test_validation_exit(self) -> None:
        with patch("thermweb_monitor.config.loader.load_config", side_effect=SystemExit(1)):
            assert main(["--test"]) == EXIT_CONFIG_ERROR

    def test_logging_configured_from_settings(self, wired: MonitorServices, no_logging_setup: MagicMock) -> None:
        main(["--test"])

        no_logging_setup.assert_called_once_with(log_format="json", log_level="INFO")


class TestTestMode:
    """--test exit codes."""

    def test_success(self, wired: MonitorServices, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["--test"]) == EXIT_SUCCESS

        out = capsys.readouterr().out
        assert "Devices: 2" in out
        assert "Tanks (44179312cc0f): reporting" in out
        assert "Configuration and portal access: OK" in out
        wired.gateway.close.assert_called_once()

    @pytest.mark.parametrize(
        "error,expected",
        [
            (ConfigurationError(), EXIT_CONFIG_ERROR),
            (UpstreamError(401), EXIT_AUTH_ERROR),
            (UpstreamError(403), EXIT_AUTH_ERROR),
            (UpstreamError(502), EXIT_CONNECTION_ERROR),
            (TransportError("Request failed: connection refused"), EXIT_CONNECTION_ERROR),
        ],
    )
    def test_failures(self, wired: MonitorServices, error: Exception, expected: int) -> None:
        wired.gateway.list_devices.return_value.error = error

        assert main(["--test"]) == expected


class TestRunOnce:
    def test_prints_report_and_persists(
        self,
        wired: MonitorServices,
        cache: MemoryEdgeCache,
        notifier: RecordingNotifier,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert main(["--run-once"]) == EXIT_SUCCESS

        out = capsys.readouterr().out
        report = json.loads(out[out.index("{"):])
        assert any(o["key"] == FREEZER_KEY and o["transition"] == "raised" for o in report["outcomes"])
        assert cache.get(FREEZER_KEY) is not None
        assert notifier.sent[0][1] == "🧊 Freezer Temperature Alert"

    def test_dry_run_sends_and_saves_nothing(
        self,
        wired: MonitorServices,
        cache: MemoryEdgeCache,
        notifier: RecordingNotifier,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        assert main(["--run-once", "--dry-run"]) == EXIT_SUCCESS

        out = capsys.readouterr().out
        assert "Notifications (1):" in out
        assert "--- 🧊 Freezer Temperature Alert" in out
        assert cache.keys() == []
        assert notifier.sent == []

    def test_failed_run_exit_code(self, wired: MonitorServices) -> None:
        wired.gateway.list_devices.side_effect = RuntimeError("boom")

        assert main(["--run-once"]) == EXIT_CONNECTION_ERROR


class TestLongRunningModes:
    def test_checks_only(self, wired: MonitorServices, settings: MonitorSettings) -> None:
        with patch("thermweb_monitor.scheduler.ScheduledRunner") as mock_runner_class:
            assert main(["--checks-only"]) == EXIT_SUCCESS

        mock_runner_class.assert_called_once_with(timezone=settings.display_timezone)
        mock_runner_class.return_value.run.assert_called_once_with(
            func=wired.checker.run, cron_expr=None, preset="every_5_minutes"
        )

    def test_invalid_schedule(self, wired: MonitorServices, capsys: pytest.CaptureFixture[str]) -> None:
        with patch("thermweb_monitor.scheduler.ScheduledRunner") as mock_runner_class:
            mock_runner_class.return_value.run.side_effect = SchedulerError("Invalid cron expression 'x'")

            assert main(["--checks-only"]) == EXIT_CONFIG_ERROR

        assert "Invalid cron expression" in capsys.readouterr().err
        wired.gateway.close.assert_called_once()

    def test_web_server(self, wired: MonitorServices, settings: MonitorSettings) -> None:
        with patch("thermweb_monitor.web.create_app") as mock_create_app, patch("uvicorn.run") as mock_run:
            assert main([]) == EXIT_SUCCESS

        mock_create_app.assert_called_once_with(wired)
        mock_run.assert_called_once_with(
            mock_create_app.return_value,
            host=settings.web_host,
            port=settings.web_port,
            log_config=None,
        )
