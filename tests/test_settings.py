"""Tests for configuration loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from thermweb_monitor.config import MonitorSettings, SettingsError, load_config
from thermweb_monitor.config.loader import resolve_file_secrets

CREDENTIAL_VARS = [
    "THERM_PORTAL_USER",
    "THERM_PORTAL_SESSION",
    "THERMWEB_PORTAL_USER",
    "THERMWEB_PORTAL_SESSION",
    "PUSHOVER_TOKEN",
    "PUSHOVER_USER",
    "THERMWEB_PUSHOVER_TOKEN",
    "THERMWEB_PUSHOVER_USER",
    "THERMWEB_PORTAL_SESSION_FILE",
    "THERM_PORTAL_SESSION_FILE",
    "CONFIG_PATH",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in CREDENTIAL_VARS:
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    def test_defaults(self) -> None:
        settings = MonitorSettings()

        assert settings.portal_base_url == "http://lab.spiderplant.com"
        assert settings.user_agent == "spider-proxy/1.0"
        assert settings.schedule_preset == "every_5_minutes"
        assert settings.known_devices == {"4c7525046c96": "Storage", "44179312cc0f": "Tanks"}
        assert settings.has_portal_credentials() is False
        assert settings.has_pushover_credentials() is False


class TestCredentialNames:
    """Historical variable names keep working."""

    def test_historical_names(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THERM_PORTAL_USER", "42")
        monkeypatch.setenv("THERM_PORTAL_SESSION", "abc")
        monkeypatch.setenv("PUSHOVER_TOKEN", "tok")
        monkeypatch.setenv("PUSHOVER_USER", "usr")

        settings = MonitorSettings()

        assert settings.portal_user == "42"
        assert settings.portal_session == "abc"
        assert settings.has_portal_credentials()
        assert settings.has_pushover_credentials()

    def test_prefixed_names(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THERMWEB_PORTAL_USER", "7")
        monkeypatch.setenv("THERMWEB_PORTAL_SESSION", "xyz")

        settings = MonitorSettings()

        assert settings.portal_user == "7"
        assert settings.portal_session == "xyz"

    def test_known_devices_from_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THERMWEB_KNOWN_DEVICES", '{"aa11": "Garage"}')

        assert MonitorSettings().known_devices == {"aa11": "Garage"}


class TestValidators:
    def test_base_url_trailing_slash_dropped(self) -> None:
        assert MonitorSettings(portal_base_url="https://portal.test/").portal_base_url == "https://portal.test"

    def test_base_url_requires_scheme(self) -> None:
        with pytest.raises(ValidationError, match="http:// or https://"):
            MonitorSettings(portal_base_url="portal.test")

    def test_log_level_normalized(self) -> None:
        assert MonitorSettings(log_level="warn").log_level == "WARNING"

    def test_log_level_invalid(self) -> None:
        with pytest.raises(ValidationError, match="Invalid log level"):
            MonitorSettings(log_level="LOUD")

    def test_unknown_timezone(self) -> None:
        with pytest.raises(ValidationError, match="Unknown timezone"):
            MonitorSettings(display_timezone="Mars/Olympus_Mons")

    def test_cron_replaces_default_preset(self) -> None:
        settings = MonitorSettings(schedule_cron="*/2 * * * *")

        assert settings.schedule_cron == "*/2 * * * *"
        assert settings.schedule_preset is None

    def test_unknown_preset(self) -> None:
        with pytest.raises(ValidationError, match="Unknown schedule preset 'weekly'"):
            MonitorSettings(schedule_preset="weekly")

    def test_file_cache_needs_directory(self) -> None:
        with pytest.raises(ValidationError, match="cache_dir is required"):
            MonitorSettings(cache_backend="file", cache_dir=None)

    def test_request_timeout_positive(self) -> None:
        with pytest.raises(ValidationError):
            MonitorSettings(request_timeout=0)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_yaml_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("portal_base_url: https://yaml.test\nweb_port: 9000\n")
        monkeypatch.setenv("CONFIG_PATH", str(config))

        settings = load_config()

        assert settings.portal_base_url == "https://yaml.test"
        assert settings.web_port == 9000

    def test_unknown_yaml_keys_ignored(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("web_port: 9001\nsmtp_host: mail.test\n")
        monkeypatch.setenv("CONFIG_PATH", str(config))

        settings = load_config()

        assert settings.web_port == 9001
        assert not hasattr(settings, "smtp_host")

    def test_env_overrides_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("web_port: 9000\n")
        monkeypatch.setenv("CONFIG_PATH", str(config))
        monkeypatch.setenv("THERMWEB_WEB_PORT", "9100")

        assert load_config().web_port == 9100

    def test_missing_yaml_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CONFIG_PATH", str(tmp_path / "absent.yaml"))

        with pytest.raises(SettingsError, match="Configuration file not found"):
            load_config()

    def test_invalid_value_exits(
        self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
    ) -> None:
        monkeypatch.setenv("THERMWEB_LOG_LEVEL", "LOUD")

        with pytest.raises(SystemExit) as exc_info:
            load_config()

        assert exc_info.value.code == 1
        assert "Configuration error: 'log_level'" in capsys.readouterr().err

    def test_secret_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        secret = tmp_path / "portal_session"
        secret.write_text("from-secret\n")
        monkeypatch.setenv("THERMWEB_PORTAL_SESSION_FILE", str(secret))

        settings = load_config()

        assert settings.portal_session == "from-secret"

    def test_missing_secret_file_is_skipped(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("THERMWEB_PORTAL_SESSION_FILE", str(tmp_path / "absent"))

        assert resolve_file_secrets() == {}

    def test_non_mapping_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("- just\n- a list\n")
        monkeypatch.setenv("CONFIG_PATH", str(config))

        with pytest.raises(SettingsError, match="must contain a mapping"):
            load_config()


class TestSecretFiles:
    """resolve_file_secrets() against an explicit environment."""

    def test_historical_name(self, tmp_path: Path) -> None:
        secret = tmp_path / "session"
        secret.write_text("legacy-secret")

        result = resolve_file_secrets({"THERM_PORTAL_SESSION_FILE": str(secret)})

        assert result == {"portal_session": "legacy-secret"}

    def test_direct_variable_wins(self, tmp_path: Path) -> None:
        secret = tmp_path / "token"
        secret.write_text("from-file")

        result = resolve_file_secrets(
            {"PUSHOVER_TOKEN": "from-env", "THERMWEB_PUSHOVER_TOKEN_FILE": str(secret)}
        )

        assert result == {}

    def test_unrelated_file_variables_ignored(self, tmp_path: Path) -> None:
        secret = tmp_path / "other"
        secret.write_text("x")

        assert resolve_file_secrets({"THERMWEB_WEB_PORT_FILE": str(secret)}) == {}
