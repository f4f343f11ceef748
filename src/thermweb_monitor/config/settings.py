"""Pydantic settings models for Thermweb Monitor configuration."""

from __future__ import annotations

import os
from typing import Any, Dict, Literal, Optional, Tuple, Type
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
import yaml
from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from thermweb_monitor.scheduler.presets import list_presets

log = structlog.get_logger()

DEFAULT_PORTAL_URL = "http://lab.spiderplant.com"

# Devices registered with the portal; device-offline alerts exist only for these
DEFAULT_KNOWN_DEVICES: Dict[str, str] = {
    "4c7525046c96": "Storage",
    "44179312cc0f": "Tanks",
}


class YamlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings from the YAML file named by ``CONFIG_PATH``.

    Keys are settings field names (``portal_base_url: ...``). Unknown keys
    are logged and ignored. Read errors yield no values here; load_config()
    reports them before settings are built.
    """

    def __init__(self, settings_cls: Type[BaseSettings]) -> None:
        super().__init__(settings_cls)
        self._values = self._read(os.environ.get("CONFIG_PATH"))

    def _read(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError):
            return {}
        if not isinstance(data, dict):
            return {}

        known = self.settings_cls.model_fields
        unknown = sorted(str(key) for key in data if key not in known)
        if unknown:
            log.warning("config_keys_ignored", path=config_path, keys=unknown)
        return {key: value for key, value in data.items() if key in known}

    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, False

    def __call__(self) -> Dict[str, Any]:
        return dict(self._values)


def _credential(env_name: str, field_name: str) -> AliasChoices:
    """Accept both the prefixed variable and the portal's historical name."""
    return AliasChoices(f"THERMWEB_{field_name.upper()}", env_name, field_name)


class MonitorSettings(BaseSettings):
    """Thermweb Monitor configuration settings.

    Configuration is loaded in the following precedence (highest to lowest):
    1. Environment variables (THERMWEB_ prefix, plus the historical
       THERM_PORTAL_* and PUSHOVER_* credential names)
    2. Credential secret files (_FILE pattern, passed in by load_config)
    3. YAML configuration file (via CONFIG_PATH)
    4. Default values

    Credentials are optional at load time. Missing portal credentials surface
    as a ConfigurationError result from the sensor gateway, missing Pushover
    credentials make notifications a logged no-op.
    """

    model_config = SettingsConfigDict(
        env_prefix="THERMWEB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Upstream sensor portal
    portal_base_url: str = Field(
        default=DEFAULT_PORTAL_URL,
        description="Base URL of the Thermweb sensor portal",
    )
    portal_user: Optional[str] = Field(
        default=None,
        validation_alias=_credential("THERM_PORTAL_USER", "portal_user"),
        description="Portal user id (THERM_PORTAL_USER cookie)",
    )
    portal_session: Optional[str] = Field(
        default=None,
        validation_alias=_credential("THERM_PORTAL_SESSION", "portal_session"),
        description="Portal session token (THERM_PORTAL_SESSION cookie)",
    )
    user_agent: str = Field(
        default="spider-proxy/1.0",
        description="User-Agent sent to the portal",
    )
    request_timeout: float = Field(
        default=10.0,
        description="Upstream request timeout in seconds",
        gt=0,
    )

    # Pushover notifications
    pushover_token: Optional[str] = Field(
        default=None,
        validation_alias=_credential("PUSHOVER_TOKEN", "pushover_token"),
        description="Pushover application token",
    )
    pushover_user: Optional[str] = Field(
        default=None,
        validation_alias=_credential("PUSHOVER_USER", "pushover_user"),
        description="Pushover user or group key",
    )

    # Monitored probes and devices
    freezer_probe_id: str = Field(
        default="4c7525046c96-101252130008001E",
        description="Probe id of the freezer temperature sensor",
    )
    humidity_probe_id: str = Field(
        default="4c7525046c96-0e76b286d29e_rh",
        description="Probe id of the storage humidity sensor",
    )
    depth_probe_id: str = Field(
        default="44179312cc0f-depth",
        description="Probe id of the tank depth sensor",
    )
    known_devices: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_KNOWN_DEVICES),
        description="Device id to display name for liveness monitoring (JSON in env)",
    )

    # Threshold store
    thresholds_path: Optional[str] = Field(
        default=None,
        description="YAML file with threshold overrides (FREEZER_MAX_TEMP, ...)",
    )

    # Edge cache
    cache_backend: Literal["file", "memory"] = Field(
        default="file",
        description="Edge cache backend: file (persistent) or memory",
    )
    cache_dir: Optional[str] = Field(
        default="./cache",
        description="Directory for the file cache backend",
    )
    proxy_cache_ttl: int = Field(
        default=300,
        description="Seconds to cache successful proxied GET responses",
        ge=0,
    )

    # Display
    display_timezone: str = Field(
        default="America/Puerto_Rico",
        description="IANA timezone for timestamps on dashboard pages and notifications",
    )

    # Schedule
    schedule_cron: Optional[str] = Field(
        default=None,
        description="Cron expression (5-field) for the health check",
    )
    schedule_preset: Optional[str] = Field(
        default="every_5_minutes",
        description="Named schedule preset for the health check",
    )

    # Web server
    web_host: str = Field(default="0.0.0.0", description="Bind address")
    web_port: int = Field(default=8787, description="Bind port", ge=1, le=65535)

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Logging level: DEBUG, INFO, WARNING, ERROR",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log output format: json (production) or text (development)",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to set precedence.

        Order (first = highest priority):
        1. init_settings (constructor arguments)
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. yaml_settings (CONFIG_PATH YAML file)
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
        )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "WARN", "ERROR", "CRITICAL"}
        normalized = v.upper()
        if normalized == "WARN":
            normalized = "WARNING"
        if normalized not in valid_levels:
            raise ValueError(
                f"Invalid log level '{v}'. Must be one of: DEBUG, INFO, WARNING, ERROR"
            )
        return normalized

    @field_validator("portal_base_url")
    @classmethod
    def validate_portal_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("portal_base_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("display_timezone")
    @classmethod
    def validate_display_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone '{v}'")
        return v

    @field_validator("schedule_preset")
    @classmethod
    def validate_schedule_preset(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in list_presets():
            raise ValueError(f"Unknown schedule preset '{v}'. Available: {', '.join(list_presets())}")
        return v

    @model_validator(mode="after")
    def validate_cache_config(self) -> "MonitorSettings":
        """The file cache backend needs a directory."""
        if self.cache_backend == "file" and not self.cache_dir:
            raise ValueError("cache_dir is required when cache_backend is 'file'")
        return self

    @model_validator(mode="after")
    def validate_schedule_config(self) -> "MonitorSettings":
        if self.schedule_cron and self.schedule_preset:
            # An explicit cron expression wins over the default preset
            self.schedule_preset = None
        return self

    def has_portal_credentials(self) -> bool:
        return bool(self.portal_user and self.portal_session)

    def has_pushover_credentials(self) -> bool:
        return bool(self.pushover_token and self.pushover_user)
