"""Alert identities and the persisted alert record."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_serializer, field_validator

from thermweb_monitor.utils.timestamps import normalize_timestamp, to_epoch_ms

ALERT_KEY_BASE = "https://alerts.cache/"


class AlertKind(str, Enum):
    """Monitored alert conditions."""

    FREEZER_TEMP = "freezer_temp"
    HUMIDITY = "humidity"
    DEPTH_EMPTY = "depth_empty"
    DEPTH_FULL = "depth_full"
    DEVICE_OFFLINE = "device_offline"


_KEY_NAMES = {
    AlertKind.FREEZER_TEMP: "freezer-temp-alert",
    AlertKind.HUMIDITY: "humidity-level-alert",
    AlertKind.DEPTH_EMPTY: "depth-empty-alert",
    AlertKind.DEPTH_FULL: "depth-full-alert",
}


def alert_key(kind: AlertKind, device_id: Optional[str] = None) -> str:
    """Stable URL-shaped cache key for an alert.

    Example:
        >>> alert_key(AlertKind.DEVICE_OFFLINE, "4c7525046c96")
        'https://alerts.cache/device-offline-4c7525046c96'
    """
    if kind is AlertKind.DEVICE_OFFLINE:
        if not device_id:
            raise ValueError("device_offline alerts need a device_id")
        return f"{ALERT_KEY_BASE}device-offline-{device_id}"
    return f"{ALERT_KEY_BASE}{_KEY_NAMES[kind]}"


class AlertRecord(BaseModel):
    """Persisted state of one alert.

    Serialized with camelCase keys and epoch-millisecond timestamps so records
    written by earlier deployments keep loading. Unparseable timestamps load
    as None rather than failing the record.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    active: bool = False
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    last_value: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("lastValue", "value", "last_value"),
        serialization_alias="lastValue",
    )
    last_check: Optional[datetime] = Field(default=None, alias="lastCheck")
    last_clear: Optional[datetime] = Field(default=None, alias="lastClear")
    device_id: Optional[str] = Field(default=None, alias="deviceId")
    device_name: Optional[str] = Field(default=None, alias="deviceName")

    @field_validator("start_time", "last_check", "last_clear", mode="before")
    @classmethod
    def parse_timestamp(cls, v: Any) -> Optional[datetime]:
        if v is None:
            return None
        try:
            return normalize_timestamp(v)
        except ValueError:
            return None

    @field_validator("last_value", mode="before")
    @classmethod
    def parse_value(cls, v: Any) -> Optional[float]:
        if v is None or isinstance(v, bool):
            return None
        try:
            return float(v)
        except (TypeError, ValueError):
            return None

    @field_serializer("start_time", "last_check", "last_clear")
    def serialize_timestamp(self, v: Optional[datetime]) -> Optional[int]:
        return None if v is None else to_epoch_ms(v)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)

    def duration_minutes(self, now: datetime) -> Optional[int]:
        """Whole minutes since the alert was raised, if known."""
        if not self.active or self.start_time is None:
            return None
        return max(0, int((now - self.start_time).total_seconds() // 60))

