"""Pydantic models for sensor portal payloads.

The portal returns loosely typed JSON; these models normalize the fields the
monitor relies on and ignore the rest. Raw payloads are still passed through
untouched by the JSON endpoints.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _coerce_number(v: Any) -> Optional[float]:
    """Numbers and numeric strings become floats, anything else None."""
    if v is None or isinstance(v, bool):
        return None
    try:
        return float(v)
    except (TypeError, ValueError):
        return None


def _coerce_epoch(v: Any) -> Optional[int]:
    number = _coerce_number(v)
    return None if number is None else int(number)


def _coerce_text(v: Any) -> Optional[str]:
    """Strings pass through, numbers become strings, anything else None."""
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, str):
        return v
    if isinstance(v, (int, float)):
        return str(v)
    return None


class Device(BaseModel):
    """A portal device (gateway unit) and its last report time."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = Field(default="Unknown", description="Device display name")
    last: Optional[int] = Field(
        default=None, description="Epoch seconds of the last report"
    )

    @field_validator("name", mode="before")
    @classmethod
    def parse_name(cls, v: Any) -> str:
        return _coerce_text(v) or "Unknown"

    @field_validator("last", mode="before")
    @classmethod
    def parse_last(cls, v: Any) -> Optional[int]:
        return _coerce_epoch(v)


class ProbeSummary(BaseModel):
    """One entry of the probe list. The list carries no value."""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    probetype: str = ""
    last: Optional[int] = None
    value: Optional[float] = None

    @field_validator("name", mode="before")
    @classmethod
    def parse_name(cls, v: Any) -> Optional[str]:
        return _coerce_text(v)

    @field_validator("probetype", mode="before")
    @classmethod
    def parse_probetype(cls, v: Any) -> str:
        return _coerce_text(v) or ""

    @field_validator("last", mode="before")
    @classmethod
    def parse_last(cls, v: Any) -> Optional[int]:
        return _coerce_epoch(v)

    @field_validator("value", mode="before")
    @classmethod
    def parse_value(cls, v: Any) -> Optional[float]:
        return _coerce_number(v)

    @property
    def device_id(self) -> str:
        """Device id prefix of the probe id (text before the first hyphen)."""
        return self.id.split("-")[0]


class ProbeReading(BaseModel):
    """A single probe with its current value.

    ``value`` is None when the probe has no reading; such a reading must not be
    evaluated against thresholds.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    name: Optional[str] = None
    probetype: str = ""
    value: Optional[float] = None
    last: Optional[int] = None
    time_last: Optional[str] = None

    @field_validator("name", "time_last", mode="before")
    @classmethod
    def parse_text(cls, v: Any) -> Optional[str]:
        return _coerce_text(v)

    @field_validator("probetype", mode="before")
    @classmethod
    def parse_probetype(cls, v: Any) -> str:
        return _coerce_text(v) or ""

    @field_validator("last", mode="before")
    @classmethod
    def parse_last(cls, v: Any) -> Optional[int]:
        return _coerce_epoch(v)

    @field_validator("value", mode="before")
    @classmethod
    def parse_value(cls, v: Any) -> Optional[float]:
        return _coerce_number(v)


def devices_from_payload(payload: Any) -> Dict[str, Device]:
    """Parse ``{"devices": {id: {name, last}}}`` into Device models keyed by id."""
    raw = payload.get("devices") if isinstance(payload, dict) else None
    if not isinstance(raw, dict):
        return {}
    return {
        device_id: Device.model_validate(
            {**(info if isinstance(info, dict) else {}), "id": device_id}
        )
        for device_id, info in raw.items()
    }


def probes_from_payload(payload: Any) -> List[ProbeSummary]:
    """Parse ``{"probes": [...]}`` into ProbeSummary models, skipping entries without id."""
    raw = payload.get("probes") if isinstance(payload, dict) else None
    if not isinstance(raw, list):
        return []
    return [
        ProbeSummary.model_validate(item)
        for item in raw
        if isinstance(item, dict) and item.get("id")
    ]


def reading_from_payload(payload: Any, probe_id: str) -> ProbeReading:
    """Parse a single-probe payload, falling back to the requested id."""
    data = dict(payload) if isinstance(payload, dict) else {}
    data.setdefault("id", probe_id)
    return ProbeReading.model_validate(data)
