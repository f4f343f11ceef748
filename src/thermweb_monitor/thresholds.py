"""Alert threshold configuration.

Thresholds are read fresh on every health check from a key-value threshold
store. Each field falls back to its compiled default on its own, so a single
bad override never discards the others.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Union

import structlog
import yaml

log = structlog.get_logger()


class ThresholdSource(Protocol):
    """Anything with a ``get(key)`` lookup, e.g. a dict or YamlThresholdStore."""

    def get(self, key: str) -> Optional[Any]: ...


@dataclass(frozen=True)
class ThresholdSet:
    """Alert thresholds for one health-check run.

    Attributes:
        freezer_max_temp_c: Freezer alert when temperature exceeds this (Celsius)
        humidity_max_percent: Humidity alert when level exceeds this (percent)
        depth_max_level: Tank "too empty" when depth reading exceeds this
        depth_min_level: Tank "too full" when depth reading is below this
        device_offline_timeout_seconds: Device offline when silent for longer
    """

    freezer_max_temp_c: float = -5.0
    humidity_max_percent: float = 55.0
    depth_max_level: float = 0.7
    depth_min_level: float = 0.171
    device_offline_timeout_seconds: int = 15 * 60


DEFAULT_THRESHOLDS = ThresholdSet()

# Threshold store key for each ThresholdSet field
THRESHOLD_KEYS: Dict[str, str] = {
    "freezer_max_temp_c": "FREEZER_MAX_TEMP",
    "humidity_max_percent": "HUMIDITY_MAX_LEVEL",
    "depth_max_level": "DEPTH_MAX_LEVEL",
    "depth_min_level": "DEPTH_MIN_LEVEL",
    "device_offline_timeout_seconds": "DEVICE_TIMEOUT",
}


def _parse_float(raw: Any) -> float:
    value = float(str(raw).strip())
    if not math.isfinite(value):
        raise ValueError(f"non-finite threshold {raw!r}")
    return value


def _parse_int(raw: Any) -> int:
    text = str(raw).strip()
    try:
        return int(text)
    except ValueError:
        # Accept "900.0" the way the portal admin tends to type it
        return int(_parse_float(text))


_PARSERS: Dict[str, Callable[[Any], Union[int, float]]] = {
    f.name: (_parse_int if f.type in (int, "int") else _parse_float)
    for f in fields(ThresholdSet)
}


def resolve_thresholds(source: Optional[ThresholdSource]) -> ThresholdSet:
    """Resolve a complete ThresholdSet from a threshold store.

    Never raises. Each field is looked up and parsed independently; lookup
    errors, unparseable values and an unavailable store all fall back to the
    compiled default for that field.

    Args:
        source: Threshold store, or None when no store is provisioned.

    Returns:
        ThresholdSet with every field populated.
    """
    if source is None:
        log.debug("threshold_store_unavailable", using="defaults")
        return DEFAULT_THRESHOLDS

    values: Dict[str, Union[int, float]] = {}
    for field_name, key in THRESHOLD_KEYS.items():
        try:
            raw = source.get(key)
        except Exception as e:
            log.warning("threshold_lookup_failed", key=key, error=str(e))
            continue

        if raw is None:
            continue

        try:
            values[field_name] = _PARSERS[field_name](raw)
        except (TypeError, ValueError) as e:
            log.warning("threshold_parse_failed", key=key, value=str(raw), error=str(e))

    if values:
        log.debug("thresholds_overridden", overrides=values)
    return replace(DEFAULT_THRESHOLDS, **values)


class YamlThresholdStore:
    """Threshold store backed by a flat YAML mapping of key to value.

    The file is re-read on every lookup so edits apply to the next health
    check without a restart.

    Example file:
        FREEZER_MAX_TEMP: -8
        DEVICE_TIMEOUT: 1800
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        with open(self.path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Threshold file {self.path} must contain a mapping")
        return data

    def get(self, key: str) -> Optional[str]:
        """Return the raw value for a threshold key, or None if unset.

        Raises:
            OSError: The file cannot be read.
            yaml.YAMLError, ValueError: The file is not a YAML mapping.
        """
        value = self._load().get(key)
        return None if value is None else str(value)

    def items(self) -> Dict[str, str]:
        """All overrides currently in the file, for the admin page."""
        return {str(k): str(v) for k, v in self._load().items() if v is not None}
