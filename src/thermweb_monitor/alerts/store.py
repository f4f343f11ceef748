"""Alert state persistence on top of the edge cache."""

import json
from datetime import datetime
from typing import Dict, Iterable, Optional

import structlog
from pydantic import ValidationError

from thermweb_monitor.alerts.evaluator import Transition, next_record
from thermweb_monitor.alerts.models import AlertRecord
from thermweb_monitor.cache import EdgeCache

log = structlog.get_logger()

# Older deployments stored a bare "true" for an active alert
LEGACY_ACTIVE = "true"


class AlertStateDecodeError(ValueError):
    """A stored alert value is neither the legacy literal nor a record."""


def decode_record(text: str) -> AlertRecord:
    """Decode a stored alert value.

    Accepts the legacy literal ``"true"`` (active, unknown start) and JSON
    objects in the AlertRecord shape.

    Raises:
        AlertStateDecodeError: The value cannot be interpreted.
    """
    if text.strip() == LEGACY_ACTIVE:
        return AlertRecord(active=True, start_time=None)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise AlertStateDecodeError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise AlertStateDecodeError(f"expected an object, got {type(data).__name__}")

    try:
        return AlertRecord.model_validate(data)
    except ValidationError as e:
        raise AlertStateDecodeError(str(e)) from e


class AlertStateStore:
    """Reads and writes AlertRecords keyed by alert key.

    Reads never fail on bad data: absent keys and undecodable values both
    come back as an inactive record. Each write is a single cache put.
    """

    def __init__(self, cache: EdgeCache) -> None:
        self.cache = cache

    def get(self, key: str) -> AlertRecord:
        raw = self.cache.get(key)
        if raw is None:
            return AlertRecord()
        try:
            return decode_record(raw)
        except AlertStateDecodeError as e:
            log.warning("alert_state_corrupted", key=key, error=str(e))
            return AlertRecord()

    def set(self, key: str, record: AlertRecord) -> None:
        self.cache.put(key, record.to_json())
        log.debug("alert_state_saved", key=key, active=record.active)

    def clear(
        self,
        key: str,
        now: datetime,
        last_value: Optional[float] = None,
        device_id: Optional[str] = None,
        device_name: Optional[str] = None,
        previous: Optional[AlertRecord] = None,
    ) -> AlertRecord:
        """Overwrite with an inactive record instead of deleting the key.

        Device fields not given are carried over from the stored record.
        Pass ``previous`` when the caller has already read it.
        """
        if previous is None:
            previous = self.get(key)
        record = next_record(
            Transition.CLEARED,
            previous,
            now,
            value=last_value,
            device_id=device_id or previous.device_id,
            device_name=device_name or previous.device_name,
        )
        self.set(key, record)
        return record

    def raw(self, key: str) -> Optional[str]:
        """Stored value as-is, for the admin cache page."""
        return self.cache.get(key)

    def snapshot(self, keys: Iterable[str]) -> Dict[str, AlertRecord]:
        return {key: self.get(key) for key in keys}
