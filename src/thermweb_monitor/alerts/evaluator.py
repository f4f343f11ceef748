"""Threshold tests and alert transition classification.

Everything here is pure: no I/O, no clock reads. The health checker supplies
``now`` and persists whatever record ``next_record`` returns.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Optional

from thermweb_monitor.alerts.models import AlertRecord


class Comparator(str, Enum):
    """Direction in which a value crosses its threshold into alert."""

    ABOVE = "above"
    BELOW = "below"


class Transition(str, Enum):
    """Change of an alert between two consecutive evaluations."""

    RAISED = "raised"
    CLEARED = "cleared"
    SUSTAINED = "sustained"
    STEADY = "steady"

    @property
    def notifies(self) -> bool:
        return self in (Transition.RAISED, Transition.CLEARED)


def condition_holds(
    value: Optional[float],
    threshold: float,
    comparator: Comparator,
) -> Optional[bool]:
    """Test a measurement against its threshold.

    Returns:
        True/False for a usable value, None when the value is missing or not
        a finite number. None means "cannot evaluate this cycle" and the
        caller must leave stored state alone.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None

    if comparator is Comparator.BELOW:
        return number < threshold
    return number > threshold


def classify(was_active: bool, is_active: bool) -> Transition:
    """Classify the change between the stored and the current alert condition."""
    if is_active:
        return Transition.SUSTAINED if was_active else Transition.RAISED
    return Transition.CLEARED if was_active else Transition.STEADY


def next_record(
    transition: Transition,
    previous: AlertRecord,
    now: datetime,
    value: Optional[float] = None,
    device_id: Optional[str] = None,
    device_name: Optional[str] = None,
) -> Optional[AlertRecord]:
    """Record to persist after a transition, or None to leave storage untouched.

    SUSTAINED keeps the stored record so the alert duration keeps accumulating
    from the original raise. STEADY refreshes ``last_check`` on an inactive
    record and carries the previous ``last_clear`` forward.
    """
    if transition is Transition.SUSTAINED:
        return None

    if transition is Transition.RAISED:
        return AlertRecord(
            active=True,
            start_time=now,
            last_value=value,
            last_check=now,
            device_id=device_id,
            device_name=device_name,
        )

    if transition is Transition.CLEARED:
        return AlertRecord(
            active=False,
            last_clear=now,
            last_check=now,
            last_value=value,
            device_id=device_id,
            device_name=device_name,
        )

    return AlertRecord(
        active=False,
        last_check=now,
        last_clear=previous.last_clear,
        last_value=value,
        device_id=device_id,
        device_name=device_name,
    )


def minutes_offline(now_epoch: float, last_report_epoch: float) -> int:
    """Whole minutes since a device last reported."""
    return int(math.floor((now_epoch - last_report_epoch) / 60))


def format_duration(minutes: int) -> str:
    """Render a duration as ``"2h 5m"`` from an hour up, else ``"33m"``.

    Every alert and offline duration on pages and in notifications goes
    through here.
    """
    minutes = max(0, int(minutes))
    hours, rest = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {rest}m"
    return f"{rest}m"
