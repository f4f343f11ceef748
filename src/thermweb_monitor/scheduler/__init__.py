"""Scheduler subsystem for periodic health checks."""

from thermweb_monitor.scheduler.presets import SCHEDULE_PRESETS, get_preset, list_presets
from thermweb_monitor.scheduler.runner import ScheduledRunner, SchedulerError, resolve_schedule

__all__ = [
    "ScheduledRunner",
    "SchedulerError",
    "SCHEDULE_PRESETS",
    "get_preset",
    "list_presets",
    "resolve_schedule",
]
