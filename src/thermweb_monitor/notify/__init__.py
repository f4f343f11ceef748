"""Notification delivery for alert transitions."""

from thermweb_monitor.notify.base import Notifier, RecordingNotifier
from thermweb_monitor.notify.pushover import PUSHOVER_API_URL, PushoverNotifier

__all__ = [
    "Notifier",
    "PUSHOVER_API_URL",
    "PushoverNotifier",
    "RecordingNotifier",
]
