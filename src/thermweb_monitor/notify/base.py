"""Notifier interface."""

from typing import List, Protocol, Tuple


class Notifier(Protocol):
    """Push-notification sink.

    ``send`` reports success as a bool and must never raise.
    """

    def send(self, message: str, title: str) -> bool: ...


class RecordingNotifier:
    """Notifier that keeps messages in memory instead of sending them.

    Used by ``--run-once --dry-run`` and handy in tests.
    """

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str]] = []

    def send(self, message: str, title: str) -> bool:
        self.sent.append((message, title))
        return True
