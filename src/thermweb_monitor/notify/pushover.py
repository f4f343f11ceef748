"""Pushover push-notification delivery."""

from typing import Any, Optional

import httpx
import structlog

from thermweb_monitor.config import MonitorSettings

log = structlog.get_logger()

PUSHOVER_API_URL = "https://api.pushover.net/1/messages.json"
DEFAULT_TITLE = "Device Alert"


class PushoverNotifier:
    """Sends high-priority messages through the Pushover API.

    Failures of any kind are logged and reported as False; the health check
    must keep running when notifications cannot be delivered.
    """

    def __init__(
        self,
        token: Optional[str],
        user: Optional[str],
        priority: int = 1,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """Initialize Pushover delivery.

        Args:
            token: Pushover application token
            user: Pushover user or group key
            priority: Message priority (1 = high, bypasses quiet hours)
            timeout: Request timeout in seconds
            client: Optional pre-built httpx.Client
        """
        self.token = token
        self.user = user
        self.priority = priority
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(
        cls,
        settings: MonitorSettings,
        client: Optional[httpx.Client] = None,
    ) -> "PushoverNotifier":
        return cls(
            token=settings.pushover_token,
            user=settings.pushover_user,
            timeout=settings.request_timeout,
            client=client,
        )

    def send(self, message: str, title: str = DEFAULT_TITLE) -> bool:
        if not self.token or not self.user:
            log.error("pushover_credentials_missing", title=title)
            return False

        try:
            response = self._client.post(
                PUSHOVER_API_URL,
                data={
                    "token": self.token,
                    "user": self.user,
                    "message": message,
                    "title": title,
                    "priority": str(self.priority),
                },
            )
            result: Any = response.json()
        except (httpx.HTTPError, ValueError) as e:
            log.error("pushover_send_error", title=title, error=str(e))
            return False

        if response.is_success and isinstance(result, dict) and result.get("status") == 1:
            log.info("pushover_sent", title=title)
            return True

        log.error(
            "pushover_send_failed",
            title=title,
            status=response.status_code,
            response=result,
        )
        return False

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
