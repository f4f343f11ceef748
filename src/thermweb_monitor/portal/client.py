"""Sensor gateway for the Thermweb portal API.

The gateway performs authenticated, single-attempt reads of the device list,
the probe list and single probes. It never raises past its boundary: every
call returns a GatewayResult carrying either the parsed JSON payload or a
PortalError describing what went wrong.

Example usage:
    from thermweb_monitor.config import load_config
    from thermweb_monitor.portal import SensorGateway

    with SensorGateway.from_settings(load_config()) as gateway:
        result = gateway.list_devices()
        if result.ok:
            print(result.data["devices"])
        else:
            print(f"Portal error: {result.error}")
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

from thermweb_monitor.config import MonitorSettings

from .exceptions import ConfigurationError, PortalError, TransportError, UpstreamError

logger = structlog.get_logger(__name__)

API_ENDPOINT = "/api/tw-api.cgi"


@dataclass
class GatewayResult:
    """Outcome of one portal call: a payload or an error, never both."""

    data: Any = None
    error: Optional[PortalError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int:
        """HTTP status to surface to HTTP-facing callers."""
        return 200 if self.error is None else self.error.status_code

    def unwrap(self) -> Any:
        """Return the payload, raising the carried error if the call failed."""
        if self.error is not None:
            raise self.error
        return self.data

    @classmethod
    def success(cls, data: Any) -> "GatewayResult":
        return cls(data=data)

    @classmethod
    def failure(cls, error: PortalError) -> "GatewayResult":
        return cls(error=error)


class SensorGateway:
    """Client for the portal's ``tw-api.cgi`` JSON API.

    Authentication is a cookie built from the portal user id and session
    token. There are no retries: each call is one GET, and the next scheduled
    run is the retry.

    Attributes:
        base_url: Portal base URL without trailing slash.
        user: Portal user id, or None when not configured.
    """

    def __init__(
        self,
        base_url: str,
        user: Optional[str],
        session: Optional[str],
        user_agent: str = "spider-proxy/1.0",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        """Initialize the gateway.

        Args:
            base_url: Portal base URL.
            user: Portal user id (THERM_PORTAL_USER).
            session: Portal session token (THERM_PORTAL_SESSION).
            user_agent: User-Agent header for upstream requests.
            timeout: Request timeout in seconds.
            client: Optional pre-built httpx.Client (tests inject a mock transport).
        """
        self.base_url = base_url.rstrip("/")
        self.user = user
        self._session = session
        self.user_agent = user_agent
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(
        cls,
        settings: MonitorSettings,
        client: Optional[httpx.Client] = None,
        user_agent: Optional[str] = None,
    ) -> "SensorGateway":
        return cls(
            base_url=settings.portal_base_url,
            user=settings.portal_user,
            session=settings.portal_session,
            user_agent=user_agent or settings.user_agent,
            timeout=settings.request_timeout,
            client=client,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.user and self._session)

    def list_devices(self) -> GatewayResult:
        """Fetch ``{"devices": {id: {"name", "last"}}}``."""
        return self._get("devices")

    def list_probes(self) -> GatewayResult:
        """Fetch ``{"probes": [{"id", "name", "probetype", "last"}]}``."""
        return self._get("probes")

    def get_probe(self, probe_id: str) -> GatewayResult:
        """Fetch a single probe object including its current ``value``."""
        return self._get(f"probes/{probe_id}")

    def _get(self, resource: str) -> GatewayResult:
        if not self.has_credentials:
            logger.error("portal_credentials_missing", resource=resource)
            return GatewayResult.failure(ConfigurationError())

        url = f"{self.base_url}{API_ENDPOINT}"
        params = {"path": f"/v1/users/{self.user}/{resource}"}
        headers = {
            "Cookie": f"THERM_PORTAL_USER={self.user}; THERM_PORTAL_SESSION={self._session}",
            "User-Agent": self.user_agent,
        }

        try:
            response = self._client.get(url, params=params, headers=headers)
        except httpx.RequestError as e:
            logger.warning("portal_request_failed", resource=resource, error=str(e))
            return GatewayResult.failure(TransportError(f"Request failed: {e}"))

        if not response.is_success:
            logger.warning(
                "portal_upstream_error",
                resource=resource,
                status=response.status_code,
            )
            return GatewayResult.failure(UpstreamError(response.status_code))

        try:
            data = response.json()
        except ValueError as e:
            logger.warning("portal_invalid_json", resource=resource, error=str(e))
            return GatewayResult.failure(TransportError(f"Invalid JSON from portal: {e}"))

        logger.debug("portal_response", resource=resource)
        return GatewayResult.success(data)

    def close(self) -> None:
        """Close the HTTP client if the gateway created it."""
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "SensorGateway":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
