"""Error taxonomy for sensor portal access.

All exceptions inherit from PortalError for consistent error handling. The
sensor gateway never raises these past its boundary; it returns them inside a
GatewayResult. Callers that prefer exceptions use GatewayResult.unwrap().
"""

from typing import Optional


class PortalError(Exception):
    """Base exception for all sensor portal errors.

    Attributes:
        message: Human-readable error message.
        hint: Optional troubleshooting hint.
        status_code: HTTP status to report to HTTP-facing callers.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        hint: Optional[str] = None,
    ) -> None:
        self.message = message
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional hint."""
        if self.hint:
            return f"{self.message}\n\nHint: {self.hint}"
        return self.message


class ConfigurationError(PortalError):
    """Portal credentials are not configured.

    Fatal to the current check, never to the process.
    """

    def __init__(
        self,
        message: str = "Missing authentication configuration",
        hint: Optional[str] = None,
    ) -> None:
        if hint is None:
            hint = (
                "Set THERM_PORTAL_USER and THERM_PORTAL_SESSION "
                "(or THERMWEB_PORTAL_USER / THERMWEB_PORTAL_SESSION)."
            )
        super().__init__(message=message, hint=hint)


class UpstreamError(PortalError):
    """The portal answered with a non-2xx status.

    The status is propagated to HTTP-facing callers.
    """

    def __init__(self, status: int, message: Optional[str] = None) -> None:
        self.status = status
        self.status_code = status
        hint = None
        if status in (401, 403):
            hint = "The portal session may have expired. Log in again and update THERM_PORTAL_SESSION."
        super().__init__(
            message=message or f"API request failed with status {status}",
            hint=hint,
        )


class TransportError(PortalError):
    """The request could not be completed or the body was not valid JSON."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message)
