"""Sensor portal access.

This module provides the SensorGateway for reading devices and probes from
the Thermweb portal, the GatewayResult wrapper it returns, the portal error
taxonomy, and pydantic models for the portal's payloads.
"""

from thermweb_monitor.portal.client import GatewayResult, SensorGateway
from thermweb_monitor.portal.exceptions import (
    ConfigurationError,
    PortalError,
    TransportError,
    UpstreamError,
)
from thermweb_monitor.portal.models import (
    Device,
    ProbeReading,
    ProbeSummary,
    devices_from_payload,
    probes_from_payload,
    reading_from_payload,
)

__all__ = [
    # Gateway
    "GatewayResult",
    "SensorGateway",
    # Exceptions
    "ConfigurationError",
    "PortalError",
    "TransportError",
    "UpstreamError",
    # Models
    "Device",
    "ProbeReading",
    "ProbeSummary",
    "devices_from_payload",
    "probes_from_payload",
    "reading_from_payload",
]
