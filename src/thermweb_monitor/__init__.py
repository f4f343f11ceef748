"""
Thermweb Monitor - Edge proxy and alerting dashboard for a Thermweb sensor portal.

This package re-exposes device and probe readings from the upstream sensor
portal as JSON and HTML, caches upstream responses, and runs a periodic
health check that raises and clears alerts with push notifications.

Features:
- Configuration via YAML with environment variable overrides
- Docker secrets support for sensitive credentials
- Structured logging (JSON for production, text for development)
- Persisted alert state with transition-only notifications
"""

__version__ = "1.2.0"
__all__ = ["__version__"]
