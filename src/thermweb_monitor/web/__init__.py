"""Web dashboard, JSON API and reverse proxy."""

from thermweb_monitor.web.app import create_app

__all__ = ["create_app"]
