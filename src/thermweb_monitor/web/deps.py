"""Request dependencies resolving the app's shared services."""

from fastapi import Request

from thermweb_monitor.portal import SensorGateway
from thermweb_monitor.services import MonitorServices
from thermweb_monitor.web.rendering import PageRenderer


def get_services(request: Request) -> MonitorServices:
    return request.app.state.services


def get_gateway(request: Request) -> SensorGateway:
    return request.app.state.services.gateway


def get_renderer(request: Request) -> PageRenderer:
    return request.app.state.renderer
