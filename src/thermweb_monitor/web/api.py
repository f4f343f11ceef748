"""GET /api/devices, /api/probes, /api/probes/{probe_id} - JSON pass-through of portal data."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from thermweb_monitor.portal import GatewayResult, PortalError, SensorGateway
from thermweb_monitor.web.deps import get_gateway

router = APIRouter(prefix="/api")


def gateway_response(result: GatewayResult) -> JSONResponse:
    """Payload on success, ``{"error": ...}`` with the upstream status (or 500) otherwise."""
    try:
        return JSONResponse(result.unwrap())
    except PortalError as e:
        return JSONResponse({"error": e.message}, status_code=e.status_code)


@router.get("/devices")
def get_devices(gateway: SensorGateway = Depends(get_gateway)) -> JSONResponse:
    return gateway_response(gateway.list_devices())


@router.get("/probes")
def get_probes(gateway: SensorGateway = Depends(get_gateway)) -> JSONResponse:
    return gateway_response(gateway.list_probes())


@router.get("/probes/{probe_id}")
def get_probe(probe_id: str, gateway: SensorGateway = Depends(get_gateway)) -> JSONResponse:
    return gateway_response(gateway.get_probe(probe_id))
