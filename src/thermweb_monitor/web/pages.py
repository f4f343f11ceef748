"""HTML dashboard pages.

GET  /probes                - probe listing grouped by device, with the alert summary
GET  /probes/{probe_id}     - single probe detail with the raw portal response
GET  /admin/cache           - alert records, thresholds and cache keys
POST /admin/health-check    - run the health check now and return its report
GET  /debug/credentials     - which credentials are configured (values masked)
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse

from thermweb_monitor.alerts import all_alert_keys, build_alert_summary, read_alert_records
from thermweb_monitor.portal import (
    ProbeSummary,
    devices_from_payload,
    probes_from_payload,
    reading_from_payload,
)
from thermweb_monitor.services import MonitorServices
from thermweb_monitor.thresholds import THRESHOLD_KEYS, resolve_thresholds
from thermweb_monitor.web.deps import get_renderer, get_services
from thermweb_monitor.web.rendering import PageRenderer

log = structlog.get_logger()

router = APIRouter()

# Probe values are fetched one request per probe
VALUE_FETCH_WORKERS = 8


def _error_page(message: str, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=status_code)


def mask_secret(value: Optional[str]) -> str:
    """Show only enough of a credential to tell which one is configured."""
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}{'*' * 8} ({len(value)} chars)"


def _with_values(services: MonitorServices, probes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Attach the current value to each probe of the listing, None when unavailable."""

    def fetch(probe: Dict[str, Any]) -> Dict[str, Any]:
        result = services.gateway.get_probe(probe["id"])
        value = reading_from_payload(result.data, probe["id"]).value if result.ok else None
        return {**probe, "value": value}

    if not probes:
        return []
    with ThreadPoolExecutor(max_workers=VALUE_FETCH_WORKERS, thread_name_prefix="probe-value") as pool:
        return list(pool.map(fetch, probes))


def _group_by_device(
    probes: List[Dict[str, Any]],
    known_devices: Dict[str, str],
) -> List[Dict[str, Any]]:
    groups: Dict[str, List[Dict[str, Any]]] = {}
    for probe in probes:
        groups.setdefault(str(probe["id"]).split("-")[0], []).append(probe)
    return [
        {
            "device_id": device_id,
            "name": known_devices.get(device_id, f"Device {device_id}"),
            "probes": members,
        }
        for device_id, members in groups.items()
    ]


@router.get("/probes", response_class=HTMLResponse)
def probes_page(
    services: MonitorServices = Depends(get_services),
    renderer: PageRenderer = Depends(get_renderer),
) -> Any:
    listing = services.gateway.list_probes()
    if not listing.ok:
        return _error_page(listing.error.message, listing.status_code)

    raw_probes = [p.model_dump() for p in probes_from_payload(listing.data)]
    probes = _with_values(services, raw_probes)

    devices_result = services.gateway.list_devices()
    devices = devices_from_payload(devices_result.data) if devices_result.ok else None
    if devices is None:
        log.warning("dashboard_devices_unavailable", error=str(devices_result.error))

    summary = build_alert_summary(
        probes=[ProbeSummary.model_validate(p) for p in probes],
        devices=devices,
        records=read_alert_records(services.store, services.probe_checks, services.settings.known_devices),
        thresholds=resolve_thresholds(services.threshold_source),
        probe_checks=services.probe_checks,
        known_devices=services.settings.known_devices,
        now=datetime.now(timezone.utc),
    )

    return renderer.render(
        "probes.html",
        **renderer.base_context(),
        probe_count=len(probes),
        summary=summary,
        groups=_group_by_device(probes, services.settings.known_devices),
    )


@router.get("/probes/{probe_id}", response_class=HTMLResponse)
def probe_page(
    probe_id: str,
    services: MonitorServices = Depends(get_services),
    renderer: PageRenderer = Depends(get_renderer),
) -> Any:
    result = services.gateway.get_probe(probe_id)
    if not result.ok:
        return _error_page(result.error.message, result.status_code)

    raw = result.data
    probe = dict(raw) if isinstance(raw, dict) else {}
    # Non-numeric values are shown as missing
    probe["value"] = reading_from_payload(raw, probe_id).value
    return renderer.render(
        "probe.html",
        **renderer.base_context(),
        probe_id=probe_id,
        probe=probe,
        raw=raw,
    )


@router.get("/admin/cache", response_class=HTMLResponse)
def admin_cache_page(
    services: MonitorServices = Depends(get_services),
    renderer: PageRenderer = Depends(get_renderer),
) -> Any:
    now = datetime.now(timezone.utc)
    keys = all_alert_keys(services.probe_checks, services.settings.known_devices)
    records = [
        {
            "key": key,
            "record": record,
            "raw": services.store.raw(key),
            "duration": record.duration_minutes(now),
        }
        for key, record in services.store.snapshot(keys).items()
    ]

    overrides: Dict[str, str] = {}
    threshold_error = None
    source = services.threshold_source
    items = getattr(source, "items", None)
    if callable(items):
        try:
            overrides = dict(items())
        except Exception as e:
            log.warning("threshold_store_read_failed", error=str(e))
            threshold_error = str(e)

    resolved = asdict(resolve_thresholds(source))
    thresholds = [
        {
            "key": key,
            "value": resolved[field_name],
            "source": "store" if key in overrides else "default",
        }
        for field_name, key in THRESHOLD_KEYS.items()
    ]

    return renderer.render(
        "admin_cache.html",
        **renderer.base_context(),
        records=records,
        thresholds=thresholds,
        threshold_error=threshold_error,
        cache_keys=services.cache.keys(),
    )


@router.post("/admin/health-check")
def trigger_health_check(services: MonitorServices = Depends(get_services)) -> JSONResponse:
    log.info("health_check_triggered", source="admin")
    report = services.checker.run()
    return JSONResponse(report.to_dict())


@router.get("/debug/credentials", response_class=HTMLResponse)
def debug_credentials_page(
    services: MonitorServices = Depends(get_services),
    renderer: PageRenderer = Depends(get_renderer),
) -> Any:
    settings = services.settings
    credentials = [
        {"name": name, "present": bool(value), "masked": mask_secret(value)}
        for name, value in (
            ("THERM_PORTAL_USER", settings.portal_user),
            ("THERM_PORTAL_SESSION", settings.portal_session),
            ("PUSHOVER_TOKEN", settings.pushover_token),
            ("PUSHOVER_USER", settings.pushover_user),
        )
    ]
    return renderer.render(
        "debug_credentials.html",
        **renderer.base_context(),
        credentials=credentials,
        portal_base_url=settings.portal_base_url,
    )
