"""Catch-all reverse proxy to the sensor portal.

Requests not matched by any other route are forwarded to the portal base URL.
Successful GET responses are kept in the edge cache for the configured TTL.
Redirects pointing at the portal are rewritten to point back at this proxy.
"""

import base64
import json
from typing import Any, Dict, List, Optional, Tuple

import httpx
import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from thermweb_monitor.cache import EdgeCache
from thermweb_monitor.services import MonitorServices
from thermweb_monitor.web.deps import get_services

log = structlog.get_logger()

router = APIRouter()

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD"]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

# Not forwarded in either direction; httpx has already decoded the body
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "te",
        "trailers",
        "transfer-encoding",
        "upgrade",
        "host",
        "content-length",
        "content-encoding",
    }
)


def _filter_headers(headers: Any) -> List[Tuple[str, str]]:
    return [(k, v) for k, v in headers.items() if k.lower() not in HOP_BY_HOP_HEADERS]


class ProxyResponseCache:
    """Serializes proxied responses into the edge cache."""

    def __init__(self, cache: EdgeCache, ttl: int) -> None:
        self.cache = cache
        self.ttl = ttl

    def get(self, url: str) -> Optional[Dict[str, Any]]:
        raw = self.cache.get(url)
        if raw is None:
            return None
        try:
            entry = json.loads(raw)
            return {
                "status": int(entry["status"]),
                "headers": [tuple(h) for h in entry["headers"]],
                "body": base64.b64decode(entry["body"]),
            }
        except (ValueError, KeyError, TypeError) as e:
            log.warning("proxy_cache_entry_invalid", url=url, error=str(e))
            return None

    def put(self, url: str, status: int, headers: List[Tuple[str, str]], body: bytes) -> None:
        if self.ttl <= 0:
            return
        cached_headers = [(k, v) for k, v in headers if k.lower() != "cache-control"]
        cached_headers.append(("Cache-Control", f"max-age={self.ttl}"))
        entry = {
            "status": status,
            "headers": cached_headers,
            "body": base64.b64encode(body).decode("ascii"),
        }
        self.cache.put(url, json.dumps(entry), ttl=self.ttl)


def rewrite_location(location: str, upstream_base: str, proxy_base: str) -> str:
    """Point redirects at the portal back to the proxy's own origin."""
    if location.startswith(upstream_base):
        return proxy_base.rstrip("/") + location[len(upstream_base):]
    return location


def _build_response(
    status: int,
    headers: List[Tuple[str, str]],
    body: bytes,
    upstream_base: str,
    proxy_base: str,
) -> Response:
    response = Response(content=body, status_code=status)
    for key, value in headers:
        if key.lower() == "location":
            value = rewrite_location(value, upstream_base, proxy_base)
        response.headers.append(key, value)
    for key, value in CORS_HEADERS.items():
        response.headers[key] = value
    return response


@router.options("/{path:path}")
def preflight(path: str) -> Response:
    return Response(
        status_code=200,
        headers={**CORS_HEADERS, "Access-Control-Max-Age": "86400"},
    )


@router.api_route("/{path:path}", methods=PROXY_METHODS)
async def proxy(
    path: str,
    request: Request,
    services: MonitorServices = Depends(get_services),
) -> Response:
    upstream_base = services.settings.portal_base_url
    target = f"{upstream_base}/{path}"
    if request.url.query:
        target = f"{target}?{request.url.query}"
    proxy_base = f"{request.url.scheme}://{request.url.netloc}"
    response_cache: ProxyResponseCache = request.app.state.proxy_cache
    client: httpx.AsyncClient = request.app.state.proxy_client

    try:
        if request.method == "GET":
            cached = response_cache.get(target)
            if cached is not None:
                log.debug("proxy_cache_hit", url=target)
                return _build_response(
                    cached["status"], cached["headers"], cached["body"], upstream_base, proxy_base
                )

        upstream = await client.request(
            request.method,
            target,
            headers=_filter_headers(request.headers),
            content=await request.body(),
        )
        headers = _filter_headers(upstream.headers)
        body = upstream.content

        if request.method == "GET" and upstream.is_success:
            response_cache.put(target, upstream.status_code, headers, body)

        log.debug("proxy_forwarded", method=request.method, url=target, status=upstream.status_code)
        return _build_response(upstream.status_code, headers, body, upstream_base, proxy_base)

    except Exception as e:
        log.error("proxy_error", method=request.method, url=target, error=str(e))
        return PlainTextResponse(f"Proxy error: {e}", status_code=500, headers=CORS_HEADERS)
