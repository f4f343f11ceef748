"""FastAPI application factory and lifespan for Thermweb Monitor."""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from thermweb_monitor import __version__
from thermweb_monitor.scheduler import ScheduledRunner
from thermweb_monitor.services import MonitorServices
from thermweb_monitor.web import api, pages, proxy
from thermweb_monitor.web.proxy import ProxyResponseCache
from thermweb_monitor.web.rendering import PageRenderer

log = structlog.get_logger()


def create_app(
    services: MonitorServices,
    run_scheduler: bool = True,
    proxy_client: Optional[httpx.AsyncClient] = None,
) -> FastAPI:
    """Build the web application around shared services.

    Args:
        services: Gateway, cache, alert store and health checker.
        run_scheduler: Start the scheduled health check with the app.
        proxy_client: Optional pre-built client for the reverse proxy.

    Returns:
        Configured FastAPI application.
    """
    settings = services.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        runner: Optional[ScheduledRunner] = None
        if run_scheduler:
            runner = ScheduledRunner(timezone=settings.display_timezone)
            runner.start_background(
                services.checker.run,
                cron_expr=settings.schedule_cron,
                preset=settings.schedule_preset,
            )
        log.info("web_started", host=settings.web_host, port=settings.web_port)
        try:
            yield
        finally:
            if runner is not None:
                runner.shutdown()
            await app.state.proxy_client.aclose()
            log.info("web_stopped")

    app = FastAPI(title="Thermweb Monitor", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )

    app.state.services = services
    app.state.renderer = PageRenderer(display_timezone=settings.display_timezone)
    app.state.proxy_cache = ProxyResponseCache(services.cache, ttl=settings.proxy_cache_ttl)
    app.state.proxy_client = proxy_client or httpx.AsyncClient(
        timeout=settings.request_timeout,
        follow_redirects=False,
    )

    app.include_router(api.router)
    app.include_router(pages.router)
    # Catch-all, must stay last
    app.include_router(proxy.router)
    return app
