"""
Multi-Swagger API - FastAPI Application

One Swagger UI for every API listed in the spec ConfigMap: the UI shell,
the spec listing, live spec rendering and the "try it out" proxy.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from multiswagger import __version__
from multiswagger.api.middleware import BasePathMiddleware, CORSHeadersMiddleware, RequestIdMiddleware
from multiswagger.api.routes import health, proxy, specs, ui
from multiswagger.core.config import Settings, get_settings
from multiswagger.core.errors import MultiSwaggerError
from multiswagger.core.metrics import router as metrics_router
from multiswagger.core.structured_logging import get_correlation_id
from multiswagger.proxy import ProxyRelay
from multiswagger.registry import SpecRegistry
from multiswagger.specs import SpecRenderer
from multiswagger.worker import ConfigMapSource, SpecWatcher

logger = logging.getLogger(__name__)


async def handle_portal_error(request: Request, exc: MultiSwaggerError):
    """Log the internal cause, answer with the generic catalog message."""
    logger.error("[%s %s] HTTP %d - %s", request.method, request.url.path, exc.http_status, exc.detail)
    return JSONResponse(
        status_code=exc.http_status,
        content=exc.to_response(get_correlation_id()),
    )


def create_app(
    settings: Optional[Settings] = None,
    registry: Optional[SpecRegistry] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    watcher: Optional[SpecWatcher] = None,
    ui_root: Optional[Path] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Collaborators can be injected for tests; otherwise they are built from
    ``settings``. The watcher is only created when WATCH_ENABLED is set.
    """
    settings = settings or get_settings()
    registry = registry if registry is not None else SpecRegistry()
    owns_client = http_client is None
    client = http_client or httpx.AsyncClient()
    if watcher is None and settings.watch_enabled:
        watcher = SpecWatcher(registry, ConfigMapSource(settings), settings.watch_interval_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info(
            "Multi-Swagger starting up (base path: %r, port: %d)",
            settings.base_path, settings.port,
        )
        if watcher is not None:
            await watcher.start()
        try:
            yield
        finally:
            logger.info("Multi-Swagger shutting down...")
            if watcher is not None:
                await watcher.stop()
            if owns_client:
                await client.aclose()

    app = FastAPI(
        title="Multi-Swagger",
        description="Swagger UI portal for the OpenAPI specs of a Kubernetes namespace",
        version=__version__,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )

    app.state.settings = settings
    app.state.registry = registry
    app.state.watcher = watcher
    app.state.ui_root = ui_root or ui.UI_ROOT
    app.state.renderer = SpecRenderer(registry, client, timeout=settings.spec_fetch_timeout_seconds)
    app.state.relay = ProxyRelay(
        client,
        timeout=settings.proxy_timeout_seconds,
        allowed_hosts=settings.allowed_proxy_hosts,
    )

    app.add_exception_handler(MultiSwaggerError, handle_portal_error)

    # Custom middleware (order matters - last added runs first)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(CORSHeadersMiddleware)
    app.add_middleware(BasePathMiddleware, base_path=settings.base_path)

    # Register routes; the UI router owns the static catch-all and goes last
    app.include_router(health.router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(specs.router, tags=["specs"])
    app.include_router(proxy.router, tags=["proxy"])
    app.include_router(ui.router, tags=["ui"])

    return app

