"""
API Middleware

Base path stripping, CORS headers and request id handling.
"""
from __future__ import annotations

import logging
import time
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from multiswagger.core.structured_logging import (
    generate_correlation_id,
    reset_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Expose-Headers": "Content-Length",
}


def strip_base_path(path: str, base_path: str) -> str:
    """
    Remove ``base_path`` from the front of ``path``.

    Only whole segments are stripped: with base "/swagger", "/swagger/api/x"
    becomes "/api/x" but "/swaggerx" is left alone. An empty rest is "/".
    """
    if not base_path:
        return path
    if path == base_path:
        return "/"
    if path.startswith(base_path + "/"):
        return path[len(base_path):]
    return path


class BasePathMiddleware:
    """Pure ASGI middleware so routing sees paths without the mount prefix."""

    def __init__(self, app: ASGIApp, base_path: str = ""):
        self.app = app
        self.base_path = base_path

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] == "http" and self.base_path:
            stripped = strip_base_path(scope["path"], self.base_path)
            if stripped != scope["path"]:
                scope = dict(scope)
                scope["path"] = stripped
                raw_path = scope.get("raw_path")
                if raw_path:
                    scope["raw_path"] = strip_base_path(
                        raw_path.decode("latin-1"), self.base_path
                    ).encode("latin-1")
        await self.app(scope, receive, send)


class CORSHeadersMiddleware(BaseHTTPMiddleware):
    """
    Fixed permissive CORS headers on every response.

    Preflight requests are answered here with an empty 200 and never reach a
    route, whatever the path.
    """

    async def dispatch(self, request: Request, call_next: Callable):  # type: ignore
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=CORS_HEADERS)

        response = await call_next(request)
        for name, value in CORS_HEADERS.items():
            response.headers[name] = value
        return response


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind X-Request-ID (incoming or generated) to the logging context."""

    async def dispatch(self, request: Request, call_next: Callable):  # type: ignore
        start = time.time()
        request_id = request.headers.get("X-Request-ID") or generate_correlation_id()
        request.state.request_id = request_id
        token = set_correlation_id(request_id)
        try:
            logger.debug("Handling request: %s %s", request.method, request.url.path)
            response = await call_next(request)
            duration_ms = int((time.time() - start) * 1000)
            logger.debug(
                "Completed request: %s %s -> %d (%dms)",
                request.method, request.url.path, response.status_code, duration_ms,
            )
        finally:
            reset_correlation_id(token)
        response.headers["X-Request-ID"] = request_id
        return response
