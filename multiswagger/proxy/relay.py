"""
Reverse Proxy Relay

Forwards a browser request to the absolute URL named in ``proxyUrl`` and
streams the answer back unchanged, so Swagger UI can call services that do
not send CORS headers.

The relay keeps headers verbatim in both directions, duplicates included. The
only headers dropped are the ones describing the hop itself: ``host`` (taken
from the target URL) and ``transfer-encoding`` (the framing is redone by the
HTTP client and by the server).

There is no authentication here. The relay is meant to sit next to the UI in
a trusted network; PROXY_ALLOWED_HOSTS narrows the reachable hosts when that
is not enough.
"""
from __future__ import annotations

import logging
from typing import AsyncIterator, List, Optional, Sequence, Tuple
from urllib.parse import urlsplit

import httpx
from fastapi import Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask
from starlette.requests import ClientDisconnect

from multiswagger.core.errors import (
    InternalError,
    ProxyError,
    ProxyTargetForbiddenError,
    ProxyTargetInvalidError,
    ProxyTargetMissingError,
)
from multiswagger.core.metrics import record_proxy

logger = logging.getLogger(__name__)

_SKIP_REQUEST_HEADERS = {b"host", b"transfer-encoding"}
_SKIP_RESPONSE_HEADERS = {b"transfer-encoding"}


def copy_headers(raw: Sequence[Tuple[bytes, bytes]], skip: set) -> List[Tuple[bytes, bytes]]:
    """Lower-case names, keep order and duplicates, drop ``skip``."""
    return [(name.lower(), value) for name, value in raw if name.lower() not in skip]


def host_allowed(host: str, allowed_hosts: Sequence[str]) -> bool:
    """Exact host match, or suffix match for entries starting with a dot."""
    if "*" in allowed_hosts:
        return True
    host = host.lower()
    for entry in allowed_hosts:
        if entry.startswith("."):
            if host.endswith(entry) or host == entry[1:]:
                return True
        elif host == entry:
            return True
    return False


async def _relay_body(upstream: httpx.Response) -> AsyncIterator[bytes]:
    # raw: no decompression, the client gets the upstream bytes as sent
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    finally:
        await upstream.aclose()


class ProxyRelay:
    """Streams requests through to caller-supplied targets."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        timeout: Optional[float] = 60.0,
        allowed_hosts: Sequence[str] = ("*",),
    ):
        self.client = client
        self.timeout = timeout
        self.allowed_hosts = list(allowed_hosts)

    def validate_target(self, target_url: Optional[str]) -> str:
        if not target_url:
            record_proxy("bad_request")
            raise ProxyTargetMissingError()

        try:
            parts = urlsplit(target_url)
            hostname = parts.hostname
        except ValueError:
            parts, hostname = None, None
        if parts is None or parts.scheme not in ("http", "https") or not hostname:
            record_proxy("bad_request")
            raise ProxyTargetInvalidError(f"Invalid proxy target: {target_url!r}")

        if not host_allowed(hostname, self.allowed_hosts):
            record_proxy("forbidden")
            raise ProxyTargetForbiddenError(f"Proxy target host not allowed: {hostname}")
        return target_url

    async def forward(self, request: Request, target_url: Optional[str]) -> StreamingResponse:
        """
        Relay ``request`` to ``target_url``.

        The inbound body is read through ``Request.body()``, which caches it
        on the request, so it can still be read afterwards.
        """
        target = self.validate_target(target_url)
        logger.debug("Proxying request for %s to %s", request.url.path, target)

        try:
            body = await request.body()
        except ClientDisconnect as e:
            record_proxy("error")
            raise InternalError(f"Failed to read request body for proxy: {e!r}") from e

        outbound = self.client.build_request(
            request.method,
            target,
            headers=copy_headers(request.headers.raw, _SKIP_REQUEST_HEADERS),
            content=body,
            timeout=self.timeout,
        )

        try:
            upstream = await self.client.send(outbound, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            record_proxy("error")
            raise ProxyError(f"Failed to forward request to {target}: {e!r}") from e

        record_proxy("forwarded")
        response = StreamingResponse(
            _relay_body(upstream),
            status_code=upstream.status_code,
            background=BackgroundTask(upstream.aclose),
        )
        response.raw_headers = copy_headers(upstream.headers.raw, _SKIP_RESPONSE_HEADERS)
        return response
