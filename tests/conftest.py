import inspect
import types
from typing import Callable, Dict, List

import httpx
import pytest
from fastapi.testclient import TestClient

from multiswagger.api.app import create_app
from multiswagger.core.config import Settings
from multiswagger.registry import APIRecord, SpecRegistry


class ChunkedBody(httpx.AsyncByteStream):
    """Upstream body delivered in several chunks, like a real socket."""

    def __init__(self, *chunks: bytes):
        self.chunks = chunks

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk


class FakeUpstream:
    """httpx.MockTransport handler standing in for spec sources and proxy targets."""

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, url: str, handler: Callable[[httpx.Request], httpx.Response]):
        self.routes[url] = handler

    def add_json(self, url: str, doc, status_code: int = 200):
        self.add(url, lambda request: httpx.Response(status_code, json=doc))

    def add_error(self, url: str, exc: Exception):
        def raise_error(request):
            raise exc
        self.add(url, raise_error)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get(str(request.url))
        if handler is None:
            return httpx.Response(404, text="no such upstream route")
        return handler(request)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def http_client(upstream):
    return httpx.AsyncClient(transport=httpx.MockTransport(upstream))


@pytest.fixture
def registry():
    return SpecRegistry()


@pytest.fixture
def petstore():
    return APIRecord(
        name="petstore",
        url="http://petstore.default.svc:8080/v3/api-docs",
        title="Petstore",
        namespace="default",
        resourceType="Service",
        resourceName="petstore",
    )


@pytest.fixture
def make_client(registry, http_client):
    """Build a TestClient around a freshly created app; watcher disabled."""

    def _make(watcher=None, ui_root=None, **overrides) -> TestClient:
        settings = Settings(watch_enabled=False, **overrides)
        app = create_app(
            settings,
            registry=registry,
            http_client=http_client,
            watcher=watcher,
            ui_root=ui_root,
        )
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()


# Outbound HTTP is stubbed through MockTransport, never by patching httpx
_FORBIDDEN_PREFIXES = [
    "httpx.",
]


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_call(item):
    mp = item.funcargs.get("monkeypatch") if hasattr(item, "funcargs") else None
    if mp:
        original_setattr = mp.setattr

        def guarded_setattr(target, name, value, *a, **kw):
            fq = None
            if isinstance(target, types.ModuleType):
                fq = f"{target.__name__}.{name}"
            elif inspect.isclass(target):
                fq = f"{target.__module__}.{target.__name__}.{name}"
            if fq and any(fq.startswith(p) for p in _FORBIDDEN_PREFIXES):
                raise RuntimeError(f"Forbidden monkeypatch of httpx: {fq}")
            return original_setattr(target, name, value, *a, **kw)

        mp.setattr = guarded_setattr  # type: ignore
    yield
