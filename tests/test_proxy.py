"""
Tests for the /proxy relay.
"""
from urllib.parse import quote

import httpx
import pytest

from multiswagger.core.errors import (
    ProxyTargetForbiddenError,
    ProxyTargetInvalidError,
    ProxyTargetMissingError,
)
from multiswagger.proxy import ProxyRelay
from multiswagger.proxy.relay import copy_headers, host_allowed
from tests.conftest import ChunkedBody

TARGET = "http://orders.shop.svc:8080/v1/orders?limit=5"


def proxy_path(target: str) -> str:
    return "/proxy/?proxyUrl=" + quote(target, safe="")


class TestProxyEndpoint:

    def test_missing_proxy_url_is_400(self, client, upstream):
        resp = client.get("/proxy/anything")
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"]["code"] == "MSW-1001"
        assert "proxyUrl query parameter is required" in body["error"]["message"]
        assert upstream.requests == []

    def test_relative_proxy_url_is_400(self, client):
        resp = client.get(proxy_path("/v1/orders"))
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "MSW-1002"

    def test_non_http_scheme_is_400(self, client):
        resp = client.get(proxy_path("file:///etc/passwd"))
        assert resp.status_code == 400

    def test_forwards_method_body_and_headers(self, client, upstream):
        upstream.add(TARGET, lambda request: httpx.Response(201, stream=ChunkedBody(b'{"id": 7}')))

        resp = client.post(
            proxy_path(TARGET),
            content=b'{"item": "book"}',
            headers=[
                ("Content-Type", "application/json"),
                ("Authorization", "Bearer abc"),
                ("X-Trace", "one"),
                ("X-Trace", "two"),
            ],
        )

        assert resp.status_code == 201
        assert resp.json() == {"id": 7}

        sent = upstream.requests[-1]
        assert sent.method == "POST"
        assert str(sent.url) == TARGET
        assert sent.content == b'{"item": "book"}'
        assert sent.headers["authorization"] == "Bearer abc"
        assert sent.headers.get_list("x-trace") == ["one", "two"]
        assert sent.headers["host"] == "orders.shop.svc:8080"

    def test_upstream_status_and_duplicate_headers_relayed(self, client, upstream):
        upstream.add(TARGET, lambda request: httpx.Response(
            418,
            headers=[("X-Multi", "a"), ("X-Multi", "b"), ("Content-Type", "text/plain")],
            stream=ChunkedBody(b"short ", b"and ", b"stout"),
        ))

        resp = client.get(proxy_path(TARGET))

        assert resp.status_code == 418
        assert resp.headers.get_list("x-multi") == ["a", "b"]
        assert resp.text == "short and stout"

    def test_upstream_error_status_is_not_an_error(self, client, upstream):
        upstream.add(TARGET, lambda request: httpx.Response(500, stream=ChunkedBody(b"upstream broke")))

        resp = client.get(proxy_path(TARGET))

        assert resp.status_code == 500
        assert resp.text == "upstream broke"

    def test_transport_failure_is_502(self, client, upstream):
        upstream.add_error(TARGET, httpx.ConnectError("connection refused"))

        resp = client.get(proxy_path(TARGET))

        assert resp.status_code == 502
        body = resp.json()
        assert body["error"]["code"] == "MSW-6003"
        assert "refused" not in body["error"]["message"]

    def test_cors_headers_on_proxied_response(self, client, upstream):
        upstream.add(TARGET, lambda request: httpx.Response(
            200,
            headers={"Access-Control-Allow-Origin": "https://only.example"},
            stream=ChunkedBody(b"ok"),
        ))

        resp = client.get(proxy_path(TARGET))

        assert resp.headers.get_list("access-control-allow-origin") == ["*"]

    def test_allow_list_blocks_other_hosts(self, make_client, upstream):
        client = make_client(proxy_allowed_hosts=".shop.svc")
        upstream.add("http://evil.example/", lambda request: httpx.Response(200, stream=ChunkedBody(b"")))

        resp = client.get(proxy_path("http://evil.example/"))

        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "MSW-3001"
        assert upstream.requests == []

    def test_allow_list_permits_listed_hosts(self, make_client, upstream):
        client = make_client(proxy_allowed_hosts=".shop.svc")
        upstream.add(TARGET, lambda request: httpx.Response(204, stream=ChunkedBody()))

        resp = client.get(proxy_path(TARGET))

        assert resp.status_code == 204


class TestRelayHelpers:

    def test_copy_headers_keeps_order_and_duplicates(self):
        raw = [(b"Host", b"x"), (b"X-A", b"1"), (b"x-a", b"2"), (b"Transfer-Encoding", b"chunked")]
        assert copy_headers(raw, {b"host", b"transfer-encoding"}) == [(b"x-a", b"1"), (b"x-a", b"2")]

    @pytest.mark.parametrize("host,allowed,expected", [
        ("anything.example", ["*"], True),
        ("orders.shop.svc", [".shop.svc"], True),
        ("shop.svc", [".shop.svc"], True),
        ("evilshop.svc", [".shop.svc"], False),
        ("API.example", ["api.example"], True),
        ("other.example", ["api.example"], False),
    ])
    def test_host_allowed(self, host, allowed, expected):
        assert host_allowed(host, allowed) is expected

    def test_validate_target(self, http_client):
        relay = ProxyRelay(http_client, allowed_hosts=["api.example"])
        assert relay.validate_target("https://api.example/x") == "https://api.example/x"
        with pytest.raises(ProxyTargetMissingError):
            relay.validate_target("")
        with pytest.raises(ProxyTargetInvalidError):
            relay.validate_target("api.example/x")
        with pytest.raises(ProxyTargetForbiddenError):
            relay.validate_target("https://other.example/x")
