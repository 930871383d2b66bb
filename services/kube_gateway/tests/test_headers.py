"""
Where: services/kube_gateway/tests/test_headers.py
What: Unit tests for request/response header transformation.
Why: Credential injection and hardening must win over whatever the client or upstream sent.
"""

import httpx
from pydantic import SecretStr

from services.kube_gateway.core.headers import (
    PREFLIGHT_ALLOW_HEADERS,
    USER_AGENT,
    build_upstream_headers,
    harden_response_headers,
    passthrough_headers,
    preflight_headers,
    to_raw,
    upgrade_headers,
    websocket_handshake_headers,
)
from services.kube_gateway.models import OriginDecision

INCOMING = [
    (b"host", b"gw.example.com"),
    (b"authorization", b"Bearer client-supplied"),
    (b"content-length", b"12"),
    (b"connection", b"keep-alive"),
    (b"accept", b"application/json"),
    (b"user-agent", b"kubectl/1.30"),
]


def test_build_upstream_headers_overrides_identity_headers():
    headers = build_upstream_headers(
        INCOMING,
        upstream_host="api.scarmonit.com",
        bearer_token=SecretStr("secret"),
        request_id="req-1",
    )

    assert headers["host"] == "api.scarmonit.com"
    assert headers.get_list("authorization") == ["Bearer secret"]
    assert headers["user-agent"] == USER_AGENT
    assert headers["x-request-id"] == "req-1"
    assert headers["accept"] == "application/json"
    assert headers["content-length"] == "12"
    assert "connection" not in headers


def test_build_upstream_headers_without_body_drops_content_length():
    headers = build_upstream_headers(
        INCOMING, upstream_host="api.scarmonit.com", bearer_token=None, request_id="r", include_body=False
    )
    assert "content-length" not in headers


def test_build_upstream_headers_without_credential_leaves_authorization_alone():
    headers = build_upstream_headers(
        INCOMING, upstream_host="api.scarmonit.com", bearer_token=None, request_id="r"
    )
    assert headers["authorization"] == "Bearer client-supplied"


def test_harden_response_headers_overrides_and_strips():
    upstream = httpx.Headers(
        [
            ("Content-Type", "application/json"),
            ("X-Frame-Options", "SAMEORIGIN"),
            ("Cache-Control", "max-age=60"),
            ("Server", "nginx"),
            ("X-Powered-By", "Express"),
            ("Set-Cookie", "a=1"),
            ("Set-Cookie", "b=2"),
            ("Transfer-Encoding", "chunked"),
        ]
    )

    headers = harden_response_headers(upstream, OriginDecision(allowed=True, echo_origin="*"), "req-2")

    assert headers["content-type"] == "application/json"
    assert headers["x-frame-options"] == "DENY"
    assert headers["cache-control"] == "no-store, no-cache, must-revalidate"
    assert headers["pragma"] == "no-cache"
    assert headers["x-content-type-options"] == "nosniff"
    assert headers["x-xss-protection"] == "1; mode=block"
    assert headers["referrer-policy"] == "strict-origin-when-cross-origin"
    assert headers["strict-transport-security"] == "max-age=31536000; includeSubDomains; preload"
    assert headers["access-control-allow-origin"] == "*"
    assert headers["access-control-expose-headers"] == "X-Request-ID"
    assert headers["x-request-id"] == "req-2"
    assert headers.get_list("set-cookie") == ["a=1", "b=2"]
    assert "server" not in headers
    assert "x-powered-by" not in headers
    assert "transfer-encoding" not in headers


def test_harden_response_headers_blanks_origin_when_not_allowed():
    headers = harden_response_headers(httpx.Headers(), OriginDecision(allowed=False), "r")
    assert headers["access-control-allow-origin"] == ""


def test_passthrough_and_upgrade_headers():
    raw = [
        (b"host", b"gw"),
        (b"upgrade", b"websocket"),
        (b"connection", b"Upgrade"),
        (b"sec-websocket-key", b"abc"),
        (b"cookie", b"s=1"),
    ]

    passthrough = passthrough_headers(raw)
    assert "host" not in passthrough
    assert "upgrade" not in passthrough
    assert passthrough["cookie"] == "s=1"

    upgrade = upgrade_headers(raw)
    assert "host" not in upgrade
    assert upgrade["upgrade"] == "websocket"
    assert upgrade["connection"] == "Upgrade"
    assert "authorization" not in upgrade


def test_websocket_handshake_headers_leave_handshake_fields_to_client():
    raw = [
        (b"host", b"gw"),
        (b"upgrade", b"websocket"),
        (b"connection", b"Upgrade"),
        (b"sec-websocket-key", b"abc"),
        (b"sec-websocket-version", b"13"),
        (b"sec-websocket-protocol", b"v4.channel.k8s.io"),
        (b"user-agent", b"browser"),
        (b"cookie", b"s=1"),
    ]
    assert websocket_handshake_headers(raw) == [("cookie", "s=1")]


def test_preflight_headers():
    wildcard = preflight_headers(OriginDecision(allowed=True, echo_origin="*"), strict=False)
    assert wildcard["Access-Control-Allow-Origin"] == "*"
    assert wildcard["Access-Control-Allow-Methods"] == "GET, POST, PUT, DELETE, OPTIONS, PATCH"
    assert wildcard["Access-Control-Allow-Headers"] == PREFLIGHT_ALLOW_HEADERS
    assert wildcard["Access-Control-Max-Age"] == "86400"
    assert "Vary" not in wildcard

    strict = preflight_headers(
        OriginDecision(allowed=True, echo_origin="https://a.com"), strict=True
    )
    assert strict["Access-Control-Allow-Origin"] == "https://a.com"
    assert strict["Vary"] == "Origin"


def test_to_raw_lowercases_and_keeps_duplicates():
    headers = httpx.Headers([("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"), ("X-A", "1")])
    assert to_raw(headers) == [
        (b"set-cookie", b"a=1"),
        (b"set-cookie", b"b=2"),
        (b"x-a", b"1"),
    ]
