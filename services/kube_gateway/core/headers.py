"""
Header transformation.

Every function here takes a header map and returns a new httpx.Headers
(ordered, case-insensitive, duplicate-preserving). Later writes replace
earlier ones, so hardening applied after the upstream copy always wins.
"""

from typing import Dict, Iterable, List, Optional, Tuple, Union

import httpx
from pydantic import SecretStr

from ..config import GATEWAY_VERSION
from ..models import OriginDecision

REQUEST_ID_HEADER = "X-Request-ID"
USER_AGENT = f"kube-edge-gateway/{GATEWAY_VERSION}"

# Hop-by-hop headers that must not be forwarded (RFC 7230 6.1)
HOP_BY_HOP_HEADERS = frozenset(
    {
        "connection",
        "keep-alive",
        "proxy-authenticate",
        "proxy-authorization",
        "proxy-connection",
        "te",
        "trailer",
        "trailers",
        "transfer-encoding",
        "upgrade",
    }
)

PREFLIGHT_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS, PATCH"
PREFLIGHT_ALLOW_HEADERS = ", ".join(
    [
        "Authorization",
        "Content-Type",
        "X-CSRF-Token",
        REQUEST_ID_HEADER,
        "Upgrade",
        "Connection",
    ]
)
PREFLIGHT_MAX_AGE = "86400"

STRIPPED_RESPONSE_HEADERS = ("server", "x-powered-by")

HeaderSource = Union[httpx.Headers, Iterable[Tuple[bytes, bytes]], Dict[str, str]]


def _copy(
    source: HeaderSource, drop: Iterable[str] = (), keep_hop_by_hop: bool = False
) -> httpx.Headers:
    headers = source if isinstance(source, httpx.Headers) else httpx.Headers(source)
    excluded = {name.lower() for name in drop}
    if not keep_hop_by_hop:
        excluded |= HOP_BY_HOP_HEADERS
    return httpx.Headers(
        [(key, value) for key, value in headers.multi_items() if key.lower() not in excluded]
    )


def build_upstream_headers(
    incoming: HeaderSource,
    upstream_host: str,
    bearer_token: Optional[SecretStr],
    request_id: str,
    include_body: bool = True,
) -> httpx.Headers:
    """
    Prepare headers for the upstream call.

    The configured credential unconditionally replaces any client-supplied
    Authorization header.
    """
    drop: List[str] = [] if include_body else ["content-length"]
    headers = _copy(incoming, drop)

    headers["Host"] = upstream_host
    if bearer_token is not None:
        headers["Authorization"] = f"Bearer {bearer_token.get_secret_value()}"
    headers["User-Agent"] = USER_AGENT
    headers[REQUEST_ID_HEADER] = request_id
    return headers


def harden_response_headers(
    upstream: HeaderSource, decision: OriginDecision, request_id: str
) -> httpx.Headers:
    """Copy upstream response headers, then apply CORS and security hardening."""
    headers = _copy(upstream)

    headers["Access-Control-Allow-Origin"] = decision.echo_origin if decision.allowed else ""
    headers["Access-Control-Expose-Headers"] = REQUEST_ID_HEADER
    headers["X-Content-Type-Options"] = "nosniff"
    headers["X-Frame-Options"] = "DENY"
    headers["X-XSS-Protection"] = "1; mode=block"
    headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains; preload"
    headers[REQUEST_ID_HEADER] = request_id
    headers["Cache-Control"] = "no-store, no-cache, must-revalidate"
    headers["Pragma"] = "no-cache"

    for name in STRIPPED_RESPONSE_HEADERS:
        if name in headers:
            del headers[name]
    return headers


def passthrough_headers(incoming: HeaderSource) -> httpx.Headers:
    """Headers for an unmodified forward: only hop-by-hop and Host are dropped."""
    return _copy(incoming, drop=["host"])


def strip_hop_by_hop(headers: HeaderSource) -> httpx.Headers:
    return _copy(headers)


def upgrade_headers(incoming: HeaderSource) -> httpx.Headers:
    """Headers for a raw upgrade forward: everything but Host, Upgrade/Connection included."""
    return _copy(incoming, drop=["host"], keep_hop_by_hop=True)


def websocket_handshake_headers(incoming: HeaderSource) -> List[Tuple[str, str]]:
    """
    Client headers to replay on the upstream WebSocket handshake.

    The handshake fields themselves are regenerated by the WebSocket client.
    """
    headers = _copy(incoming, drop=["host", "content-length", "user-agent"])
    return [
        (key, value)
        for key, value in headers.multi_items()
        if not key.lower().startswith("sec-websocket-")
    ]


def preflight_headers(decision: OriginDecision, strict: bool) -> Dict[str, str]:
    headers = {
        "Access-Control-Allow-Origin": decision.echo_origin,
        "Access-Control-Allow-Methods": PREFLIGHT_ALLOW_METHODS,
        "Access-Control-Allow-Headers": PREFLIGHT_ALLOW_HEADERS,
        "Access-Control-Expose-Headers": REQUEST_ID_HEADER,
        "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
    }
    if strict:
        headers["Vary"] = "Origin"
    return headers


def to_raw(headers: httpx.Headers) -> List[Tuple[bytes, bytes]]:
    """ASGI raw header list (lower-cased names, duplicates kept)."""
    return [(key.lower(), value) for key, value in headers.raw]
