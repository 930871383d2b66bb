"""
Upstream forwarding.

Sends the outbound request through the shared httpx.AsyncClient and
relays the response body without buffering. Redirects are followed by
the client itself; there are no retries.
"""

from typing import AsyncIterator, Optional

import httpx
from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from .headers import build_upstream_headers, to_raw
from ..models import UpstreamRequest


BODYLESS_METHODS = frozenset({"GET", "HEAD"})


def method_has_body(method: str) -> bool:
    return method.upper() not in BODYLESS_METHODS


def is_websocket_upgrade(headers) -> bool:
    return (headers.get("upgrade") or "").strip().lower() == "websocket"


def build_upstream_request(
    method: str,
    target_url: str,
    incoming_headers,
    bearer_token,
    request_id: str,
) -> UpstreamRequest:
    has_body = method_has_body(method)
    headers = build_upstream_headers(
        incoming_headers,
        upstream_host=httpx.URL(target_url).netloc.decode("ascii"),
        bearer_token=bearer_token,
        request_id=request_id,
        include_body=has_body,
    )
    return UpstreamRequest(method=method.upper(), url=target_url, headers=headers, has_body=has_body)


async def forward(
    client: httpx.AsyncClient,
    upstream_request: UpstreamRequest,
    body: Optional[AsyncIterator[bytes]] = None,
) -> httpx.Response:
    """
    Issue the upstream call and return the response with its body unread.

    The caller owns the returned response and must close it.
    """
    request = client.build_request(
        upstream_request.method,
        upstream_request.url,
        headers=upstream_request.headers,
        content=body if upstream_request.has_body else None,
    )
    return await client.send(request, stream=True)


async def forward_raw(
    client: httpx.AsyncClient,
    method: str,
    target_url: str,
    headers: httpx.Headers,
    body: Optional[AsyncIterator[bytes]] = None,
) -> httpx.Response:
    """
    Forward a request as-is: no credential, no tracing header, no rewriting.

    Used for upgrade requests and dashboard passthrough; `headers` comes
    from headers.upgrade_headers or headers.passthrough_headers.
    """
    request = client.build_request(
        method,
        target_url,
        headers=headers,
        content=body if method_has_body(method) else None,
    )
    return await client.send(request, stream=True)


async def _relay_body(upstream: httpx.Response) -> AsyncIterator[bytes]:
    try:
        async for chunk in upstream.aiter_raw():
            yield chunk
    finally:
        # Runs on normal completion and when the client disconnects mid-stream.
        await upstream.aclose()


def stream_response(upstream: httpx.Response, headers: httpx.Headers) -> StreamingResponse:
    """Wrap an open upstream response as a StreamingResponse carrying exactly `headers`."""
    response = StreamingResponse(
        _relay_body(upstream),
        status_code=upstream.status_code,
        background=BackgroundTask(upstream.aclose),
    )
    response.raw_headers = to_raw(headers)
    return response
