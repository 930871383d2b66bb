"""
Gateway Proxy Processor - Service Layer

Standardizes the proxy branch: target URL -> outbound request ->
hardened streaming response, with a single catch that turns any failure
into the 502 envelope.
"""

import time
from typing import Optional

import httpx
from fastapi import Request
from starlette.responses import Response

from ..core.exceptions import DashboardUnavailableError, GatewayError, error_response
from ..core.forwarder import (
    build_upstream_request,
    forward,
    forward_raw,
    is_websocket_upgrade,
    stream_response,
)
from ..core.headers import (
    harden_response_headers,
    passthrough_headers,
    strip_hop_by_hop,
    upgrade_headers,
)
from ..core.path_sanitizer import build_target_url
from ..core.request_logger import RequestLogger
from ..models import OriginDecision, ResolvedConfig, RouteDecision


def elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


class ProxyProcessor:
    """
    Orchestrates the proxy and passthrough branches for one request.
    """

    def __init__(self, client: httpx.AsyncClient, dashboard_origin: str = ""):
        self.client = client
        self.dashboard_origin = dashboard_origin.rstrip("/")

    async def proxy(
        self,
        request: Request,
        config: ResolvedConfig,
        route: RouteDecision,
        origin: OriginDecision,
        request_logger: RequestLogger,
        started: Optional[float] = None,
    ) -> Response:
        """
        Forward an API request to the upstream and harden the response.
        """
        started = started if started is not None else time.perf_counter()
        request_id = request_logger.request_id

        try:
            target = build_target_url(
                config.upstream_base_url, route.target_path or "/", request.url.query
            )

            request_logger.proxy_start(request.method, target, client_ip(request))

            if is_websocket_upgrade(request.headers):
                request_logger.debug("Forwarding upgrade request verbatim", target=target)
                upstream = await forward_raw(
                    self.client,
                    request.method,
                    target,
                    upgrade_headers(request.headers.raw),
                    request.stream(),
                )
                request_logger.proxy_finish(upstream.status_code, elapsed_ms(started))
                return stream_response(upstream, upstream.headers)

            upstream_request = build_upstream_request(
                request.method,
                target,
                request.headers.raw,
                bearer_token=config.bearer_token,
                request_id=request_id,
            )
            body = request.stream() if upstream_request.has_body else None
            upstream = await forward(self.client, upstream_request, body)

            request_logger.proxy_finish(upstream.status_code, elapsed_ms(started))
            return stream_response(
                upstream, harden_response_headers(upstream.headers, origin, request_id)
            )
        except Exception as exc:
            request_logger.proxy_error(exc, elapsed_ms(started))
            return error_response(
                GatewayError(exc), request_id, config.environment, secrets=(config.bearer_token,)
            )

    async def passthrough(self, request: Request, request_logger: RequestLogger) -> Response:
        """
        Forward a dashboard request unmodified to the serving origin.
        """
        if not self.dashboard_origin:
            return error_response(
                DashboardUnavailableError(), request_logger.request_id, request_logger.environment
            )

        target = self.dashboard_origin + request.url.path
        if request.url.query:
            target = f"{target}?{request.url.query}"
        request_logger.debug("Dashboard passthrough", target=target)

        started = time.perf_counter()
        try:
            upstream = await forward_raw(
                self.client,
                request.method,
                target,
                passthrough_headers(request.headers.raw),
                request.stream(),
            )
        except httpx.HTTPError as exc:
            request_logger.proxy_error(exc, elapsed_ms(started))
            return error_response(
                GatewayError(exc),
                request_logger.request_id,
                request_logger.environment,
                secrets=(request_logger.secret,),
            )
        return stream_response(upstream, strip_hop_by_hop(upstream.headers))
