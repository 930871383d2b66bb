"""
Kubernetes Edge Gateway

Fronts the cluster API under a fixed path prefix for browser clients:
injects the bearer credential, enforces the CORS policy, sanitizes the
target path, forwards (including streaming and WebSocket traffic) and
hardens the response.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from services.common.core.request_context import (
    generate_request_id,
    get_request_id,
    set_environment_mode,
)

from .api.deps import ProcessorDep, SettingsDep
from .config import GATEWAY_VERSION, config
from .core.config_resolver import resolve_config
from .core.exceptions import ConfigurationError, ForbiddenOriginError, error_response, not_found_response
from .core.headers import preflight_headers
from .core.logging_config import setup_logging
from .core.origin import validate_origin
from .core.path_sanitizer import build_target_url
from .core.request_logger import RequestLogger
from .core.routing import classify_path
from .core.websocket_relay import relay_websocket
from .exceptions import register_exception_handlers
from .lifecycle import manage_lifespan
from .middleware import request_context_middleware
from .models import HealthStatus, RouteKind
from .services.processor import elapsed_ms

# Logger setup
setup_logging()
logger = logging.getLogger("gateway.main")

ROBOTS_TXT = "User-agent: *\nDisallow: /"
PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"]
HEALTH_METHODS = ("GET", "HEAD")


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with manage_lifespan(app, config):
        yield


app = FastAPI(
    title="Kubernetes Edge Gateway",
    version=GATEWAY_VERSION,
    lifespan=lifespan,
    root_path=config.root_path,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)

app.middleware("http")(request_context_middleware)
register_exception_handlers(app)


# ===========================================
# Endpoint definitions.
# ===========================================


@app.api_route("/{path:path}", methods=PROXY_METHODS)
async def gateway_handler(request: Request, settings: SettingsDep, processor: ProcessorDep):
    """
    Catch-all route: classification -> config -> CORS -> branch.
    """
    started = time.perf_counter()
    request_id = get_request_id() or generate_request_id()

    # 1. Route. Paths outside the prefix are 404 for every method, preflight included.
    route = classify_path(request.url.path, settings.GATEWAY_PREFIX)
    if route.kind is RouteKind.NOT_FOUND:
        return not_found_response()

    # 2. Configuration (terminal on failure).
    result = resolve_config(settings)
    set_environment_mode(result.environment.value)
    request_logger = RequestLogger(request_id, result.environment)
    if not result.ok:
        request_logger.config_invalid(result.reason)
        return error_response(ConfigurationError(result.reason), request_id, result.environment)
    gateway_config = result.config
    request_logger.bind_secret(gateway_config.bearer_token)
    request_logger.debug("Route classified", route=route.kind.value)

    # 3. Origin policy (computed once, used by preflight, gating and hardening).
    origin = request.headers.get("origin")
    origin_decision = validate_origin(origin, gateway_config.origin_policy)
    strict = not gateway_config.origin_policy.is_wildcard

    if request.method == "OPTIONS":
        if not origin_decision.allowed:
            request_logger.cors_rejected(origin, preflight=True)
            return Response(status_code=403)
        return Response(status_code=204, headers=preflight_headers(origin_decision, strict))

    if strict and origin and not origin_decision.allowed:
        request_logger.cors_rejected(origin, preflight=False)
        return error_response(ForbiddenOriginError(), request_id, gateway_config.environment)

    # 4. Branch.
    if route.kind is RouteKind.ROBOTS:
        return PlainTextResponse(ROBOTS_TXT)
    if route.kind is RouteKind.HEALTH:
        if request.method not in HEALTH_METHODS:
            return Response(status_code=405, headers={"Allow": ", ".join(HEALTH_METHODS)})
        health = HealthStatus(
            version=GATEWAY_VERSION,
            env=gateway_config.environment.value,
            requestId=request_id,
        )
        return JSONResponse(health.model_dump())
    if route.kind is RouteKind.DASHBOARD_PASSTHROUGH:
        return await processor.passthrough(request, request_logger)

    return await processor.proxy(
        request, gateway_config, route, origin_decision, request_logger, started
    )


@app.websocket("/{path:path}")
async def websocket_handler(websocket: WebSocket, settings: SettingsDep):
    """
    WebSocket upgrades on proxied paths are relayed frame by frame,
    bypassing header rewriting and hardening.
    """
    started = time.perf_counter()
    request_id = generate_request_id()

    result = resolve_config(settings)
    set_environment_mode(result.environment.value)
    request_logger = RequestLogger(request_id, result.environment)
    if not result.ok:
        request_logger.config_invalid(result.reason)
        await websocket.close(code=1011)
        return
    gateway_config = result.config
    request_logger.bind_secret(gateway_config.bearer_token)

    origin = websocket.headers.get("origin")
    origin_decision = validate_origin(origin, gateway_config.origin_policy)
    if not gateway_config.origin_policy.is_wildcard and origin and not origin_decision.allowed:
        request_logger.cors_rejected(origin, preflight=False)
        await websocket.close(code=1008)
        return

    route = classify_path(websocket.url.path, settings.GATEWAY_PREFIX)
    if route.kind is not RouteKind.API_PROXY:
        await websocket.close(code=1008)
        return

    target = build_target_url(gateway_config.upstream_base_url, route.target_path, websocket.url.query)
    client_host = websocket.client.host if websocket.client else None
    request_logger.proxy_start("WEBSOCKET", target, client_host)
    try:
        await relay_websocket(websocket, target)
    except Exception as exc:
        request_logger.proxy_error(exc, elapsed_ms(started))
        try:
            await websocket.close(code=1011)
        except RuntimeError:
            # Already closed by the peer.
            logger.debug("WebSocket already closed", extra={"requestId": request_id})
        return
    request_logger.proxy_finish(101, elapsed_ms(started))


if __name__ == "__main__":
    import uvicorn

    host, _, port = config.UVICORN_BIND_ADDR.rpartition(":")
    uvicorn.run(
        app,
        host=host or "0.0.0.0",
        port=int(port or 8000),
        log_config=None,
        server_header=False,
    )
