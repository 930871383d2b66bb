"""
Custom exception classes.

Represent the terminal per-request outcomes of the gateway and render
them as the uniform JSON error envelope.
"""

import logging
import traceback
from typing import Iterable, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from pydantic import SecretStr
from starlette.exceptions import HTTPException as StarletteHTTPException

from services.common.core.request_context import get_environment_mode, get_request_id

from .redaction import redact
from ..models import EnvironmentMode, ErrorEnvelope

logger = logging.getLogger(__name__)


class GatewayRequestError(Exception):
    """Base exception class for terminal gateway outcomes."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error: str = "Internal Server Error"
    public_message: str = "An unexpected error occurred"

    def __init__(self, detail: Optional[str] = None, cause: Optional[BaseException] = None):
        self.detail = detail
        self.cause = cause
        super().__init__(detail or self.public_message)


class ConfigurationError(GatewayRequestError):
    """Raised when the upstream URL fails validation."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Configuration Error"
    public_message = "Gateway is misconfigured"


class ForbiddenOriginError(GatewayRequestError):
    """Raised when a strict CORS policy rejects the request origin."""

    status_code = status.HTTP_403_FORBIDDEN
    error = "Forbidden"
    public_message = "Origin not allowed"


class GatewayError(GatewayRequestError):
    """Raised when forwarding to the upstream fails for any reason."""

    status_code = status.HTTP_502_BAD_GATEWAY
    error = "Gateway Error"
    public_message = "Failed to reach the Kubernetes API"

    def __init__(self, cause: BaseException):
        super().__init__(str(cause), cause=cause)


class DashboardUnavailableError(GatewayRequestError):
    """Raised when a passthrough path is hit without a dashboard origin."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error = "Service Unavailable"
    public_message = "Dashboard origin is not configured"


def _is_development(environment: Optional[EnvironmentMode]) -> bool:
    if environment is None:
        environment = get_environment_mode()
    return environment == EnvironmentMode.DEVELOPMENT.value


def error_response(
    exc: GatewayRequestError,
    request_id: Optional[str] = None,
    environment: Optional[EnvironmentMode] = None,
    headers: Optional[dict] = None,
    secrets: Iterable[Optional[SecretStr]] = (),
) -> JSONResponse:
    """
    Build the JSON error envelope for `exc`.

    details/stack are only attached in development, with every value in
    `secrets` scrubbed out.
    """
    envelope = ErrorEnvelope(
        error=exc.error,
        message=exc.public_message,
        requestId=request_id or get_request_id() or "",
    )
    if _is_development(environment):
        cause = exc.cause or exc
        secrets = tuple(secrets)
        envelope.details = redact(exc.detail or str(cause), secrets)
        if cause.__traceback__ is not None:
            envelope.stack = redact(
                "".join(traceback.format_exception(type(cause), cause, cause.__traceback__)),
                secrets,
            )

    return JSONResponse(
        status_code=exc.status_code,
        content=envelope.model_dump(exclude_none=True),
        headers=headers,
    )


def not_found_response() -> Response:
    return Response(content="Not Found", status_code=status.HTTP_404_NOT_FOUND, media_type="text/plain")


# ===========================================
# Exception Handlers
# ===========================================


async def global_exception_handler(request: Request, exc: Exception):
    """
    Catch-all handler for unhandled exceptions.
    """
    logger.error(
        f"Global exception handler caught: {exc}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    return error_response(GatewayRequestError(str(exc), cause=exc))


async def gateway_request_error_handler(request: Request, exc: GatewayRequestError):
    return error_response(exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """
    Handler for HTTPException.
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": "HTTP Error",
            "message": str(exc.detail),
            "requestId": get_request_id() or "",
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handler for validation errors.
    """
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation Error",
            "message": str(exc.errors()),
            "requestId": get_request_id() or "",
        },
    )
