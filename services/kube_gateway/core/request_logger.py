import logging
import traceback
from typing import Optional

from pydantic import SecretStr

from .redaction import redact
from ..models import EnvironmentMode

logger = logging.getLogger("gateway.proxy")


class RequestLogger:
    """
    Structured log events for one request.

    Every event carries requestId and environmentMode. Debug events are
    dropped outside development. Exception text is scrubbed of the bound
    credential before it is logged.
    """

    def __init__(self, request_id: str, environment: EnvironmentMode):
        self.request_id = request_id
        self.environment = environment
        self.secret: Optional[SecretStr] = None

    @property
    def is_development(self) -> bool:
        return self.environment is EnvironmentMode.DEVELOPMENT

    def bind_secret(self, secret: Optional[SecretStr]) -> None:
        self.secret = secret

    def _extra(self, **fields) -> dict:
        return {"requestId": self.request_id, "environmentMode": self.environment.value, **fields}

    def debug(self, message: str, **fields) -> None:
        if self.is_development:
            logger.debug(message, extra=self._extra(**fields))

    def proxy_start(self, method: str, target: str, client_ip: Optional[str]) -> None:
        logger.info(
            "Proxying request",
            extra=self._extra(method=method, target=target, clientIp=client_ip),
        )

    def proxy_finish(self, status: int, duration_ms: float) -> None:
        logger.info(
            "Proxy request completed",
            extra=self._extra(status=status, duration=duration_ms),
        )

    def cors_rejected(self, origin: Optional[str], preflight: bool) -> None:
        logger.warning(
            "CORS origin rejected",
            extra=self._extra(origin=origin, preflight=preflight),
        )

    def config_invalid(self, reason: Optional[str]) -> None:
        logger.error("Invalid gateway configuration", extra=self._extra(reason=reason))

    def proxy_error(self, exc: BaseException, duration_ms: float) -> None:
        secrets = (self.secret,)
        fields = {
            "error": redact(str(exc), secrets),
            "errorType": type(exc).__name__,
            "duration": duration_ms,
        }
        if self.is_development:
            fields["stack"] = redact(
                "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)),
                secrets,
            )
        logger.error("Proxy request failed", extra=self._extra(**fields))
