import logging

import httpx

from .config import BaseAppConfig

logger = logging.getLogger(__name__)


class HttpClientFactory:
    """
    HTTP Client Factory for centralized SSL verification and pool handling.
    """

    def __init__(self, config: BaseAppConfig):
        self.config = config

    def create_async_client(self, **kwargs) -> httpx.AsyncClient:
        """
        Create an httpx.AsyncClient with configured SSL verification.

        Args:
            **kwargs: Additional arguments for httpx.AsyncClient
        """
        verify = kwargs.pop("verify", None)

        # If verify is not explicitly provided, use config default
        if verify is None:
            verify = self.config.VERIFY_SSL
        if not verify:
            logger.warning("TLS verification disabled for outbound requests (VERIFY_SSL=False)")

        # Default limits for high throughput (can be overridden by caller)
        if "limits" not in kwargs:
            kwargs["limits"] = httpx.Limits(
                max_keepalive_connections=self.config.HTTP_MAX_KEEPALIVE,
                max_connections=self.config.HTTP_MAX_CONNECTIONS,
            )
        # Avoid leaking host HTTP(S)_PROXY/NO_PROXY into upstream calls unless explicitly requested.
        kwargs.setdefault("trust_env", False)

        return httpx.AsyncClient(verify=verify, **kwargs)
