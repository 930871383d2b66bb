"""
Where: services/kube_gateway/lifecycle.py
What: Gateway startup/shutdown orchestration for shared resources.
Why: Keep main.py focused on app assembly; the upstream connection pool is the only shared resource.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from services.common.core.http_client import HttpClientFactory

from .config import GatewayConfig

logger = logging.getLogger("gateway.main")


@asynccontextmanager
async def manage_lifespan(app: FastAPI, gateway_config: GatewayConfig) -> AsyncIterator[None]:
    """Manage application lifecycle."""
    factory = HttpClientFactory(gateway_config)
    # Unbounded: watch and exec streams are long-lived.
    client = factory.create_async_client(timeout=None, follow_redirects=True)

    try:
        app.state.http_client = client
        logger.info(
            "Gateway initialized",
            extra={"prefix": gateway_config.GATEWAY_PREFIX, "upstream": gateway_config.K8S_API_URL},
        )
        yield
    finally:
        logger.info("Gateway shutting down, closing http client.")
        await client.aclose()
