"""
Dependency Injection for Gateway API.

Manage request handler dependencies using FastAPI Depends.
"""

from typing import Annotated

from fastapi import Depends, Request
from httpx import AsyncClient

from ..config import GatewayConfig, config
from ..services.processor import ProxyProcessor


# ==========================================
# 1. Service Accessors
# ==========================================


def get_settings() -> GatewayConfig:
    return config


def get_http_client(request: Request) -> AsyncClient:
    return request.app.state.http_client


SettingsDep = Annotated[GatewayConfig, Depends(get_settings)]
HttpClientDep = Annotated[AsyncClient, Depends(get_http_client)]


# ==========================================
# 2. Request-scoped services
# ==========================================


def get_processor(client: HttpClientDep, settings: SettingsDep) -> ProxyProcessor:
    return ProxyProcessor(client, dashboard_origin=settings.DASHBOARD_ORIGIN_URL)


ProcessorDep = Annotated[ProxyProcessor, Depends(get_processor)]
