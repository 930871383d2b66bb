"""
Gateway configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.

Values here are raw inputs; they are validated per request by
core.config_resolver and never mutated after startup.
"""

import sys
from typing import Optional

from pydantic import Field, SecretStr
from services.common.core.config import BaseAppConfig

GATEWAY_VERSION = "1.0.0"
DEFAULT_UPSTREAM_URL = "https://api.scarmonit.com"
DEFAULT_GATEWAY_PREFIX = "/kubernetes"


class GatewayConfig(BaseAppConfig):
    """
    Configuration management for the edge gateway.
    """

    # Server settings
    UVICORN_WORKERS: int = Field(default=1, description="Number of worker processes")
    UVICORN_BIND_ADDR: str = Field(default="0.0.0.0:8000", description="Listen address")
    LOG_CONFIG_PATH: str = Field(
        default="config/gateway_log.yaml", description="Logging dictConfig YAML path"
    )

    # Upstream cluster API
    K8S_API_URL: str = Field(default=DEFAULT_UPSTREAM_URL, description="Upstream API base URL")
    K8S_BEARER_TOKEN: Optional[SecretStr] = Field(
        default=None, description="Bearer credential injected on proxied requests"
    )

    # CORS / environment
    ALLOWED_ORIGIN: str = Field(
        default="*", description="'*', '*.example.com' or a comma-separated origin list"
    )
    ENVIRONMENT: str = Field(default="production", description="development or production")

    # Routing
    GATEWAY_PREFIX: str = Field(
        default=DEFAULT_GATEWAY_PREFIX, description="Path prefix demarcating proxied traffic"
    )
    DASHBOARD_ORIGIN_URL: str = Field(
        default="", description="Origin serving the dashboard for passthrough paths"
    )

    # FastAPI settings
    root_path: str = Field(default="", description="API root path (for proxy)")

    # model_config is inherited


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = GatewayConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
