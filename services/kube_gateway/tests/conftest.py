import os

import httpx
import pytest
import pytest_asyncio

# Logging config is resolved relative to the working directory at import time.
os.environ.setdefault("LOG_CONFIG_PATH", "/tmp/kube-gateway-missing-logging.yaml")
os.environ.setdefault("LOG_QUEUE_ENABLED", "false")

from services.kube_gateway.api.deps import get_http_client, get_settings  # noqa: E402
from services.kube_gateway.config import GatewayConfig  # noqa: E402
from services.kube_gateway.main import app  # noqa: E402

UPSTREAM_URL = "https://api.scarmonit.com"
DASHBOARD_URL = "https://dashboard.example.com"
TEST_TOKEN = "test-token"


def build_settings(**overrides) -> GatewayConfig:
    values = {
        "K8S_API_URL": UPSTREAM_URL,
        "ALLOWED_ORIGIN": "*",
        "ENVIRONMENT": "production",
        "K8S_BEARER_TOKEN": TEST_TOKEN,
        "GATEWAY_PREFIX": "/kubernetes",
        "DASHBOARD_ORIGIN_URL": DASHBOARD_URL,
    }
    values.update(overrides)
    return GatewayConfig(_env_file=None, **values)


class FakeUpstream:
    """
    MockTransport handler that records every outbound request.

    Requests to the dashboard origin answer 'passthrough', everything else
    is delegated to `handler` (default: 200 'proxied').
    """

    def __init__(self):
        self.requests = []
        self.handler = lambda request: httpx.Response(200, text="proxied")

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "dashboard.example.com":
            return httpx.Response(200, text="passthrough")
        return self.handler(request)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture(name="make_settings")
def make_settings_fixture():
    return build_settings


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def main_app():
    settings = build_settings()
    app.dependency_overrides[get_settings] = lambda: settings
    yield app
    app.dependency_overrides = {}


@pytest.fixture
def configure(main_app):
    """Swap the settings used by the app for this test."""

    def _configure(**overrides) -> GatewayConfig:
        settings = build_settings(**overrides)
        main_app.dependency_overrides[get_settings] = lambda: settings
        return settings

    return _configure


@pytest_asyncio.fixture
async def async_client(main_app, upstream):
    upstream_client = httpx.AsyncClient(
        transport=httpx.MockTransport(upstream), follow_redirects=True
    )
    main_app.dependency_overrides[get_http_client] = lambda: upstream_client

    transport = httpx.ASGITransport(app=main_app)
    async with httpx.AsyncClient(transport=transport, base_url="https://gw") as client:
        yield client

    await upstream_client.aclose()
