"""
Per-request decision models.

Each is computed exactly once per request and consumed downstream
without re-inspecting the raw request.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class RouteKind(str, Enum):
    ROBOTS = "robots"
    HEALTH = "health"
    DASHBOARD_PASSTHROUGH = "dashboard_passthrough"
    API_PROXY = "api_proxy"
    NOT_FOUND = "not_found"


class RouteDecision(BaseModel):
    """Outcome of path classification. `target_path` is set only for API_PROXY."""

    model_config = ConfigDict(frozen=True)

    kind: RouteKind
    target_path: Optional[str] = None

    @classmethod
    def of(cls, kind: RouteKind) -> "RouteDecision":
        return cls(kind=kind)

    @classmethod
    def api_proxy(cls, target_path: str) -> "RouteDecision":
        return cls(kind=RouteKind.API_PROXY, target_path=target_path)


class OriginDecision(BaseModel):
    """
    Whether the request origin is permitted and the value to echo in
    Access-Control-Allow-Origin ('*' only under the wildcard policy).
    """

    model_config = ConfigDict(frozen=True)

    allowed: bool
    echo_origin: str = ""
