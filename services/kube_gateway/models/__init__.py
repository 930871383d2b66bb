"""
Data model definitions package.

Aggregates the gateway's request-scoped models.
"""

from .config import (
    ConfigResult,
    EnvironmentMode,
    OriginPolicy,
    PolicyKind,
    ResolvedConfig,
    UrlValidation,
)
from .decisions import OriginDecision, RouteDecision, RouteKind
from .envelope import ErrorEnvelope, HealthStatus
from .upstream import UpstreamRequest

__all__ = [
    "ConfigResult",
    "EnvironmentMode",
    "OriginPolicy",
    "PolicyKind",
    "ResolvedConfig",
    "UrlValidation",
    "OriginDecision",
    "RouteDecision",
    "RouteKind",
    "ErrorEnvelope",
    "HealthStatus",
    "UpstreamRequest",
]
