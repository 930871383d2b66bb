"""
Resolved configuration models.

Produced per request by core.config_resolver from the raw GatewayConfig values.
"""

from enum import Enum
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, SecretStr


class EnvironmentMode(str, Enum):
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class PolicyKind(str, Enum):
    WILDCARD = "wildcard"
    EXACT_LIST = "exact_list"
    SUBDOMAIN_WILDCARD = "subdomain_wildcard"


class OriginPolicy(BaseModel):
    """
    Allowed-origin policy.

    `origins` is only populated for EXACT_LIST (lower-cased),
    `domain` only for SUBDOMAIN_WILDCARD.
    """

    model_config = ConfigDict(frozen=True)

    kind: PolicyKind
    origins: FrozenSet[str] = frozenset()
    domain: Optional[str] = None

    @property
    def is_wildcard(self) -> bool:
        return self.kind is PolicyKind.WILDCARD


class ResolvedConfig(BaseModel):
    """Validated, immutable configuration for a single request."""

    model_config = ConfigDict(frozen=True)

    upstream_base_url: str
    origin_policy: OriginPolicy
    environment: EnvironmentMode
    bearer_token: Optional[SecretStr] = None

    @property
    def is_development(self) -> bool:
        return self.environment is EnvironmentMode.DEVELOPMENT


class UrlValidation(BaseModel):
    """Outcome of upstream URL validation."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    reason: Optional[str] = None


class ConfigResult(BaseModel):
    """
    Either a resolved config or the reason resolution failed.

    `environment` is always set so the caller can gate error details
    even when resolution failed.
    """

    model_config = ConfigDict(frozen=True)

    environment: EnvironmentMode
    config: Optional[ResolvedConfig] = None
    reason: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.config is not None
