"""
Where: services/kube_gateway/core/config_resolver.py
What: Turn raw GatewayConfig strings into a validated ResolvedConfig.
Why: Configuration is re-validated on every request and reported as a result, not raised.
"""

from typing import Optional
from urllib.parse import urlsplit

from pydantic import SecretStr

from .redaction import has_control_characters
from ..config import DEFAULT_UPSTREAM_URL, GatewayConfig
from ..models import (
    ConfigResult,
    EnvironmentMode,
    OriginPolicy,
    PolicyKind,
    ResolvedConfig,
    UrlValidation,
)

LOOPBACK_HOSTS = frozenset({"localhost", "127.0.0.1"})
PRIVATE_PREFIXES = ("192.168.", "10.")


def validate_upstream_url(raw: str) -> UrlValidation:
    """
    Check that the upstream URL is absolute, HTTPS and not local/private.

    Returns:
        UrlValidation with ok=False and a human-readable reason on failure.
    """
    try:
        parts = urlsplit(raw)
        host = parts.hostname
    except ValueError as e:
        return UrlValidation(ok=False, reason=f"Upstream URL could not be parsed: {e}")

    if not parts.scheme or not parts.netloc:
        return UrlValidation(ok=False, reason="Upstream URL must be an absolute URL")
    if parts.scheme.lower() != "https":
        return UrlValidation(ok=False, reason="Upstream URL must use https")
    if not host:
        return UrlValidation(ok=False, reason="Upstream URL must include a host")
    if host in LOOPBACK_HOSTS:
        return UrlValidation(ok=False, reason=f"Upstream host '{host}' is a loopback address")
    if host.startswith(PRIVATE_PREFIXES):
        return UrlValidation(ok=False, reason=f"Upstream host '{host}' is a private network address")

    return UrlValidation(ok=True)


def parse_origin_policy(raw: Optional[str]) -> OriginPolicy:
    """
    Parse the allowed-origin setting.

    '*' (or blank) allows everything, '*.example.com' allows example.com
    and its subdomains, anything else is a comma-separated exact list.
    """
    value = (raw or "").strip()
    if not value or value == "*":
        return OriginPolicy(kind=PolicyKind.WILDCARD)

    if value.startswith("*.") and "," not in value:
        return OriginPolicy(kind=PolicyKind.SUBDOMAIN_WILDCARD, domain=value[2:].lower())

    origins = frozenset(item.strip().lower() for item in value.split(",") if item.strip())
    return OriginPolicy(kind=PolicyKind.EXACT_LIST, origins=origins)


def parse_environment(raw: Optional[str]) -> EnvironmentMode:
    if (raw or "").strip().lower() in ("development", "dev"):
        return EnvironmentMode.DEVELOPMENT
    return EnvironmentMode.PRODUCTION


def resolve_config(settings: GatewayConfig) -> ConfigResult:
    """Build the effective per-request configuration from raw settings."""
    environment = parse_environment(settings.ENVIRONMENT)
    upstream = (settings.K8S_API_URL or "").strip() or DEFAULT_UPSTREAM_URL

    validation = validate_upstream_url(upstream)
    if not validation.ok:
        return ConfigResult(environment=environment, reason=validation.reason)

    token = None
    if settings.K8S_BEARER_TOKEN is not None:
        # Mounted secret files commonly end in a newline.
        value = settings.K8S_BEARER_TOKEN.get_secret_value().strip()
        if has_control_characters(value):
            return ConfigResult(
                environment=environment,
                reason="Bearer credential contains control characters",
            )
        token = SecretStr(value) if value else None

    return ConfigResult(
        environment=environment,
        config=ResolvedConfig(
            upstream_base_url=upstream,
            origin_policy=parse_origin_policy(settings.ALLOWED_ORIGIN),
            environment=environment,
            bearer_token=token,
        ),
    )
