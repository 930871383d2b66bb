"""
Where: services/kube_gateway/core/origin.py
What: Cross-origin policy decisions.
Why: One OriginDecision per request gates preflight, strict-mode requests and the echoed origin.
"""

from typing import Optional
from urllib.parse import urlsplit

from ..models import OriginDecision, OriginPolicy, PolicyKind

WILDCARD = "*"


def _hostname(origin: str) -> Optional[str]:
    try:
        return urlsplit(origin).hostname
    except ValueError:
        return None


def validate_origin(origin: Optional[str], policy: OriginPolicy) -> OriginDecision:
    """
    Decide whether `origin` is permitted under `policy`.

    Strict policies require an explicit Origin; matches echo the client's
    value unchanged, never the configured pattern.
    """
    if policy.kind is PolicyKind.WILDCARD:
        return OriginDecision(allowed=True, echo_origin=WILDCARD)

    if not origin:
        return OriginDecision(allowed=False)

    if policy.kind is PolicyKind.EXACT_LIST:
        if origin.lower() in policy.origins:
            return OriginDecision(allowed=True, echo_origin=origin)
        return OriginDecision(allowed=False)

    host = _hostname(origin)
    domain = policy.domain or ""
    if host and domain and (host == domain or host.endswith("." + domain)):
        return OriginDecision(allowed=True, echo_origin=origin)
    return OriginDecision(allowed=False)
