"""
Path classification.

Maps a request path to exactly one RouteDecision. Rule order matters:
a sub-path named 'dashboard' is never proxied and 'proxy-health' never
reaches the upstream.
"""

from ..models import RouteDecision, RouteKind

ROBOTS_PATH = "/robots.txt"
HEALTH_SUFFIX = "/proxy-health"
DASHBOARD_SUFFIX = "/dashboard"


def classify_path(path: str, prefix: str) -> RouteDecision:
    if path == ROBOTS_PATH:
        return RouteDecision.of(RouteKind.ROBOTS)

    prefix = prefix.rstrip("/")
    if path != prefix and not path.startswith(prefix + "/"):
        return RouteDecision.of(RouteKind.NOT_FOUND)

    rest = path[len(prefix):]
    if rest in ("", "/"):
        return RouteDecision.of(RouteKind.DASHBOARD_PASSTHROUGH)
    if rest == HEALTH_SUFFIX:
        return RouteDecision.of(RouteKind.HEALTH)
    if rest.startswith(DASHBOARD_SUFFIX):
        return RouteDecision.of(RouteKind.DASHBOARD_PASSTHROUGH)

    return RouteDecision.api_proxy(rest)
