"""
Textual path sanitization for proxied sub-paths.

This does not resolve '.' segments; it only guarantees the result
contains neither '..' nor '//'. Paths with a literal '..' that is not a
traversal get mangled, which is accepted.
"""

import re
from urllib.parse import urljoin

_SLASH_RUN = re.compile(r"/{2,}")


def sanitize_path(raw: str) -> str:
    path = raw or ""
    while ".." in path:
        path = path.replace("..", "")
    path = _SLASH_RUN.sub("/", path)
    if not path.startswith("/"):
        path = "/" + path
    return path


def build_target_url(base_url: str, raw_path: str, query: str = "") -> str:
    """
    Resolve the sanitized path against the upstream base and append the
    original query string unmodified.
    """
    target = urljoin(base_url, sanitize_path(raw_path))
    if query:
        target = f"{target}?{query}"
    return target
