"""
Core logic package.

Provides the per-request decision pipeline: configuration, routing,
origin policy, path sanitization, header transformation and forwarding.
"""

from .config_resolver import resolve_config, validate_upstream_url
from .origin import validate_origin
from .path_sanitizer import build_target_url, sanitize_path
from .routing import classify_path

__all__ = [
    "resolve_config",
    "validate_upstream_url",
    "validate_origin",
    "build_target_url",
    "sanitize_path",
    "classify_path",
]
