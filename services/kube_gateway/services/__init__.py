"""
Services package.

Provides the proxy branch orchestration.
"""

from .processor import ProxyProcessor

__all__ = [
    "ProxyProcessor",
]
