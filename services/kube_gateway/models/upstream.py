"""
Outbound request model.
"""

from dataclasses import dataclass

import httpx


@dataclass(frozen=True)
class UpstreamRequest:
    """
    Request to issue against the upstream API.

    Derived from the inbound request and the resolved config; the body is
    supplied separately as a stream when `has_body` is True.
    """

    method: str
    url: str
    headers: httpx.Headers
    has_body: bool
