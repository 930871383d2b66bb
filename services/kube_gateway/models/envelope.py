"""
Response body schemas.
"""

from typing import Optional

from pydantic import BaseModel


class ErrorEnvelope(BaseModel):
    """
    Uniform JSON error body.

    details/stack are only populated in development and dropped on
    serialization when unset.
    """

    error: str
    message: str
    requestId: str
    details: Optional[str] = None
    stack: Optional[str] = None


class HealthStatus(BaseModel):
    status: str = "ok"
    version: str
    env: str
    requestId: str
