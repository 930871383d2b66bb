"""
RequestContext management.
Use ContextVar to share the correlation id across async execution.
"""

from contextvars import ContextVar
from typing import Optional


# Context variable for Request ID (UUID), echoed as X-Request-ID.
_request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
# Context variable for the environment mode the request was resolved under.
_environment_var: ContextVar[Optional[str]] = ContextVar("environment_mode", default=None)


def get_request_id() -> Optional[str]:
    """Get the current Request ID."""
    return _request_id_var.get()


def generate_request_id() -> str:
    """
    Generate and set a new Request ID (UUID) for the current context.
    """
    import uuid

    new_id = str(uuid.uuid4())
    _request_id_var.set(new_id)
    return new_id


def set_request_id(request_id: str) -> str:
    """Set the Request ID explicitly."""
    _request_id_var.set(request_id)
    return request_id


def get_environment_mode() -> Optional[str]:
    """Get the environment mode bound to the current request."""
    return _environment_var.get()


def set_environment_mode(mode: str) -> None:
    _environment_var.set(mode)


def clear_request_context() -> None:
    """Clear the request context."""
    _request_id_var.set(None)
    _environment_var.set(None)
