"""Context variables for request-scoped data.

The API layer sets the acting user at the start of each request so that log
records emitted deep inside the resolver or version manager carry it.

Usage:
    # In an API dependency:
    set_current_user_id(user_id)

    # Anywhere else:
    user_id = get_current_user_id()

Note: These use contextvars which are properly isolated per async task.
"""

from contextvars import ContextVar
from typing import Optional

_current_user_id: ContextVar[Optional[str]] = ContextVar('user_id', default=None)
_current_request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)


def set_current_user_id(user_id: Optional[str]) -> None:
    """Set the acting user for the current request."""
    _current_user_id.set(user_id)


def get_current_user_id() -> Optional[str]:
    """Get the acting user for the current request, if any."""
    return _current_user_id.get()


def set_current_request_id(request_id: Optional[str]) -> None:
    """Set the correlation id for the current request."""
    _current_request_id.set(request_id)


def get_current_request_id() -> Optional[str]:
    """Get the correlation id for the current request, if any."""
    return _current_request_id.get()


def clear_context() -> None:
    """Reset all request-scoped values."""
    _current_user_id.set(None)
    _current_request_id.set(None)
