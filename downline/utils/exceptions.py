"""
Exception handling utilities.

Defines the error taxonomy of the downline service and how each category is
surfaced at the API boundary.
"""


class DownlineError(Exception):
    """Base class for all downline service errors."""

    code = "internal"
    status = 500
    public_message = "Internal server error"


class AuthenticationError(DownlineError):
    """Raised when the caller credential is missing or invalid."""

    code = "unauthenticated"
    status = 401
    public_message = "Authentication required"


class AuthorizationError(DownlineError):
    """Raised when the caller may not view the requested subtree."""

    code = "forbidden"
    status = 403
    public_message = "Forbidden"


class NodeNotFoundError(DownlineError):
    """Raised when a referenced node does not exist."""

    code = "not_found"
    status = 404
    public_message = "Not found"


class RegistrationError(DownlineError):
    """Raised when a new node cannot be registered."""

    code = "bad_request"
    status = 400
    public_message = "Registration rejected"


class InvalidCursorError(DownlineError):
    """Raised when a pagination cursor cannot be decoded."""

    code = "bad_request"
    status = 400
    public_message = "Invalid cursor"


class StoreUnavailableError(DownlineError):
    """Raised when a store round-trip fails (network, timeout, quota)."""

    code = "internal"
    status = 500
    public_message = "Internal server error"


class MalformedGraphWarning(UserWarning):
    """
    Upline chain exceeded its hop ceiling or hit a dangling reference.

    Never raised through the API; only logged while a best-effort
    result is returned.
    """


# Errors whose message is safe to show to the client
CLIENT_ERRORS = (
    AuthenticationError,
    AuthorizationError,
    NodeNotFoundError,
    RegistrationError,
    InvalidCursorError,
)


def is_client_error(exc: Exception) -> bool:
    """
    Check if exception is caused by the client request.

    Args:
        exc: Exception to check

    Returns:
        True if the exception maps to a 4xx response
    """
    return isinstance(exc, CLIENT_ERRORS)
