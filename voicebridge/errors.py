"""Error taxonomy for the data-access layer.

Every expected failure is a ``DataAccessError`` carrying a human-readable
message. The dispatcher turns these into ``ApiResponse(error=...)`` so they
never cross its boundary; only programmer errors are raised to callers.
"""

from typing import Optional


class DataAccessError(Exception):
    """Base exception for expected data-access failures."""

    default_message = "An error occurred"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NetworkError(DataAccessError):
    """Raised when the remote endpoint cannot be reached."""

    default_message = "Network error occurred"


class RequestTimeoutError(NetworkError):
    """Raised when a call exceeds its deadline."""

    default_message = "Request timed out"


class AuthError(DataAccessError):
    """Raised on a 401 that token refresh could not resolve."""

    default_message = "Authentication failed"


class ServerError(DataAccessError):
    """Raised when the backend answers with a non-2xx status."""

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DispatcherNotInitializedError(RuntimeError):
    """Raised when dispatch is called before ``initialize()``."""
    pass
