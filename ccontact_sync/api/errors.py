"""
Exceptions raised by the Constant Contact API client.

All client errors derive from ConstantContactError so callers can catch the
whole family at the CLI boundary.
"""

from typing import Optional


class ConstantContactError(Exception):
    """Base class for Constant Contact client errors."""

    pass


class ConfigurationError(ConstantContactError):
    """Raised when the client is configured with an unusable base URL."""

    pass


class URLError(ConstantContactError):
    """Raised when a request path cannot be resolved against the base URL."""

    pass


class EncodingError(ConstantContactError):
    """Raised when a request body cannot be serialized to JSON."""

    pass


class TransportError(ConstantContactError):
    """Raised when the HTTP exchange itself fails."""

    pass


class RequestCancelled(TransportError):
    """Raised when the caller's cancel event fired before or during a call.

    Says nothing about whether the request reached the server.
    """

    pass


class APIError(TransportError):
    """Raised when the server answers with an error status."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body
        message = f"server returned HTTP {status_code}"
        if body:
            message = f"{message}: {body[:500]}"
        super().__init__(message)


class DecodeError(ConstantContactError):
    """Raised when a response body does not match the expected shape."""

    pass


class ServiceError(ConstantContactError):
    """
    Raised by resource services to add operation context to a failure.

    The underlying error is kept both as ``cause`` and as ``__cause__``.

    Attributes:
        operation: Human-readable description of the failed operation
        cause: The wrapped exception
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        message = operation if cause is None else f"{operation}: {cause}"
        super().__init__(message)

    @property
    def cancelled(self) -> bool:
        """True if the wrapped failure was a cancellation."""
        return isinstance(self.cause, RequestCancelled)

    @property
    def status_code(self) -> Optional[int]:
        """HTTP status of the wrapped APIError, if any."""
        if isinstance(self.cause, APIError):
            return self.cause.status_code
        return None
