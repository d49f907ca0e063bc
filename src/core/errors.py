"""Structured error responses and the turtle-gateway exception hierarchy.

Every error the gateway or the backend services raise derives from
``TurtleGatewayError`` so the HTTP layer can map it to a status code and a
machine-readable ``code`` without leaking internals.
"""

from pydantic import BaseModel


class TurtleGatewayError(Exception):
    """Base exception for all turtle-gateway errors."""


class MissingArgumentError(TurtleGatewayError):
    """Raised when a caller omits a required input."""

    def __init__(self, argument: str) -> None:
        self.argument = argument
        super().__init__(f"Missing required argument: {argument}")


class UnderlyingFailureError(TurtleGatewayError):
    """Wraps an error raised by a protected call."""

    def __init__(self, target_name: str, cause: BaseException) -> None:
        self.target_name = target_name
        self.cause = cause
        super().__init__(f"Call to '{target_name}' failed: {cause!r}")


class CallTimeoutError(TurtleGatewayError):
    """Raised when a protected call exceeds its configured timeout."""

    def __init__(self, target_name: str, timeout_seconds: float) -> None:
        self.target_name = target_name
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Call to '{target_name}' timed out after {timeout_seconds}s")


class ShortCircuitedError(TurtleGatewayError):
    """Raised when a circuit breaker rejects a call without attempting it.

    Attributes:
        target_name: Name of the protected target.
        retry_after: Seconds until the circuit may admit trial calls.
    """

    def __init__(self, target_name: str, retry_after: float) -> None:
        self.target_name = target_name
        self.retry_after = max(0.0, retry_after)
        super().__init__(f"Circuit open for '{target_name}', retry after {self.retry_after:.2f}s")


class NotFoundError(TurtleGatewayError):
    """Raised when a lookup finds no matching record."""

    def __init__(self, resource: str, key: str) -> None:
        self.resource = resource
        self.key = key
        super().__init__(f"{resource} not found: {key}")


# (code, HTTP status) per error type; first match wins, so subclasses go first.
_ERROR_CODES: list[tuple[type[TurtleGatewayError], str, int]] = [
    (MissingArgumentError, "MISSING_ARGUMENT", 400),
    (NotFoundError, "NOT_FOUND", 404),
    (ShortCircuitedError, "CIRCUIT_OPEN", 503),
    (CallTimeoutError, "CALL_TIMEOUT", 504),
    (UnderlyingFailureError, "UNDERLYING_FAILURE", 502),
    (TurtleGatewayError, "GATEWAY_ERROR", 500),
]


def status_code_for(exc: Exception) -> int:
    """Return the HTTP status code that represents *exc*."""
    for error_type, _, status in _ERROR_CODES:
        if isinstance(exc, error_type):
            return status
    return 500


class StructuredErrorResponse(BaseModel):
    """Structured error body: ``{"error": str, "code": str, "request_id": str}``."""

    error: str
    code: str
    request_id: str

    @classmethod
    def from_exception(cls, exc: Exception, request_id: str) -> "StructuredErrorResponse":
        """Create from an exception, mapping to machine-readable codes.

        Never leaks internal details for unhandled exceptions.
        """
        for error_type, code, _ in _ERROR_CODES:
            if isinstance(exc, error_type):
                return cls(error=str(exc), code=code, request_id=request_id)
        # Unhandled — never expose internal details
        return cls(
            error="An internal error occurred",
            code="INTERNAL_ERROR",
            request_id=request_id,
        )
