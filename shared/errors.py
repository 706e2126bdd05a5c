"""
Shared error handling for Redis Tester services.

Every error a handler can raise derives from :class:`ServiceException` and
knows the HTTP status it maps to. Client errors carry a message that is safe
to return verbatim; dependency errors carry a generic public message and keep
the real cause in ``details`` for logging only.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """Standard error response format."""

    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ServiceException(Exception):
    """Base exception for Redis Tester services."""

    status_code: int = 500
    public_message: Optional[str] = None

    def __init__(
        self,
        code: str,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        if self.public_message is not None:
            return ErrorResponse(code=self.code, message=self.public_message)
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


class MalformedRequest(ServiceException):
    """A request body that failed decoding or validation."""

    def __init__(self, status_code: int, message: str):
        super().__init__("MALFORMED_REQUEST", message, status_code=status_code)


class MethodNotAllowedError(ServiceException):
    """The endpoint does not accept the request method."""

    status_code = 405

    def __init__(self, method: str, allowed: List[str]):
        self.method = method
        self.allowed = list(allowed)
        message = (
            f"Invalid request method [{method}], "
            f"supported methods include [{', '.join(self.allowed)}]"
        )
        super().__init__("METHOD_NOT_ALLOWED", message, details={"allowed": self.allowed})


class KeyNotFoundError(ServiceException):
    """Key is absent from the cache (never written, or expired)."""

    status_code = 404

    def __init__(self, key: str):
        self.key = key
        super().__init__("KEY_NOT_FOUND", "key not found")


class CacheError(ServiceException):
    """The cache was unreachable or failed unexpectedly."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, operation: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.operation = operation
        super().__init__(
            "CACHE_ERROR",
            f"{operation}: {message}",
            details={"operation": operation, **(details or {})},
        )


class CacheConnectionError(CacheError):
    """The cache could not be reached at startup; fatal for the process."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__("connect", message, details)
        self.code = "CACHE_CONNECTION_ERROR"


class ServiceError(ServiceException):
    """Internal service errors."""

    public_message = "Internal server error"

    def __init__(self, message: str = "Service error", details: Optional[Dict[str, Any]] = None):
        super().__init__("SERVICE_ERROR", message, status_code=500, details=details)


class ConfigurationError(ServiceException):
    """Configuration could not be loaded."""

    def __init__(self, message: str):
        super().__init__("CONFIGURATION_ERROR", message, status_code=500)
