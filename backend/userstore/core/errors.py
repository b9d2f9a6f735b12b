"""Error Hierarchy — typed, categorized exceptions for every user store failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Client errors (4xx) are recoverable by the caller; store failures (500) are critical
    - to_response() produces the wire envelope {"Error": "<message>"}
    - StoreFailureError never leaks backend detail in its response body

Design Decisions:
    - Single hierarchy with UserStoreError base: one exception handler covers
      every client error (ADR: uniform error shape)
    - StoreFailureError has no exception handler;
      it propagates to the error-containment stage, which owns 500s
"""

from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    RESOURCE_NOT_FOUND = "resource_not_found"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    STORE = "store"
    INTERNAL = "internal"


GENERIC_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


class UserStoreError(Exception):
    """Base exception for all user store errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.http_status = http_status

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.http_status < 500

    def to_response(self) -> dict:
        """Convert to the REST error envelope."""
        return {"Error": self.message}


# ─── Client Errors (400-level) ──────────────────────────────────

class ValidationError(UserStoreError):
    """Malformed or missing request fields."""
    def __init__(self, message: str, field: str):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.INFO, 400,
        )
        self.field = field


class ResourceNotFoundError(UserStoreError):
    """Requested record does not exist."""
    def __init__(self, resource_type: str, resource_id: int | str):
        super().__init__(
            f"{resource_type} with ID {resource_id} not found.",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.INFO, 404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class UnauthorizedError(UserStoreError):
    """Missing or invalid bearer credential."""
    def __init__(self, message: str = "Invalid token."):
        super().__init__(
            message, "UNAUTHORIZED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, 401,
        )


class RateLimitExceededError(UserStoreError):
    """Caller exceeded its quota for the current window."""
    def __init__(self, retry_after_seconds: int):
        super().__init__(
            "Rate limit exceeded. Try again later.",
            "RATE_LIMITED", ErrorCategory.RATE_LIMIT,
            ErrorSeverity.WARNING, 429,
        )
        self.retry_after_seconds = retry_after_seconds


# ─── Store Errors (500-level) ───────────────────────────────────

class StoreFailureError(UserStoreError):
    """Record store unreachable, write rejected, or stored data corrupt."""
    def __init__(self, message: str, operation: str):
        super().__init__(
            f"Record store {operation} failed: {message}",
            "STORE_FAILURE", ErrorCategory.STORE,
            ErrorSeverity.CRITICAL, 500,
        )
        self.operation = operation

    def to_response(self) -> dict:
        return {"Error": GENERIC_ERROR_MESSAGE}
