"""
Tourbook Backend — Custom Exception Hierarchy
==============================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Every error that reaches a client carries a message and an HTTP status
       code, so a single handler can render all of them the same way.
How:   Each exception class carries a message, a status code and an optional
       context dict. Global exception handlers (registered in errors.py) catch
       these and return structured JSON error responses.
Who:   Raised by services, routes and middleware; caught by global handlers.
When:  During request processing when recoverable errors occur.

Exception Hierarchy:
    TourbookError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── ConflictError            → 400 Bad Request (duplicate unique value)
    ├── NotFoundError            → 404 Not Found
    ├── PayloadTooLargeError     → 413 Payload Too Large
    ├── RateLimitExceededError   → 429 Too Many Requests
    └── DatabaseError            → 500 Internal Server Error

Status vocabulary:
    4xx errors report status "fail" (the client did something wrong),
    5xx errors report status "error" (the server did).
"""

from typing import Any, Dict, Optional


class TourbookError(Exception):
    """
    Base exception for all Tourbook application errors.

    Attributes:
        message:      User-facing error description (safe to return in API response)
        status_code:  HTTP status code the error maps to
        error_code:   Machine-readable code returned as "error" in the payload
        context:      Additional info, returned as "details" for 4xx errors only
        is_operational: True for expected errors raised on purpose. Unexpected
                      failures are wrapped with is_operational=False and never
                      expose their message in production.
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        status_code: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
        is_operational: bool = True,
    ):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.context = context or {}
        self.is_operational = is_operational
        super().__init__(self.message)

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"


class ValidationError(TourbookError):
    """
    Raised when client input fails validation.

    When:    Malformed JSON, invalid filter values, business rule violations
             (e.g. price discount above the price).
    HTTP:    400 Bad Request
    """

    status_code = 400
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConflictError(TourbookError):
    """
    Raised when a write violates a unique constraint.

    HTTP:    400 Bad Request. A duplicate tour name or user email is
             something the client fixes by changing the value.
    """

    status_code = 400
    error_code = "duplicate_field"

    def __init__(
        self,
        message: str = "Duplicate field value. Please use another value!",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(TourbookError):
    """
    Raised when a requested resource or route does not exist.

    When:    GET /api/v1/tours/{id} with an unknown id, or any unmatched URL.
    HTTP:    404 Not Found

    Pass `message` directly for route-level misses; pass `resource` and
    `resource_id` for missing records.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"No {resource} found with that ID"
            if resource_id:
                message = f"No {resource} found with ID '{resource_id}'"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class PayloadTooLargeError(TourbookError):
    """
    Raised when a request body exceeds the configured body limit.

    HTTP:    413 Payload Too Large
    """

    status_code = 413
    error_code = "payload_too_large"

    def __init__(self, limit: int, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["limit"] = limit
        super().__init__(
            message=f"Request body is too large. The maximum allowed size is {limit} bytes.",
            context=ctx,
        )
        self.limit = limit


class RateLimitExceededError(TourbookError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    When:    After rate_limit_requests (default: 100) in rate_limit_window (default: 1 hour).
    HTTP:    429 Too Many Requests

    Response includes:
        - retry_after: Seconds until the oldest request leaves the window
        - Retry-After header for HTTP-compliant clients
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = (
                f"Rate limit exceeded. Please wait {retry_after} seconds "
                f"before making more requests."
            )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(TourbookError):
    """
    Raised when database operations fail unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. Query text and
    constraint names stay in the server log.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
