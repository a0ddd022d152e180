"""
ClimbTime Backend - Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for each error scenario.
Why:   Services raise these; global handlers in main.py turn them into
       structured JSON responses with the right status code, so no route
       needs its own try/except.
How:   Each exception carries a user-facing message and an optional context
       dict. Context is logged server-side and only returned where the
       handler decides it is safe (validation details, retry hints).

Exception Hierarchy:
    ClimbTimeError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── PermissionDeniedError    → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── PredictionServiceError   → upstream status, or 500
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class ClimbTimeError(Exception):
    """
    Base exception for all ClimbTime application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only by some handlers)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(ClimbTimeError):
    """
    Raised when client input fails a business rule.

    Schema-level failures (missing body fields, wrong types) are raised by
    FastAPI as RequestValidationError and mapped to the same 400 response.

    Example response:
        {
            "error": "validation_error",
            "message": "You cannot follow yourself",
            "details": {"field": "targetUserId"}
        }
    """

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


class AuthenticationError(ClimbTimeError):
    """No session, a bad/expired token, or wrong credentials at login."""

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(ClimbTimeError):
    """
    The caller is authenticated but may not perform the action.

    When: messaging a non-mutual follow, reading someone else's conversation,
    deleting another user's post.
    """

    def __init__(
        self,
        message: str = "You do not have permission to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(ClimbTimeError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that None
    into this exception so the handler can answer 404.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource.capitalize()} not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class ConflictError(ClimbTimeError):
    """The request collides with existing state (e.g. an email already registered)."""

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PredictionServiceError(ClimbTimeError):
    """
    Raised when the external prediction service cannot produce a result.

    status_code mirrors the upstream HTTP status when one was received
    (so a 502 from a cold-starting service stays a 502 for the client).
    Transport failures carry 500. `details` holds the upstream body or the
    transport error text and is returned to the client as-is.
    """

    def __init__(
        self,
        message: str = "Failed to process image",
        status_code: int = 500,
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code
        self.details = details


class FileStorageError(ClimbTimeError):
    """
    Raised when file system operations fail (disk full, permission denied).

    The client gets a generic message; the path and OS error are logged.
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(ClimbTimeError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. SQL text and
        constraint names are logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(ClimbTimeError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    Response includes a Retry-After header with seconds until the window frees up.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
