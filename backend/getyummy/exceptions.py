"""
Get Yummy Backend - Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions, one per failure category of the API.
How:   Each class carries a user-facing message, an optional context dict
       (logged, never returned for 5xx) and the HTTP status / error code the
       global handlers in main.py respond with.
Who:   Raised by services and auth dependencies; caught by global handlers.

Exception Hierarchy:
    GetYummyError (base)
    ├── ValidationError          → 400 Bad Request
    ├── UnauthorizedError        → 401 Unauthorized
    │   └── InvalidTokenError    → 401 (bad signature, expired, wrong kind)
    ├── ForbiddenError           → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── MailDeliveryError        → 500 Internal Server Error
    ├── FileStorageError         → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class GetYummyError(Exception):
    """
    Base exception for all Get Yummy application errors.

    Attributes:
        message:     User-facing error description
        context:     Additional debug info (logged, not returned for 5xx)
        status_code: HTTP status used by the global handler
        error_code:  Machine-readable code in the JSON body
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(GetYummyError):
    """
    Raised when client input fails a business rule.

    When:  Weak password, malformed data URI, unknown child id in a recipe
           update, expired or unknown reset token.
    HTTP:  400 Bad Request
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


class UnauthorizedError(GetYummyError):
    """
    Raised when credentials or tokens are missing or invalid.

    When:  Wrong email/password, missing access cookie on a strict route,
           refresh token without a live stored row.
    HTTP:  401 Unauthorized
    """

    status_code = 401
    error_code = "unauthorized"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class InvalidTokenError(UnauthorizedError):
    """Raised by the token codec for a bad signature, an expired token or a token of the other kind."""

    def __init__(
        self,
        message: str = "Invalid or expired token",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(GetYummyError):
    """
    Raised when an authenticated user is not allowed to act on a resource.

    When:  Updating or deleting another user's recipe without admin rights,
           calling an admin endpoint as a regular user.
    HTTP:  403 Forbidden
    """

    status_code = 403
    error_code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to perform this action",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(GetYummyError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that into
    this exception so routes stay free of existence checks.
    HTTP:  404 Not Found
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(GetYummyError):
    """
    Raised when a write would violate a uniqueness rule.

    When:  Duplicate email at registration, duplicate recipe name, a recipe
           that is already a favorite.
    HTTP:  409 Conflict
    """

    status_code = 409
    error_code = "conflict"

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(GetYummyError):
    """
    Raised when a client exceeds the per-IP limit on credential endpoints.

    HTTP:  429 Too Many Requests, with a Retry-After header.
    """

    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class MailDeliveryError(GetYummyError):
    """
    Raised when an email could not be handed to the SMTP server.

    When:  SMTP not configured, authentication refused, or connection
           failures that outlived the tenacity retries.
    HTTP:  500 Internal Server Error
    """

    status_code = 500
    error_code = "mail_delivery_error"

    def __init__(
        self,
        message: str = "The email could not be sent. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(GetYummyError):
    """
    Raised when file system operations fail (disk full, permission denied).

    HTTP:  500 Internal Server Error. File paths stay in the log context.
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(GetYummyError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; SQL details are
    logged server-side only.
    HTTP:  500 Internal Server Error
    """

    status_code = 500
    error_code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
