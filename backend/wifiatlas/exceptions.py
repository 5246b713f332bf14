"""
WifiAtlas Backend — Custom Exception Hierarchy
================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages, without leaking internals.
How:   Each exception class carries a message, an HTTP status, a machine code
       and an optional context dict. The global handler registered in main.py
       turns any of them into {"error": {"message", "status", ...}}.
Who:   Raised by services, dependencies and middleware.

Exception Hierarchy:
    WifiAtlasError (base)
    ├── ValidationError          → 400 (malformed or out-of-range input)
    ├── AuthenticationError      → 401 missing token / 403 invalid token
    ├── NotFoundError            → 404
    ├── ConflictError            → 400 (duplicate unique key)
    ├── ForbiddenError           → 403 (cross-organization access)
    ├── DependencyError          → 500 (external directory call failed)
    ├── DatabaseError            → 500
    └── RateLimitExceededError   → 429
"""

from typing import Any, Dict, Optional


class WifiAtlasError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:      User-facing error description (safe to return)
        status_code:  HTTP status the global handler responds with
        code:         Machine-readable error code
        context:      Additional debug info (logged, NOT returned)
    """

    status_code: int = 500
    code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(WifiAtlasError):
    """
    Raised when client input fails validation.

    Covers both business rules checked in services (coordinate ranges,
    SSID length) and request-schema failures re-raised by the global handler.
    """

    status_code = 400
    code = "validation_error"

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


class AuthenticationError(WifiAtlasError):
    """
    Raised for missing, invalid or expired credentials.

    HTTP: 401 when no token (or bad login), 403 when a token is present but
          cannot be verified.
    """

    code = "authentication_error"

    def __init__(
        self,
        message: str = "Authentication required",
        status_code: int = 401,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code


class NotFoundError(WifiAtlasError):
    """Raised when a requested resource does not exist."""

    status_code = 404
    code = "not_found"

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


class ConflictError(WifiAtlasError):
    """
    Raised when a write would violate a uniqueness rule.

    Examples: organization slug taken, email/username taken, favourite
    already present, concurrent password rotation.
    """

    status_code = 400
    code = "conflict"


class ForbiddenError(WifiAtlasError):
    """Raised when the caller's organization does not grant access."""

    status_code = 403
    code = "forbidden"

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DependencyError(WifiAtlasError):
    """
    Raised when the external network directory cannot be used.

    Network errors, timeouts, rejected credentials and malformed payloads
    are all classified as this single error. No retry is attempted.
    """

    status_code = 500
    code = "dependency_error"

    def __init__(
        self,
        message: str = "Failed to fetch from the network directory",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(WifiAtlasError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; detailed error
    info is logged server-side only.
    """

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(WifiAtlasError):
    """Raised when a client exceeds the per-IP request rate limit."""

    status_code = 429
    code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "Too many requests from this IP, please try again later."
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
