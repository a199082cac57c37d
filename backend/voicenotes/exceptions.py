"""
VoiceNotes Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for every failure the API reports.
How:   Each exception carries a user-safe ``message`` and a ``context`` dict.
       Handlers registered in main.py turn them into JSON error responses;
       ``context`` is logged server-side and only echoed for client errors.
Who:   Raised by repositories, services and the auth dependencies.

Exception Hierarchy:
    VoiceNotesError (base)
    ├── ValidationError              → 400 Bad Request
    ├── AuthError                    → 401 Unauthorized
    ├── NotFoundError                → 404 Not Found
    ├── ConflictError                → 409 Conflict
    ├── ExternalServiceError         → 503 Service Unavailable
    │   └── CircuitBreakerOpenError  → 503 Service Unavailable (+ Retry-After)
    ├── ServiceTimeoutError          → 504 Gateway Timeout
    └── PersistenceError             → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class VoiceNotesError(Exception):
    """
    Base exception for all VoiceNotes application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for client errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(VoiceNotesError):
    """
    Raised when client input fails a business rule.

    Blank note titles or content, empty or unsupported audio, oversized
    uploads. Schema-level problems (missing fields, wrong types) are caught
    earlier by FastAPI and answered with 422.
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


class AuthError(VoiceNotesError):
    """
    Raised when a request cannot be tied to a user.

    Missing, malformed, expired or badly signed bearer tokens, tokens naming
    a user that no longer exists, and failed logins all end here. The message
    never says which of these happened.
    """

    def __init__(
        self,
        message: str = "Could not validate credentials",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(VoiceNotesError):
    """
    Raised when no record matches the caller's request.

    For notes, "does not exist" and "belongs to someone else" raise the same
    error with the same message, so ids cannot be probed across owners.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(VoiceNotesError):
    """Raised when a unique value (an account email) is already taken."""

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ExternalServiceError(VoiceNotesError):
    """
    Raised when the AI provider fails a transcription or summarization.

    Failures are surfaced immediately; nothing is retried automatically.
    ``retry_after`` is a hint for the client, set when the circuit breaker
    knows when the provider will be tried again.
    """

    def __init__(
        self,
        message: str = "The AI service is temporarily unavailable",
        retry_after: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if retry_after:
            ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class CircuitBreakerOpenError(ExternalServiceError):
    """
    Raised when the provider circuit breaker is OPEN.

    CLOSED → (threshold consecutive failures) → OPEN → (recovery timeout)
    → HALF_OPEN → one probe call → CLOSED on success, OPEN on failure.
    """

    def __init__(
        self,
        recovery_time: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            "The AI service is temporarily unavailable due to repeated failures. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, retry_after=recovery_time, context=ctx)
        self.recovery_time = recovery_time


class ServiceTimeoutError(VoiceNotesError):
    """Raised when an AI provider call exceeds ``ai_timeout_seconds``."""

    def __init__(
        self,
        timeout: float,
        operation: str = "AI request",
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The {operation} did not complete within {timeout:g} seconds. Please try again."
        ctx = context or {}
        ctx["timeout_seconds"] = timeout
        ctx["operation"] = operation
        super().__init__(message=message, context=ctx)
        self.timeout = timeout


class PersistenceError(VoiceNotesError):
    """
    Raised when the database fails a read or write.

    The client only ever sees a generic message; the failing statement and
    driver error stay in ``context`` and the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
