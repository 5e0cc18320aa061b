"""
PlaceShare Backend — Custom Exception Hierarchy
=================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions carry a user-safe message plus a private context dict,
       so handlers can pick the right HTTP status without leaking internals.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and repositories; caught by global handlers.

Exception Hierarchy:
    PlaceShareError (base)
    ├── ValidationError             → 400 Bad Request
    ├── UnauthorizedError           → 401 Unauthorized
    ├── NotFoundError               → 404 Not Found
    ├── ConflictError               → 409 Conflict
    ├── PayloadTooLargeError        → 413 Payload Too Large
    ├── UnsupportedMediaTypeError   → 415 Unsupported Media Type
    ├── GeocodingError              → 422 Unprocessable Entity
    │   └── GeocoderUnavailableError → 503 Service Unavailable (circuit open)
    ├── UnavailableError            → 500 Internal Server Error
    ├── FileStorageError            → 500 Internal Server Error
    └── RepositoryError             → never reaches a client; translated by services

Design Decision:
    RepositoryError carries a `kind` (NOT_FOUND | UNAVAILABLE) instead of being
    split into two classes: repositories only know the store failed, and the
    place workflow decides which caller-visible kind it becomes.
"""

from typing import Any, Dict, Optional


class PlaceShareError(Exception):
    """
    Base exception for all PlaceShare application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PlaceShareError):
    """
    Raised when client input fails a business rule the schema layer cannot express.

    HTTP:    400 Bad Request
    Example: an empty upload body.
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


class UnauthorizedError(PlaceShareError):
    """
    Raised when the authenticated user does not own the place being mutated,
    or when no authenticated user id was supplied.

    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "You are not allowed to perform this action.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(PlaceShareError):
    """
    Raised when a requested resource does not exist.

    HTTP:    404 Not Found

    The repositories return None for missing rows; services convert None into
    this exception so the HTTP layer can map it without knowing about SQL.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"Could not find a {resource} for the provided id."
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)
        self.resource = resource


class ConflictError(PlaceShareError):
    """
    Raised when a create would violate a uniqueness rule (e.g. duplicate email).

    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The resource already exists.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PayloadTooLargeError(PlaceShareError):
    """
    Raised when an uploaded image exceeds the configured byte limit.

    HTTP:    413 Payload Too Large
    """

    def __init__(
        self,
        max_size: int,
        actual_size: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"File size exceeds the {max_size // 1000} KB limit"
        ctx = context or {}
        ctx["max_size"] = max_size
        if actual_size is not None:
            ctx["actual_size"] = actual_size
        super().__init__(message=message, context=ctx)
        self.max_size = max_size


class UnsupportedMediaTypeError(PlaceShareError):
    """
    Raised when the declared content type of an upload is not an allowed image type.

    HTTP:    415 Unsupported Media Type
    """

    def __init__(
        self,
        content_type: Optional[str],
        allowed: Optional[list] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "Invalid mime type! Allowed types: png, jpeg, jpg"
        ctx = context or {}
        ctx["content_type"] = content_type
        if allowed:
            ctx["allowed"] = allowed
        super().__init__(message=message, context=ctx)
        self.content_type = content_type


class GeocodingError(PlaceShareError):
    """
    Raised when an address cannot be turned into coordinates.

    When:    Address unknown to the provider, provider error, transport error, timeout.
    HTTP:    422 Unprocessable Entity

    No retries happen at the geocoder layer: the create that needed the
    coordinates is aborted.
    """

    def __init__(
        self,
        message: str = "Could not find location for the specified address.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class GeocoderUnavailableError(GeocodingError):
    """
    Raised when the geocoder circuit breaker is OPEN.

    HTTP:    503 Service Unavailable (with Retry-After)

    How circuit breaker works:
        CLOSED (normal) → upstream failures increment counter
        → After N failures → OPEN (reject all lookups for M seconds)
        → After M seconds → HALF-OPEN (allow one test call)
        → Test succeeds → CLOSED; test fails → OPEN again
    """

    def __init__(
        self,
        recovery_time: int = 30,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Address lookup is temporarily unavailable. "
            f"Please try again in approximately {recovery_time} seconds."
        )
        ctx = context or {}
        ctx["recovery_time"] = recovery_time
        super().__init__(message=message, context=ctx)
        self.recovery_time = recovery_time


class UnavailableError(PlaceShareError):
    """
    Raised when the record store fails (connection lost, commit failure, ...).

    HTTP:    500 Internal Server Error

    Security Note:
        The message is chosen by the workflow step that failed and is always
        generic. SQL detail stays in `context` and the server log.
    """

    def __init__(
        self,
        message: str = "Something went wrong, please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(PlaceShareError):
    """
    Raised when writing an uploaded image to the storage volume fails.

    When:    Disk full, permission denied, directory not writable, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Failed to save uploaded image. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RepositoryError(PlaceShareError):
    """
    Raised by repositories when the record store cannot complete an operation.

    Kinds:
        NOT_FOUND:    the row targeted by a write does not exist
        UNAVAILABLE:  the store raised (connection, constraint, timeout, ...)

    Never reaches the HTTP layer directly: the place workflow translates it
    into NotFoundError or UnavailableError with a step-specific message.
    """

    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"

    def __init__(
        self,
        kind: str = UNAVAILABLE,
        message: str = "Record store operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["kind"] = kind
        super().__init__(message=message, context=ctx)
        self.kind = kind
