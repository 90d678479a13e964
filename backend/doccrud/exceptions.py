"""
DocCRUD Backend - Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions, one per distinct failure outcome.
How:   Each exception carries a client-safe message and a context dict.
       Global handlers registered in main.py map them to HTTP status codes
       and a single JSON error envelope.

Exception Hierarchy:
    DocCRUDError (base)
    ├── ValidationError          → 400 Bad Request
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 (rendered by RateLimitMiddleware)
    ├── StoreUnavailableError    → 503 Service Unavailable
    ├── DatabaseError            → 500 Internal Server Error
    └── RequestFailedError       (raised by doccrud.client, never served)
"""

from typing import Any, Dict, Optional


class DocCRUDError(Exception):
    """
    Base exception for all DocCRUD application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, only returned where the
                  handler chooses to)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(DocCRUDError):
    """
    Raised when client input is structurally valid JSON but unusable.

    When:    Malformed record id, empty body, a body that tries to set `id`,
             a PATCH body missing its match field.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "'abc' is not a valid record id",
            "details": {"field": "id"}
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


class NotFoundError(DocCRUDError):
    """
    Raised when a requested resource does not exist.

    When:    GET /api/{collection}/{id} with no matching record, or a
             collection name that is not configured.
    HTTP:    404 Not Found

    The driver returns None for a missing document; the service layer turns
    that into this exception so routes stay free of status-code logic.
    """

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


class StoreUnavailableError(DocCRUDError):
    """
    Raised when the document store cannot be reached.

    When:    Startup ping exhausted its retries, the driver lost its
             connection mid-request, or no store is attached to the app.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "The document store is temporarily unavailable",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(DocCRUDError):
    """
    Raised when a store operation fails for any reason other than
    connectivity (write errors, bad operators, server-side failures).

    HTTP:    500 Internal Server Error

    The client always receives a generic message. Driver details stay in
    the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(DocCRUDError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header
    """

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


class RequestFailedError(DocCRUDError):
    """
    Raised by the HTTP client when the service answers with an error status.

    Attributes:
        status_code: HTTP status of the response
        error:       Machine-readable code from the error envelope
                     ("validation_error", "store_unavailable", ...)
    """

    def __init__(
        self,
        status_code: int,
        error: str = "unknown_error",
        message: str = "The request failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["status_code"] = status_code
        ctx["error"] = error
        super().__init__(message=message, context=ctx)
        self.status_code = status_code
        self.error = error
