"""Exception hierarchy for the patient timeline service.

All errors raised by the service inherit from ``TimelineServiceError`` so a
caller can catch everything the service produces with one except clause,
while still telling the failure modes apart:

1. **Upstream failures** (``UpstreamError`` and subclasses): the FHIR server
   answered with a non-success status, could not be reached, or returned a
   body that is not a JSON object. These abort the whole aggregation.
2. **Cancellation** (``TimelineCancelledError``): the caller asked to stop.
   Kept separate from upstream failures so "user cancelled" is never reported
   as "service is broken".
3. **Validation** (``TimelineValidationError``): the request itself is unusable.
4. **Configuration** (``ConfigurationError``): bad settings at startup.

Malformed bundles or resources are *not* errors; the extraction layer treats
them as missing data.

Every exception carries structured metadata:
    - error_code: Machine-readable error identifier (e.g., "UPSTREAM_NOT_FOUND")
    - message: Human-readable error description
    - details: Additional context (path, resource type, patient_id, etc.)
    - timestamp: When the error occurred
    - request_id: For tracing one failure across log lines

Usage Example:
--------------
```python
try:
    response = await client.get(path)
except httpx.TimeoutException as e:
    raise UpstreamTransportError(
        message="FHIR request timed out",
        details={"path": path},
        original_exception=e,
    ) from e
```
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

# =============================================================================
# BASE EXCEPTION CLASS
# =============================================================================


@dataclass(eq=False)
class TimelineServiceError(Exception):
    """Base exception for all timeline service errors.

    Attributes:
    -----------
    message : str
        Human-readable error description for developers and logs
    error_code : str
        Machine-readable error identifier (e.g., "UPSTREAM_HTTP_ERROR")
    details : dict
        Additional context about the error (path, resource_type, ...)
    timestamp : str
        ISO 8601 timestamp when error occurred
    request_id : str
        Unique identifier for this error instance
    http_status_code : int
        HTTP status code an API layer should answer with
    original_exception : Optional[Exception]
        The underlying exception that caused this error

    Example:
    --------
    >>> raise TimelineServiceError(
    ...     message="Timeline aggregation failed",
    ...     error_code="INTERNAL_ERROR",
    ...     details={"patient_id": "example"},
    ... )
    """

    message: str
    error_code: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    request_id: str = field(default_factory=lambda: str(uuid4()))
    http_status_code: int = 500
    original_exception: Exception | None = None

    def __str__(self) -> str:
        """Human-readable error representation for logs."""
        error_msg = f"[{self.error_code}] {self.message}"
        if self.details:
            error_msg += f" | Details: {self.details}"
        if self.original_exception:
            error_msg += (
                f" | Caused by: {type(self.original_exception).__name__}: {self.original_exception}"
            )
        return error_msg

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"error_code='{self.error_code}', "
            f"message='{self.message}', "
            f"request_id='{self.request_id}', "
            f"timestamp='{self.timestamp}'"
            f")"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for JSON serialization.

        Returns:
        --------
        dict with keys: error, error_code, details, timestamp, request_id,
        http_status_code and, when present, original_error
        """
        error_dict = {
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
            "timestamp": self.timestamp,
            "request_id": self.request_id,
            "http_status_code": self.http_status_code,
        }

        if self.original_exception:
            error_dict["original_error"] = {
                "type": type(self.original_exception).__name__,
                "message": str(self.original_exception),
                "traceback": traceback.format_exception(
                    type(self.original_exception),
                    self.original_exception,
                    self.original_exception.__traceback__,
                ),
            }

        return error_dict


# =============================================================================
# UPSTREAM EXCEPTIONS
# =============================================================================


@dataclass(eq=False)
class UpstreamError(TimelineServiceError):
    """Base class for failures talking to the FHIR server.

    Raised for the patient read and for every resource-type search. Under the
    default partial-failure policy any of them aborts the timeline request.
    """

    error_code: str = "UPSTREAM_ERROR"
    http_status_code: int = 502  # Bad Gateway


@dataclass(eq=False)
class UpstreamHttpError(UpstreamError):
    """The FHIR server answered with a non-success status.

    Example:
    --------
    >>> raise UpstreamHttpError(
    ...     message="FHIR API error: 500 Internal Server Error. boom",
    ...     status_code=500,
    ...     response_body="boom",
    ...     details={"path": "Encounter?patient=example&_count=200"},
    ... )
    """

    error_code: str = "UPSTREAM_HTTP_ERROR"
    http_status_code: int = 502
    status_code: int | None = None
    response_body: str = ""

    def to_dict(self) -> dict[str, Any]:
        error_dict = super().to_dict()
        error_dict["upstream_status_code"] = self.status_code
        error_dict["upstream_response_body"] = self.response_body
        return error_dict


@dataclass(eq=False)
class UpstreamNotFoundError(UpstreamHttpError):
    """The requested resource does not exist upstream (404)."""

    error_code: str = "UPSTREAM_NOT_FOUND"
    http_status_code: int = 404


@dataclass(eq=False)
class UpstreamTransportError(UpstreamError):
    """Connection failure, timeout or other transport fault."""

    error_code: str = "UPSTREAM_TRANSPORT_FAILED"
    http_status_code: int = 503  # Service Unavailable


@dataclass(eq=False)
class UpstreamProtocolError(UpstreamError):
    """The server answered successfully but the body is not a JSON object."""

    error_code: str = "UPSTREAM_PROTOCOL_ERROR"
    http_status_code: int = 502


# =============================================================================
# CANCELLATION / VALIDATION / CONFIGURATION
# =============================================================================


@dataclass(eq=False)
class TimelineCancelledError(TimelineServiceError):
    """The caller cancelled the timeline request.

    No partial timeline is returned. 499 follows the "client closed request"
    convention so an API layer can tell this apart from a server failure.
    """

    error_code: str = "TIMELINE_CANCELLED"
    http_status_code: int = 499


@dataclass(eq=False)
class TimelineValidationError(TimelineServiceError):
    """Timeline request validation failures (blank patient id, bad dates)."""

    error_code: str = "VALIDATION_ERROR"
    http_status_code: int = 400  # Bad Request


@dataclass(eq=False)
class ConfigurationError(TimelineServiceError):
    """Configuration or initialization errors.

    These should typically stop the process at startup rather than being
    caught and handled.
    """

    error_code: str = "CONFIGURATION_ERROR"
    http_status_code: int = 500


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def convert_to_timeline_exception(
    exception: Exception,
    default_message: str = "An unexpected error occurred",
    context: dict[str, Any] | None = None,
) -> TimelineServiceError:
    """Convert any exception to the matching timeline service exception.

    Used at the HTTP boundary so callers only ever see this hierarchy.

    Args:
    -----
    exception : Exception
        The original exception to convert
    default_message : str
        Fallback message if exception type is unknown
    context : dict, optional
        Additional context to include in error details

    Returns:
    --------
    TimelineServiceError or subclass

    Example:
    --------
    >>> try:
    ...     await client.get(path)
    ... except httpx.HTTPError as e:
    ...     raise convert_to_timeline_exception(e, context={"path": path}) from e
    """
    import httpx
    import pydantic

    context = context or {}

    if isinstance(exception, TimelineServiceError):
        return exception

    # Timeouts before the generic transport branch since TimeoutException is a TransportError
    if isinstance(exception, httpx.TimeoutException):
        return UpstreamTransportError(
            message="FHIR request timed out",
            details={**context, "error": str(exception)},
            original_exception=exception,
        )

    if isinstance(exception, httpx.HTTPStatusError):
        response = exception.response
        error_class = UpstreamNotFoundError if response.status_code == 404 else UpstreamHttpError
        return error_class(
            message=f"FHIR API error: {response.status_code} {response.reason_phrase}",
            details={**context},
            status_code=response.status_code,
            response_body=response.text,
            original_exception=exception,
        )

    if isinstance(exception, httpx.HTTPError):
        return UpstreamTransportError(
            message="Failed to reach FHIR server",
            details={**context, "error": str(exception)},
            original_exception=exception,
        )

    if isinstance(exception, pydantic.ValidationError):
        return TimelineValidationError(
            message="Timeline request validation failed",
            details={
                **context,
                "validation_errors": exception.errors(include_url=False, include_context=False),
            },
            original_exception=exception,
        )

    return TimelineServiceError(
        message=default_message,
        error_code="INTERNAL_ERROR",
        details={**context, "error_type": type(exception).__name__, "error": str(exception)},
        original_exception=exception,
    )
