"""
Custom exceptions for reve.

This module defines all custom exceptions used throughout the SDK. Errors fall
into three families:

- RequestError: local or transport-adjacent failures (marshaling, connecting,
  reading the body). Carries the failing operation and the wrapped cause.
- APIError: failures reported by the Reve service. Carries the error code,
  HTTP status and request id, plus a retry verdict.
- CancellationError: the caller abandoned the call (explicit cancel or deadline).
"""

from enum import Enum
from http import HTTPStatus
from typing import Any


class ErrorCode(str, Enum):
    """Error codes returned by the Reve API."""

    MISSING_PARAMETER = "MISSING_REQUIRED_PARAMETER"
    PROMPT_TOO_LONG = "PROMPT_TOO_LONG"
    CONTENT_VIOLATION = "CONTENT_POLICY_VIOLATION"
    INDEX_OUT_OF_BOUNDS = "INDEX_OUT_OF_BOUNDS"
    INVALID_API_KEY = "INVALID_API_KEY"
    INSUFFICIENT_CREDITS = "INSUFFICIENT_CREDITS"
    RATE_LIMIT = "RATE_LIMIT_EXCEEDED"
    INTERNAL = "INTERNAL_ERROR"

    def __str__(self) -> str:
        return self.value


# Transient server/capacity conditions; everything else is caller-correctable.
RETRYABLE_STATUSES = frozenset(
    {
        HTTPStatus.TOO_MANY_REQUESTS,
        HTTPStatus.INTERNAL_SERVER_ERROR,
        HTTPStatus.BAD_GATEWAY,
        HTTPStatus.SERVICE_UNAVAILABLE,
        HTTPStatus.GATEWAY_TIMEOUT,
    }
)


def is_retryable_status(status_code: int) -> bool:
    """Return True if a response with this HTTP status may be retried."""
    return status_code in RETRYABLE_STATUSES


class ReveError(Exception):
    """Base exception for all reve errors."""

    pass


class ValidationError(ReveError):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize validation error.

        Args:
            message: Error message
            field: Name of the field that failed validation (optional)
        """
        self.field = field
        super().__init__(message)


class ConfigurationError(ReveError):
    """Raised when there is a configuration problem."""

    pass


class APIError(ReveError):
    """Raised when the Reve API reports a failure."""

    def __init__(
        self,
        message: str,
        code: ErrorCode | str = "",
        status_code: int = 0,
        request_id: str = "",
        params: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize API error.

        Args:
            message: Human-readable message from the API
            code: Symbolic error code (ErrorCode, or the raw string for unknown codes)
            status_code: HTTP status code
            request_id: Value of the X-Reve-Request-Id header, if any
            params: Extra parameter detail from the error payload
        """
        self.message = message
        self.code = code
        self.status_code = status_code
        self.request_id = request_id
        self.params = params
        super().__init__(self._format())

    def _format(self) -> str:
        code = str(self.code)
        if self.request_id:
            return (
                f"{self.message} (code={code}, status={self.status_code}, "
                f"request_id={self.request_id})"
            )
        return f"{self.message} (code={code}, status={self.status_code})"

    @property
    def retryable(self) -> bool:
        """Whether the request can be retried. Depends on HTTP status only."""
        return is_retryable_status(self.status_code)

    @property
    def is_rate_limit(self) -> bool:
        return self.code == ErrorCode.RATE_LIMIT or self.status_code == HTTPStatus.TOO_MANY_REQUESTS

    @property
    def is_insufficient_funds(self) -> bool:
        return (
            self.code == ErrorCode.INSUFFICIENT_CREDITS
            or self.status_code == HTTPStatus.PAYMENT_REQUIRED
        )

    @property
    def is_content_violation(self) -> bool:
        return self.code == ErrorCode.CONTENT_VIOLATION

    @property
    def is_auth_error(self) -> bool:
        return self.code == ErrorCode.INVALID_API_KEY or self.status_code == HTTPStatus.UNAUTHORIZED


class RequestError(ReveError):
    """Raised when a request fails before or outside the HTTP exchange.

    Never retried: there is no HTTP status to classify.
    """

    def __init__(
        self, op: str, message: str = "", original_error: BaseException | None = None
    ) -> None:
        """
        Initialize request error.

        Args:
            op: Operation that failed (e.g. 'marshal', 'http', 'read response')
            message: Error message (defaults to the original error's text)
            original_error: The underlying exception that caused this error
        """
        self.op = op
        self.original_error = original_error
        if not message:
            message = str(original_error) if original_error is not None else "request failed"
        super().__init__(f"{op}: {message}")


class NetworkError(RequestError):
    """Raised when the connection to the API cannot be established or breaks."""

    pass


class RequestTimeoutError(RequestError):
    """Raised when a single request times out."""

    pass


class CancellationError(ReveError):
    """Raised when an operation is cancelled by the caller."""

    pass


class DeadlineExceededError(CancellationError):
    """Raised when an operation runs past its deadline."""

    pass


class ImageProcessingError(ReveError):
    """Raised when image data cannot be read, decoded, or written."""

    def __init__(self, message: str, image_path: str = "") -> None:
        """
        Initialize image processing error.

        Args:
            message: Error message
            image_path: Path to the image that caused the error
        """
        self.image_path = image_path
        super().__init__(message)
