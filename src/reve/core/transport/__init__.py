"""
HTTP transport: request building, single attempts, error classification and retries.
"""

from reve.core.transport.backoff import BackoffPolicy
from reve.core.transport.cancel import CancelToken
from reve.core.transport.client import (
    HTTPRequest,
    RawResponse,
    Request,
    Response,
    Transport,
)
from reve.core.transport.errors import parse_error
from reve.core.transport.retry import Retrier, should_retry

__all__ = [
    "BackoffPolicy",
    "CancelToken",
    "HTTPRequest",
    "RawResponse",
    "Request",
    "Response",
    "Retrier",
    "Transport",
    "parse_error",
    "should_retry",
]
