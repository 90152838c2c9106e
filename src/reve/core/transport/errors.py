"""
Classification of failed HTTP exchanges.

Turns a non-2xx (or error-flagged) response into an APIError. The retry
verdict lives on APIError.retryable and depends on the HTTP status only.
"""

import json
from http import HTTPStatus
from typing import Any

import requests

from reve.utils.exceptions import APIError, ErrorCode

REQUEST_ID_HEADER = "X-Reve-Request-Id"
ERROR_CODE_HEADER = "X-Reve-Error-Code"

# Code inferred when the error body carries none.
STATUS_ERROR_CODES: dict[int, ErrorCode] = {
    HTTPStatus.UNAUTHORIZED: ErrorCode.INVALID_API_KEY,
    HTTPStatus.PAYMENT_REQUIRED: ErrorCode.INSUFFICIENT_CREDITS,
    HTTPStatus.TOO_MANY_REQUESTS: ErrorCode.RATE_LIMIT,
    HTTPStatus.INTERNAL_SERVER_ERROR: ErrorCode.INTERNAL,
}


def _status_text(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return ""


def _coerce_code(raw: Any) -> ErrorCode | str:
    if not raw:
        return ""
    try:
        return ErrorCode(raw)
    except ValueError:
        return str(raw)


def _decode_error_body(body: bytes) -> dict[str, Any] | None:
    """Return the error payload as a dict, or None if body is not a JSON object."""
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return None
    return payload if isinstance(payload, dict) else None


def parse_error(response: requests.Response, body: bytes) -> APIError:
    """
    Build an APIError from a failed response and its (already read) body.

    The body is decoded as {"error_code", "message", "params"}. If it is not a
    JSON object the raw text becomes the message, or the standard status phrase
    when the body is empty. Without a code in the body, the code is inferred
    from the status alone.
    """
    status = response.status_code
    request_id = response.headers.get(REQUEST_ID_HEADER, "")

    payload = _decode_error_body(body)
    if payload is not None:
        code = _coerce_code(payload.get("error_code"))
        message = str(payload.get("message") or "")
        params = payload.get("params") if isinstance(payload.get("params"), dict) else None
    else:
        code = ""
        message = body.decode("utf-8", errors="replace")
        params = None
        if not message:
            message = _status_text(status)

    if not code:
        code = STATUS_ERROR_CODES.get(status, "")

    return APIError(
        message,
        code=code,
        status_code=status,
        request_id=request_id,
        params=params,
    )
