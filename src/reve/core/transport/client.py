"""
HTTP transport for the Reve API.

Builds requests, performs single attempts in JSON or raw-binary mode, and
wraps them in the retry loop. A single attempt never retries by itself.
"""

import json
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

import requests

from reve.core.config import Config
from reve.core.transport.backoff import BackoffPolicy
from reve.core.transport.cancel import CancelToken
from reve.core.transport.errors import ERROR_CODE_HEADER, REQUEST_ID_HEADER, parse_error
from reve.core.transport.proxy import session_from_config
from reve.core.transport.retry import Retrier
from reve.logging_config import ConsoleSink, LogSink, get_logger
from reve.utils.exceptions import (
    DeadlineExceededError,
    NetworkError,
    RequestError,
    RequestTimeoutError,
)

logger = get_logger(__name__)

JSON_CONTENT_TYPE = "application/json"

VERSION_HEADER = "X-Reve-Version"
CONTENT_VIOLATION_HEADER = "X-Reve-Content-Violation"
CREDITS_USED_HEADER = "X-Reve-Credits-Used"
CREDITS_REMAINING_HEADER = "X-Reve-Credits-Remaining"

_DEBUG_TRUNCATE_THRESHOLD = 200
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def _truncate_image_data_for_log(obj: Any) -> Any:
    """Recursively replace long (base64) strings with placeholders for safe logging."""
    if isinstance(obj, dict):
        return {k: _truncate_image_data_for_log(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_truncate_image_data_for_log(v) for v in obj]
    if isinstance(obj, str) and len(obj) >= _DEBUG_TRUNCATE_THRESHOLD:
        return f"<string, {len(obj)} chars>"
    return obj


def _parse_int_header(headers: Any, name: str) -> int:
    """Leading integer of a header value; 0 when absent or unparsable."""
    match = _LEADING_INT.match(headers.get(name, "") or "")
    return int(match.group(1)) if match else 0


@dataclass(frozen=True)
class Request:
    """A logical API request. Immutable; built into an HTTPRequest per attempt."""

    method: str
    path: str
    body: Any = None  # dict, or an object with to_payload()
    accept: str = ""  # defaults to application/json
    breadcrumb: str = ""


@dataclass(frozen=True)
class HTTPRequest:
    """A fully formed outbound request. The body is kept as bytes so it can be replayed."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None

    def body_bytes(self) -> bytes:
        """Serialized body (empty when the request has none); identical on every call."""
        return self.body if self.body is not None else b""


@dataclass
class Response:
    """Successful JSON-mode response."""

    body: bytes
    status: int
    request_id: str = ""

    def json(self) -> Any:
        return json.loads(self.body)


@dataclass
class RawResponse:
    """Successful raw-mode response; metadata comes from headers only."""

    data: bytes
    content_type: str = ""
    version: str = ""
    content_violation: bool = False
    request_id: str = ""
    credits_used: int = 0
    credits_remaining: int = 0


class Transport:
    """HTTP client for the Reve API with retry and backoff.

    Holds no per-call state; one instance may serve concurrent calls.
    """

    def __init__(
        self,
        config: Config,
        session: requests.Session | None = None,
        sink: LogSink | None = None,
        backoff: BackoffPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._base_url = config.base_url.rstrip("/")
        self._api_key = config.api_key
        self._user_agent = config.user_agent
        self._timeout = config.timeout
        self._debug = config.debug
        self._sink: LogSink = sink or ConsoleSink()
        self._session = session or session_from_config(config)
        self._retrier = Retrier(
            config.max_retries,
            backoff or BackoffPolicy(config.retry_min_wait, config.retry_max_wait),
            sleep=sleep,
        )

    @property
    def session(self) -> requests.Session:
        return self._session

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()

    def _trace(self, fmt: str, *args: Any) -> None:
        if not self._debug:
            return
        self._sink.log(fmt % args)

    def build_request(self, req: Request) -> HTTPRequest:
        """
        Turn a Request into an HTTPRequest. Never touches the network.

        Raises:
            RequestError: op='marshal' if the body cannot be serialized to JSON
        """
        url = self._base_url + req.path
        if req.breadcrumb:
            url += "?" + urlencode({"breadcrumb": req.breadcrumb})

        data: bytes | None = None
        if req.body is not None:
            payload = req.body.to_payload() if hasattr(req.body, "to_payload") else req.body
            try:
                data = json.dumps(payload, ensure_ascii=False, allow_nan=False).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise RequestError("marshal", original_error=e) from e
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "Request payload (image data truncated): %s",
                    json.dumps(_truncate_image_data_for_log(payload), default=str),
                )

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": JSON_CONTENT_TYPE,
            "User-Agent": self._user_agent,
            "Accept": req.accept or JSON_CONTENT_TYPE,
        }
        return HTTPRequest(method=req.method, url=url, headers=headers, body=data)

    def _attempt_timeout(self, cancel: CancelToken | None) -> float:
        """Per-request timeout, shortened to what is left of the cancel deadline."""
        remaining = cancel.remaining() if cancel is not None else None
        if remaining is None:
            return self._timeout
        if remaining <= 0:
            raise DeadlineExceededError("Operation deadline exceeded.")
        return min(self._timeout, remaining)

    @staticmethod
    def _check_deadline(cancel: CancelToken | None, error: BaseException) -> None:
        """Report a timeout caused by the cancel deadline as DeadlineExceededError."""
        if cancel is not None and cancel.expired:
            raise DeadlineExceededError("Operation deadline exceeded.") from error

    def _send(self, built: HTTPRequest, cancel: CancelToken | None = None) -> requests.Response:
        """One network round trip. Headers are received; the body is not yet read."""
        if cancel is not None:
            cancel.raise_if_cancelled()
        timeout = self._attempt_timeout(cancel)
        logger.debug("API request %s %s timeout=%s", built.method, built.url, timeout)
        try:
            return self._session.request(
                built.method,
                built.url,
                headers=built.headers,
                data=built.body,
                timeout=timeout,
                stream=True,
            )
        except requests.exceptions.Timeout as e:
            self._check_deadline(cancel, e)
            raise RequestTimeoutError(
                "http", f"Request timed out after {timeout} seconds", e
            ) from e
        except requests.exceptions.ConnectionError as e:
            self._check_deadline(cancel, e)
            raise NetworkError("http", f"Failed to connect to the Reve API: {e}", e) from e
        except requests.exceptions.RequestException as e:
            raise RequestError("http", original_error=e) from e

    def _read_body(self, response: requests.Response, cancel: CancelToken | None) -> bytes:
        try:
            return response.content
        except (requests.exceptions.RequestException, OSError) as e:
            self._check_deadline(cancel, e)
            raise RequestError("read response", original_error=e) from e

    def execute(self, req: Request, cancel: CancelToken | None = None) -> Response:
        """
        Perform one JSON-mode attempt.

        A response that arrives after cancel fired is discarded.

        Raises:
            APIError: status >= 400
            RequestError: marshaling, connection, timeout or body-read failure
            CancellationError: cancel fired or its deadline passed during the attempt
        """
        built = self.build_request(req)
        self._trace("Request: %s %s", built.method, built.url)
        http_response = self._send(built, cancel)
        try:
            body = self._read_body(http_response, cancel)
        finally:
            http_response.close()

        status = http_response.status_code
        logger.debug("API response status=%s size=%d", status, len(body))
        self._trace("Response: status=%d", status)
        if cancel is not None:
            cancel.raise_if_cancelled()

        if status >= 400:
            raise parse_error(http_response, body)

        return Response(
            body=body,
            status=status,
            request_id=http_response.headers.get(REQUEST_ID_HEADER, ""),
        )

    def execute_raw(self, req: Request, cancel: CancelToken | None = None) -> RawResponse:
        """
        Perform one raw-mode attempt (binary image body, metadata in headers).

        An X-Reve-Error-Code header marks the call failed whatever the status.

        Raises:
            APIError: error-code header present or status >= 400
            RequestError: marshaling, connection, timeout or body-read failure
            CancellationError: cancel fired or its deadline passed during the attempt
        """
        built = self.build_request(req)
        self._trace("Request (raw): %s %s", built.method, built.url)
        http_response = self._send(built, cancel)
        headers = http_response.headers
        failed = bool(headers.get(ERROR_CODE_HEADER)) or http_response.status_code >= 400
        try:
            if failed:
                try:
                    data = http_response.content
                except (requests.exceptions.RequestException, OSError) as e:
                    logger.debug("Could not read error body: %s", e)
                    data = b""
            else:
                data = self._read_body(http_response, cancel)
        finally:
            http_response.close()

        logger.debug(
            "API response status=%s content_type=%s size=%d",
            http_response.status_code,
            headers.get("Content-Type", ""),
            len(data),
        )
        self._trace("Response (raw): status=%d, size=%d", http_response.status_code, len(data))
        if cancel is not None:
            cancel.raise_if_cancelled()

        if failed:
            raise parse_error(http_response, data)

        return RawResponse(
            data=data,
            content_type=headers.get("Content-Type", ""),
            version=headers.get(VERSION_HEADER, ""),
            content_violation=headers.get(CONTENT_VIOLATION_HEADER, "") == "true",
            request_id=headers.get(REQUEST_ID_HEADER, ""),
            credits_used=_parse_int_header(headers, CREDITS_USED_HEADER),
            credits_remaining=_parse_int_header(headers, CREDITS_REMAINING_HEADER),
        )

    def do(self, req: Request, cancel: CancelToken | None = None) -> Response:
        """Execute a JSON-mode request with retries."""
        return self._retrier.run(lambda: self.execute(req, cancel), cancel)

    def do_raw(self, req: Request, cancel: CancelToken | None = None) -> RawResponse:
        """Execute a raw-mode request with retries."""
        return self._retrier.run(lambda: self.execute_raw(req, cancel), cancel)
