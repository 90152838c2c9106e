"""
Image operations: create, edit and remix.

Each operation validates its params, sends one logical request through the
retrying transport and decodes the result. The plain methods return a Result
(base64 image in JSON); the *_raw variants ask for image bytes directly and
return a RawResult with metadata taken from response headers.
"""

import json
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TypeVar

from reve.core.image import RawResult, Result
from reve.core.params import CreateParams, EditParams, RemixParams
from reve.core.transport import CancelToken, Request, Transport
from reve.core.types import OutputFormat
from reve.logging_config import get_logger, log_prompts
from reve.utils.exceptions import CancellationError, RequestError, ReveError, ValidationError

logger = get_logger(__name__)

CREATE_PATH = "/v1/image/create"
EDIT_PATH = "/v1/image/edit"
REMIX_PATH = "/v1/image/remix"

_PROMPT_LOG_MAX = 50_000

Params = CreateParams | EditParams | RemixParams
P = TypeVar("P")


def _decode_result(body: bytes, request_id: str) -> Result:
    try:
        payload = json.loads(body)
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        result = Result.from_payload(payload)
    except (ValueError, TypeError) as e:
        raise RequestError("unmarshal", original_error=e) from e
    if not result.request_id:
        result.request_id = request_id
    return result


def _raw_format(fmt: OutputFormat | str) -> str:
    value = str(fmt)
    if value == OutputFormat.JSON.value:
        raise ValidationError(
            "raw calls need an image format (png, jpeg or webp), not JSON", field="format"
        )
    return value


class ImagesService:
    """Create, edit and remix images. Obtain it as ReveClient.images."""

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    def _log_start(self, operation: str, params: Params) -> None:
        logger.info("Starting %s version=%s", operation, str(params.version) or "default")
        prompt = getattr(params, "prompt", "") or getattr(params, "edit_instruction", "")
        if log_prompts() and prompt:
            truncated = (
                prompt if len(prompt) <= _PROMPT_LOG_MAX else prompt[:_PROMPT_LOG_MAX] + "..."
            )
            logger.info("Prompt (used): %s", truncated)

    def _run(
        self,
        operation: str,
        path: str,
        params: Params,
        cancel: CancelToken | None,
        breadcrumb: str,
    ) -> Result:
        params.validate()
        self._log_start(operation, params)
        response = self._transport.do(
            Request(method="POST", path=path, body=params, breadcrumb=breadcrumb), cancel
        )
        result = _decode_result(response.body, response.request_id)
        logger.info(
            "%s done request_id=%s credits_used=%d credits_remaining=%d",
            operation,
            result.request_id,
            result.credits_used,
            result.credits_remaining,
        )
        return result

    def _run_raw(
        self,
        operation: str,
        path: str,
        params: Params,
        fmt: OutputFormat | str,
        cancel: CancelToken | None,
        breadcrumb: str,
    ) -> RawResult:
        params.validate()
        accept = _raw_format(fmt)
        self._log_start(operation, params)
        response = self._transport.do_raw(
            Request(method="POST", path=path, body=params, accept=accept, breadcrumb=breadcrumb),
            cancel,
        )
        logger.info(
            "%s done request_id=%s size=%d credits_used=%d",
            operation,
            response.request_id,
            len(response.data),
            response.credits_used,
        )
        return RawResult(
            data=response.data,
            content_type=response.content_type,
            version=response.version,
            content_violation=response.content_violation,
            request_id=response.request_id,
            credits_used=response.credits_used,
            credits_remaining=response.credits_remaining,
        )

    def create(
        self, params: CreateParams, *, cancel: CancelToken | None = None, breadcrumb: str = ""
    ) -> Result:
        """
        Generate an image from a text prompt.

        Raises:
            ValidationError: If params are invalid (nothing is sent)
            APIError: If the API rejects the request
            RequestError: On marshaling, network or decoding failure
            CancellationError: If cancel fires while waiting to retry
        """
        return self._run("create", CREATE_PATH, params, cancel, breadcrumb)

    def create_raw(
        self,
        params: CreateParams,
        fmt: OutputFormat | str = OutputFormat.PNG,
        *,
        cancel: CancelToken | None = None,
        breadcrumb: str = "",
    ) -> RawResult:
        """Generate an image and receive it as raw bytes in fmt."""
        return self._run_raw("create", CREATE_PATH, params, fmt, cancel, breadcrumb)

    def edit(
        self, params: EditParams, *, cancel: CancelToken | None = None, breadcrumb: str = ""
    ) -> Result:
        """Edit a reference image following a natural-language instruction."""
        return self._run("edit", EDIT_PATH, params, cancel, breadcrumb)

    def edit_raw(
        self,
        params: EditParams,
        fmt: OutputFormat | str = OutputFormat.PNG,
        *,
        cancel: CancelToken | None = None,
        breadcrumb: str = "",
    ) -> RawResult:
        return self._run_raw("edit", EDIT_PATH, params, fmt, cancel, breadcrumb)

    def remix(
        self, params: RemixParams, *, cancel: CancelToken | None = None, breadcrumb: str = ""
    ) -> Result:
        """Combine up to six reference images under a prompt."""
        return self._run("remix", REMIX_PATH, params, cancel, breadcrumb)

    def remix_raw(
        self,
        params: RemixParams,
        fmt: OutputFormat | str = OutputFormat.PNG,
        *,
        cancel: CancelToken | None = None,
        breadcrumb: str = "",
    ) -> RawResult:
        return self._run_raw("remix", REMIX_PATH, params, fmt, cancel, breadcrumb)

    def _batch(
        self,
        call: Callable[[P], Result],
        params_list: Sequence[P],
        max_workers: int,
        cancel: CancelToken | None,
    ) -> list["BatchResult"]:
        def one(index: int, params: P) -> BatchResult:
            if cancel is not None:
                try:
                    cancel.raise_if_cancelled()
                except CancellationError as e:
                    return BatchResult(index=index, error=e)
            try:
                return BatchResult(index=index, result=call(params))
            except ReveError as e:
                logger.info("Batch item %d failed: %s", index, e)
                return BatchResult(index=index, error=e)

        if max_workers <= 1:
            return [one(i, p) for i, p in enumerate(params_list)]
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [pool.submit(one, i, p) for i, p in enumerate(params_list)]
            return [f.result() for f in futures]

    def create_batch(
        self,
        params_list: Sequence[CreateParams],
        *,
        max_workers: int = 1,
        cancel: CancelToken | None = None,
    ) -> list["BatchResult"]:
        """
        Run create for each params. Failures are collected, not raised.

        Results are returned in input order. With max_workers > 1 the calls
        run on a thread pool sharing this client.
        """
        return self._batch(
            lambda p: self.create(p, cancel=cancel), params_list, max_workers, cancel
        )

    def edit_batch(
        self,
        params_list: Sequence[EditParams],
        *,
        max_workers: int = 1,
        cancel: CancelToken | None = None,
    ) -> list["BatchResult"]:
        return self._batch(lambda p: self.edit(p, cancel=cancel), params_list, max_workers, cancel)

    def remix_batch(
        self,
        params_list: Sequence[RemixParams],
        *,
        max_workers: int = 1,
        cancel: CancelToken | None = None,
    ) -> list["BatchResult"]:
        return self._batch(
            lambda p: self.remix(p, cancel=cancel), params_list, max_workers, cancel
        )


@dataclass
class BatchResult:
    """Outcome of one batch item: exactly one of result / error is set."""

    index: int
    result: Result | None = None
    error: ReveError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def success_count(results: Sequence[BatchResult]) -> int:
    return sum(1 for r in results if r.ok)


def error_count(results: Sequence[BatchResult]) -> int:
    return sum(1 for r in results if not r.ok)


def successful(results: Sequence[BatchResult]) -> list[Result]:
    return [r.result for r in results if r.ok and r.result is not None]


def errors(results: Sequence[BatchResult]) -> list[ReveError]:
    return [r.error for r in results if r.error is not None]
