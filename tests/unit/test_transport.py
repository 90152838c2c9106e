"""Unit tests for the HTTP transport (request building, attempts, retries)."""

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from unittest.mock import MagicMock

import pytest
import requests

from reve.core.config import Config
from reve.core.transport import (
    BackoffPolicy,
    CancelToken,
    RawResponse,
    Request,
    Response,
    Transport,
)
from reve.utils.exceptions import (
    APIError,
    CancellationError,
    DeadlineExceededError,
    ErrorCode,
    NetworkError,
    RequestError,
    RequestTimeoutError,
)

SUCCESS_BODY = json.dumps(
    {
        "image": "aGVsbG8=",
        "version": "reve-create@20250915",
        "content_violation": False,
        "request_id": "rid-body",
        "credits_used": 18,
        "credits_remaining": 982,
    }
).encode()


class _FailingRaw:
    """Stand-in for urllib3's raw stream whose read breaks mid-body."""

    def read(self, *_args, **_kwargs):
        raise requests.exceptions.ChunkedEncodingError("connection reset")

    def close(self):
        pass


class _Payload:
    def __init__(self, data):
        self.data = data

    def to_payload(self):
        return self.data


def _transport(session, *, debug=False, sink=None, max_retries=3, base_url="https://api.reve.com"):
    config = Config(api_key="test-key", base_url=base_url, max_retries=max_retries, debug=debug)
    waits: list[float] = []
    transport = Transport(
        config,
        session=session,
        sink=sink or MagicMock(),
        backoff=BackoffPolicy(0.01, 0.05),
        sleep=waits.append,
    )
    return transport, waits


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.mark.unit
class TestBuildRequest:
    def test_url_headers_and_body(self, session):
        t, _ = _transport(session)
        built = t.build_request(Request("POST", "/v1/image/create", body={"prompt": "a cat"}))
        assert built.method == "POST"
        assert built.url == "https://api.reve.com/v1/image/create"
        assert built.headers == {
            "Authorization": "Bearer test-key",
            "Content-Type": "application/json",
            "User-Agent": Config().user_agent,
            "Accept": "application/json",
        }
        assert json.loads(built.body) == {"prompt": "a cat"}

    def test_trailing_slash_on_base_url(self, session):
        t, _ = _transport(session, base_url="https://example.test/")
        assert t.build_request(Request("POST", "/v1/x")).url == "https://example.test/v1/x"

    def test_accept_override(self, session):
        t, _ = _transport(session)
        built = t.build_request(Request("POST", "/v1/x", accept="image/webp"))
        assert built.headers["Accept"] == "image/webp"

    def test_breadcrumb_query_is_encoded(self, session):
        t, _ = _transport(session)
        built = t.build_request(Request("POST", "/v1/x", breadcrumb="batch 1&job=2"))
        assert built.url == "https://api.reve.com/v1/x?breadcrumb=batch+1%26job%3D2"

    def test_no_body(self, session):
        t, _ = _transport(session)
        built = t.build_request(Request("GET", "/v1/x"))
        assert built.body is None
        assert built.body_bytes() == b""

    def test_to_payload_objects_serialized(self, session):
        t, _ = _transport(session)
        built = t.build_request(Request("POST", "/v1/x", body=_Payload({"prompt": "ü"})))
        assert built.body == '{"prompt": "ü"}'.encode()

    def test_body_bytes_stable(self, session):
        t, _ = _transport(session)
        req = Request("POST", "/v1/x", body={"b": 1, "a": [1, 2]})
        assert t.build_request(req).body_bytes() == t.build_request(req).body_bytes()

    @pytest.mark.parametrize("bad", [{"x": float("nan")}, {"x": object()}])
    def test_marshal_error(self, session, bad):
        t, _ = _transport(session)
        with pytest.raises(RequestError) as exc_info:
            t.build_request(Request("POST", "/v1/x", body=bad))
        assert exc_info.value.op == "marshal"
        session.request.assert_not_called()


@pytest.mark.unit
class TestExecute:
    def test_success(self, session, response_factory):
        session.request.return_value = response_factory(
            200, SUCCESS_BODY, {"X-Reve-Request-Id": "rid-header"}
        )
        t, _ = _transport(session)
        resp = t.execute(Request("POST", "/v1/image/create", body={"prompt": "p"}))
        assert isinstance(resp, Response)
        assert resp.status == 200
        assert resp.request_id == "rid-header"
        assert resp.json()["credits_used"] == 18

        args, kwargs = session.request.call_args
        assert args == ("POST", "https://api.reve.com/v1/image/create")
        assert kwargs["stream"] is True
        assert kwargs["timeout"] == Config().timeout
        assert json.loads(kwargs["data"]) == {"prompt": "p"}

    def test_error_status_raises_api_error(self, session, response_factory):
        body = json.dumps({"error_code": "INVALID_API_KEY", "message": "bad key"}).encode()
        session.request.return_value = response_factory(401, body, {"X-Reve-Request-Id": "r1"})
        t, _ = _transport(session)
        with pytest.raises(APIError) as exc_info:
            t.execute(Request("POST", "/v1/x", body={}))
        err = exc_info.value
        assert err.code == ErrorCode.INVALID_API_KEY
        assert err.status_code == 401
        assert err.request_id == "r1"

    def test_connection_error(self, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        t, _ = _transport(session)
        with pytest.raises(NetworkError) as exc_info:
            t.execute(Request("POST", "/v1/x"))
        assert exc_info.value.op == "http"

    def test_timeout(self, session):
        session.request.side_effect = requests.exceptions.ReadTimeout("slow")
        t, _ = _transport(session)
        with pytest.raises(RequestTimeoutError) as exc_info:
            t.execute(Request("POST", "/v1/x"))
        assert exc_info.value.op == "http"

    def test_other_request_exception(self, session):
        session.request.side_effect = requests.exceptions.InvalidURL("bad url")
        t, _ = _transport(session)
        with pytest.raises(RequestError) as exc_info:
            t.execute(Request("POST", "/v1/x"))
        assert type(exc_info.value) is RequestError
        assert exc_info.value.op == "http"

    def test_body_read_error(self, session, response_factory):
        resp = response_factory(200)
        resp.raw = _FailingRaw()
        session.request.return_value = resp
        t, _ = _transport(session)
        with pytest.raises(RequestError) as exc_info:
            t.execute(Request("POST", "/v1/x"))
        assert exc_info.value.op == "read response"


@pytest.mark.unit
class TestExecuteRaw:
    def test_success_reads_metadata_from_headers(self, session, response_factory):
        session.request.return_value = response_factory(
            200,
            b"\x89PNG-bytes",
            {
                "Content-Type": "image/png",
                "X-Reve-Version": "reve-create@20250915",
                "X-Reve-Content-Violation": "true",
                "X-Reve-Request-Id": "rid",
                "X-Reve-Credits-Used": "18",
                "X-Reve-Credits-Remaining": "482",
            },
        )
        t, _ = _transport(session)
        resp = t.execute_raw(Request("POST", "/v1/x", accept="image/png"))
        assert resp == RawResponse(
            data=b"\x89PNG-bytes",
            content_type="image/png",
            version="reve-create@20250915",
            content_violation=True,
            request_id="rid",
            credits_used=18,
            credits_remaining=482,
        )
        assert session.request.call_args.kwargs["headers"]["Accept"] == "image/png"

    @pytest.mark.parametrize(
        "used,remaining,expected",
        [("12abc", " 7", (12, 7)), ("abc", "", (0, 0)), (None, "-3", (0, -3))],
    )
    def test_lenient_credit_headers(self, session, response_factory, used, remaining, expected):
        headers = {"X-Reve-Credits-Remaining": remaining}
        if used is not None:
            headers["X-Reve-Credits-Used"] = used
        session.request.return_value = response_factory(200, b"img", headers)
        t, _ = _transport(session)
        resp = t.execute_raw(Request("POST", "/v1/x"))
        assert (resp.credits_used, resp.credits_remaining) == expected

    def test_content_violation_only_when_true(self, session, response_factory):
        session.request.return_value = response_factory(
            200, b"img", {"X-Reve-Content-Violation": "false"}
        )
        t, _ = _transport(session)
        assert t.execute_raw(Request("POST", "/v1/x")).content_violation is False

    def test_error_header_fails_even_with_200(self, session, response_factory):
        body = json.dumps({"error_code": "CONTENT_POLICY_VIOLATION", "message": "blocked"}).encode()
        session.request.return_value = response_factory(
            200, body, {"X-Reve-Error-Code": "CONTENT_POLICY_VIOLATION"}
        )
        t, _ = _transport(session)
        with pytest.raises(APIError) as exc_info:
            t.execute_raw(Request("POST", "/v1/x"))
        assert exc_info.value.is_content_violation
        assert exc_info.value.status_code == 200
        assert exc_info.value.retryable is False

    def test_error_status_without_header(self, session, response_factory):
        session.request.return_value = response_factory(400, b"")
        t, _ = _transport(session)
        with pytest.raises(APIError) as exc_info:
            t.execute_raw(Request("POST", "/v1/x"))
        assert exc_info.value.message == "Bad Request"

    def test_unreadable_error_body_infers_code_from_status(self, session, response_factory):
        resp = response_factory(402, headers={"X-Reve-Error-Code": "RATE_LIMIT_EXCEEDED"})
        resp.raw = _FailingRaw()
        session.request.return_value = resp
        t, _ = _transport(session)
        with pytest.raises(APIError) as exc_info:
            t.execute_raw(Request("POST", "/v1/x"))
        assert exc_info.value.code == ErrorCode.INSUFFICIENT_CREDITS
        assert exc_info.value.message == "Payment Required"

    def test_error_header_with_empty_body_leaves_code_empty(self, session, response_factory):
        session.request.return_value = response_factory(
            200, b"", {"X-Reve-Error-Code": "RATE_LIMIT_EXCEEDED"}
        )
        t, _ = _transport(session)
        with pytest.raises(APIError) as exc_info:
            t.execute_raw(Request("POST", "/v1/x"))
        assert exc_info.value.code == ""
        assert not exc_info.value.is_rate_limit
        assert exc_info.value.retryable is False

    def test_success_body_read_error(self, session, response_factory):
        resp = response_factory(200)
        resp.raw = _FailingRaw()
        session.request.return_value = resp
        t, _ = _transport(session)
        with pytest.raises(RequestError) as exc_info:
            t.execute_raw(Request("POST", "/v1/x"))
        assert exc_info.value.op == "read response"


@pytest.mark.unit
class TestDoWithRetry:
    def test_retries_retryable_then_succeeds(self, session, response_factory):
        session.request.side_effect = [
            response_factory(503, b""),
            response_factory(429, b'{"error_code": "RATE_LIMIT_EXCEEDED", "message": "slow"}'),
            response_factory(200, SUCCESS_BODY),
        ]
        t, waits = _transport(session)
        resp = t.do(Request("POST", "/v1/x", body={"prompt": "p"}))
        assert resp.status == 200
        assert session.request.call_count == 3
        assert len(waits) == 2

    def test_every_attempt_sends_identical_body(self, session, response_factory):
        session.request.side_effect = [
            response_factory(500, b""),
            response_factory(502, b""),
            response_factory(200, SUCCESS_BODY),
        ]
        t, _ = _transport(session)
        t.do(Request("POST", "/v1/x", body={"prompt": "same", "reference_image": "QUJD"}))
        bodies = [c.kwargs["data"] for c in session.request.call_args_list]
        assert len(bodies) == 3
        assert bodies[0] == bodies[1] == bodies[2]
        assert bodies[0] is not None

    def test_exhaustion_returns_last_error(self, session, response_factory):
        session.request.side_effect = [response_factory(503, b"") for _ in range(3)] + [
            response_factory(504, b"")
        ]
        t, waits = _transport(session, max_retries=3)
        with pytest.raises(APIError) as exc_info:
            t.do(Request("POST", "/v1/x"))
        assert exc_info.value.status_code == 504
        assert session.request.call_count == 4
        assert len(waits) == 3

    def test_non_retryable_status_single_attempt(self, session, response_factory):
        session.request.return_value = response_factory(400, b'{"message": "bad"}')
        t, waits = _transport(session)
        with pytest.raises(APIError):
            t.do(Request("POST", "/v1/x"))
        assert session.request.call_count == 1
        assert waits == []

    def test_network_error_not_retried(self, session):
        session.request.side_effect = requests.exceptions.ConnectionError("down")
        t, _ = _transport(session)
        with pytest.raises(NetworkError):
            t.do(Request("POST", "/v1/x"))
        assert session.request.call_count == 1

    def test_raw_retries(self, session, response_factory):
        session.request.side_effect = [
            response_factory(503, b""),
            response_factory(200, b"img", {"Content-Type": "image/png"}),
        ]
        t, _ = _transport(session)
        resp = t.do_raw(Request("POST", "/v1/x", accept="image/png"))
        assert resp.data == b"img"
        assert session.request.call_count == 2

    def test_cancelled_token_sends_nothing(self, session):
        t, _ = _transport(session)
        token = CancelToken()
        token.cancel()
        with pytest.raises(CancellationError):
            t.do(Request("POST", "/v1/x"), token)
        session.request.assert_not_called()


@pytest.mark.unit
class TestDebugTrace:
    def test_trace_lines_when_debug(self, session, response_factory):
        session.request.return_value = response_factory(200, SUCCESS_BODY)
        sink = MagicMock()
        t, _ = _transport(session, debug=True, sink=sink)
        t.execute(Request("POST", "/v1/image/create"))
        lines = [c.args[0] for c in sink.log.call_args_list]
        assert lines == [
            "Request: POST https://api.reve.com/v1/image/create",
            "Response: status=200",
        ]

    def test_raw_trace_lines(self, session, response_factory):
        session.request.return_value = response_factory(200, b"12345")
        sink = MagicMock()
        t, _ = _transport(session, debug=True, sink=sink)
        t.execute_raw(Request("POST", "/v1/x"))
        lines = [c.args[0] for c in sink.log.call_args_list]
        assert lines == [
            "Request (raw): POST https://api.reve.com/v1/x",
            "Response (raw): status=200, size=5",
        ]

    def test_no_trace_without_debug(self, session, response_factory):
        session.request.return_value = response_factory(200, SUCCESS_BODY)
        sink = MagicMock()
        t, _ = _transport(session, sink=sink)
        t.execute(Request("POST", "/v1/x"))
        sink.log.assert_not_called()

    def test_trace_never_contains_api_key(self, session, response_factory):
        session.request.return_value = response_factory(200, SUCCESS_BODY)
        sink = MagicMock()
        t, _ = _transport(session, debug=True, sink=sink)
        t.execute(Request("POST", "/v1/x", body={"prompt": "p"}))
        assert all("test-key" not in c.args[0] for c in sink.log.call_args_list)


@pytest.mark.unit
class TestTransportLifecycle:
    def test_close_closes_session(self, session):
        t, _ = _transport(session)
        t.close()
        session.close.assert_called_once()
        assert t.session is session


@pytest.mark.unit
class TestInFlightCancellation:
    def test_deadline_shortens_request_timeout(self, session, response_factory):
        session.request.return_value = response_factory(200, SUCCESS_BODY)
        t, _ = _transport(session)
        t.execute(Request("POST", "/v1/x"), CancelToken(timeout=5))
        timeout = session.request.call_args.kwargs["timeout"]
        assert 0 < timeout <= 5

    def test_request_timeout_kept_when_deadline_is_longer(self, session, response_factory):
        session.request.return_value = response_factory(200, SUCCESS_BODY)
        t, _ = _transport(session)
        t.execute(Request("POST", "/v1/x"), CancelToken(timeout=10_000))
        assert session.request.call_args.kwargs["timeout"] == Config().timeout

    def test_expired_token_skips_request(self, session):
        t, _ = _transport(session)
        with pytest.raises(DeadlineExceededError):
            t.execute(Request("POST", "/v1/x"), CancelToken(timeout=0))
        session.request.assert_not_called()

    def test_timeout_after_deadline_is_deadline_exceeded(self, session):
        token = CancelToken(timeout=0.01)

        def slow_request(*_args, **_kwargs):
            time.sleep(0.02)
            raise requests.exceptions.ReadTimeout("slow")

        session.request.side_effect = slow_request
        t, _ = _transport(session)
        with pytest.raises(DeadlineExceededError):
            t.execute(Request("POST", "/v1/x"), token)

    def test_response_after_cancel_is_discarded(self, session, response_factory):
        token = CancelToken()

        def cancel_then_respond(*_args, **_kwargs):
            token.cancel()
            return response_factory(200, SUCCESS_BODY)

        session.request.side_effect = cancel_then_respond
        t, waits = _transport(session)
        with pytest.raises(CancellationError) as exc_info:
            t.do(Request("POST", "/v1/x"), token)
        assert not isinstance(exc_info.value, DeadlineExceededError)
        assert session.request.call_count == 1
        assert waits == []

    def test_raw_error_after_cancel_is_cancellation(self, session, response_factory):
        token = CancelToken()

        def cancel_then_fail(*_args, **_kwargs):
            token.cancel()
            return response_factory(503, b"")

        session.request.side_effect = cancel_then_fail
        t, _ = _transport(session)
        with pytest.raises(CancellationError):
            t.do_raw(Request("POST", "/v1/x"), token)
        assert session.request.call_count == 1


class _SlowHandler(BaseHTTPRequestHandler):
    delay = 1.0

    def do_POST(self):
        self.rfile.read(int(self.headers.get("Content-Length") or 0))
        time.sleep(self.delay)
        try:
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(SUCCESS_BODY)))
            self.end_headers()
            self.wfile.write(SUCCESS_BODY)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture
def slow_server():
    server = ThreadingHTTPServer(("127.0.0.1", 0), _SlowHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_address[1]}"
    server.shutdown()
    server.server_close()


class TestInFlightCancellationLocalServer:
    def test_deadline_interrupts_slow_response(self, slow_server):
        config = Config(api_key="k", base_url=slow_server, timeout=10, use_env_proxy=False)
        t = Transport(config, sink=MagicMock())
        token = CancelToken(timeout=0.2)
        start = time.monotonic()
        try:
            with pytest.raises(DeadlineExceededError):
                t.do(Request("POST", "/v1/image/create", body={"prompt": "p"}), token)
        finally:
            t.close()
        assert time.monotonic() - start < 0.9
