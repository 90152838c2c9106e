"""
Pytest configuration: default runs most tests; use --run-slow to include slow tests.
"""

import io

import pytest
import requests
from requests.structures import CaseInsensitiveDict


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run slow tests (live Reve API calls). Default: skip them.",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if config.getoption("--run-slow", False):
        return
    skip_slow = pytest.mark.skip(reason="Slow test; run with --run-slow to include")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def make_response(
    status: int = 200,
    body: bytes = b"",
    headers: dict[str, str] | None = None,
) -> requests.Response:
    """Build a real requests.Response whose body is read from memory."""
    resp = requests.Response()
    resp.status_code = status
    resp.headers = CaseInsensitiveDict(headers or {})
    resp.raw = io.BytesIO(body)
    resp.url = "https://api.reve.com/test"
    return resp


@pytest.fixture
def response_factory():
    """Factory fixture returning make_response."""
    return make_response


@pytest.fixture
def png_bytes() -> bytes:
    """A tiny valid PNG."""
    from PIL import Image

    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buf, format="PNG")
    return buf.getvalue()
