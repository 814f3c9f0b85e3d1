"""
Shared pytest fixtures and configuration for all tests.
"""

import pytest

from src.api.routes import limiter
from src.http.models import TransportResponse


class RecordingTransport:
    """Transport double: records every call and replays canned responses."""

    def __init__(self, responses=None, error: Exception | None = None):
        self.responses = list(responses or [])
        self.error = error
        self.calls: list[dict] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def execute(self, method, url, headers, body):
        self.calls.append(
            {"method": method, "url": url, "headers": headers, "body": body}
        )
        if self.error is not None:
            raise self.error
        if self.responses:
            return self.responses.pop(0)
        return TransportResponse(status=200, headers=[], body=b"")


@pytest.fixture
def make_transport():
    """Factory for RecordingTransport instances."""

    def _make(responses=None, error: Exception | None = None) -> RecordingTransport:
        return RecordingTransport(responses=responses, error=error)

    return _make


@pytest.fixture
def transport(make_transport) -> RecordingTransport:
    """Transport that answers every request with an empty 200."""
    return make_transport()


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Rate-limit counters are process-wide; start every test from zero."""
    limiter.reset()
    yield


@pytest.fixture
def blocked_urls() -> list[str]:
    """URLs the guard must refuse."""
    return [
        "ftp://example.com",
        "http://localhost/",
        "http://127.0.0.1/",
        "http://10.1.2.3/",
        "http://172.20.0.5/",
        "http://192.168.1.1/",
        "http://169.254.1.1/",
        "http://[::1]/",
        "http://[fe80::1]/",
        "http://[fc00::1]/",
    ]


@pytest.fixture
def allowed_urls() -> list[str]:
    """URLs the guard must accept."""
    return [
        "https://example.com/path",
        "http://8.8.8.8/",
    ]
