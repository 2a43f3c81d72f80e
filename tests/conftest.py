# =============================================================================
# tests/conftest.py - shared fixtures
# =============================================================================
# - Strips SUBRELAY_* / LOG_LEVEL from the environment for every test
# - Builds httpx.MockTransport upstreams that record the requests they get
# =============================================================================

import base64

import httpx
import pytest

from subrelay.config import ENV_MAPPINGS


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for env_var in ENV_MAPPINGS:
        # setenv first so teardown also removes values a test loads from .env
        monkeypatch.setenv(env_var, "")
        monkeypatch.delenv(env_var)


def encode_subscription(text: str) -> bytes:
    """URL-safe base64 with the trailing padding stripped, like most providers serve it."""
    return base64.urlsafe_b64encode(text.encode('utf-8')).rstrip(b'=')


class RecordingUpstream:
    """Mock upstream: answers every request with a fixed response and keeps the requests."""

    def __init__(self, status_code=200, content=b'', error=None):
        self.status_code = status_code
        self.content = content
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.content)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def upstream():
    return RecordingUpstream(content=encode_subscription("vmess://abc#Node A\nvless://def"))
