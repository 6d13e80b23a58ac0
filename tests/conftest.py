"""
Shared fixtures and mock transports for the client tests.
"""

import json
from typing import Callable, Iterable

import httpx
import pytest

from oramacore_client import Dispatcher, PrivateKey, StaticKey

READER_URL = "https://reader.test"
WRITER_URL = "https://writer.test"
AUTH_URL = "https://auth.test/api/user/jwt"


class RecordingStream(httpx.AsyncByteStream):
    """Async body that yields fixed chunks and records whether it was closed."""

    def __init__(self, chunks: Iterable[bytes], fail_with: Exception | None = None):
        self.chunks = list(chunks)
        self.fail_with = fail_with
        self.closed = False
        self.yielded = 0

    async def __aiter__(self):
        for chunk in self.chunks:
            self.yielded += 1
            yield chunk
        if self.fail_with is not None:
            raise self.fail_with

    async def aclose(self) -> None:
        self.closed = True


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def body_of(request: httpx.Request):
    """Decode a request's JSON body."""
    return json.loads(request.content) if request.content else None


def make_dispatcher(
    handler: Callable[[httpx.Request], httpx.Response],
    credential,
    **kwargs,
) -> Dispatcher:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return Dispatcher(credential, http=http, **kwargs)


@pytest.fixture
def static_key():
    """Static key with both endpoints configured."""
    return StaticKey("sk_abc", reader_url=READER_URL, writer_url=WRITER_URL)


@pytest.fixture
def private_key():
    """Private key with both endpoints configured."""
    return PrivateKey(
        private_api_key="p_xyz",
        collection_id="col-1",
        auth_jwt_url=AUTH_URL,
        reader_url=READER_URL,
        writer_url=WRITER_URL,
    )


@pytest.fixture
def clock():
    return FakeClock()
