"""
Image Relay test configuration

Fixtures:
- image_dir: empty storage directory per test
- upstream: fake remote server (httpx.MockTransport) with configurable routes
- client: FastAPI TestClient wired to both
"""

import sys
from pathlib import Path
from typing import Callable, Dict, Optional

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

# Make the backend directory importable
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

from image_relay.config import RelayConfig
from image_relay.main import create_app


PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"
    b"\x08\x06\x00\x00\x00\x1f\x15\xc4\x89\x00\x00\x00\rIDATx\x9cc\xf8\x0f"
    b"\x00\x00\x01\x01\x00\x05\x18\xd8N\x00\x00\x00\x00IEND\xaeB`\x82"
)


class FakeUpstream:
    """
    Stand-in for remote image hosts.

    Map a URL to a callable returning an httpx.Response; unknown URLs get 404.
    """

    def __init__(self):
        self.routes: Dict[str, Callable[[httpx.Request], httpx.Response]] = {}
        self.requests = []

    def add(self, url: str, status_code: int = 200, content: bytes = b"", headers=None):
        self.routes[url] = lambda request: httpx.Response(
            status_code, content=content, headers=headers or {}
        )

    def add_stream(self, url: str, stream: httpx.AsyncByteStream, headers=None):
        self.routes[url] = lambda request: httpx.Response(200, stream=stream, headers=headers or {})

    def add_error(self, url: str, exc: Exception):
        def raise_error(request):
            raise exc
        self.routes[url] = raise_error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url))
        if route is None:
            return httpx.Response(404, content=b"not here")
        return route(request)


class TrackingStream(httpx.AsyncByteStream):
    """Upstream body that records whether it was closed; optionally fails after its chunks."""

    def __init__(self, chunks, error: Optional[Exception] = None):
        self.chunks = list(chunks)
        self.error = error
        self.closed = False

    async def __aiter__(self):
        for chunk in self.chunks:
            yield chunk
        if self.error is not None:
            raise self.error

    async def aclose(self):
        self.closed = True


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def image_dir(tmp_path):
    path = tmp_path / "images"
    path.mkdir()
    return path


@pytest.fixture
def config(image_dir):
    return RelayConfig(image_dir=image_dir, max_upload_size_mb=1)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest_asyncio.fixture
async def http_client(upstream):
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler), follow_redirects=True)
    yield client
    await client.aclose()


@pytest.fixture
def app(config, http_client):
    return create_app(config, http_client=http_client)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


# ============================================
# Helper Functions
# ============================================

def stored_files(image_dir: Path):
    """Names of finished (non-temporary) files in the storage directory."""
    return sorted(p.name for p in image_dir.iterdir() if not p.name.startswith("."))
