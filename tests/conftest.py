# tests/conftest.py
import os

import httpx
import pytest
from fastapi.testclient import TestClient

# Keep the background sweeper out of API tests; sweeping is exercised directly.
os.environ.setdefault("CACHE_SWEEP_INTERVAL_SECONDS", "0")
os.environ.setdefault("CACHE_BACKEND", "memory")

from mining_proxy.main import create_app  # import after env is set
from mining_proxy.services.cache_backends import InProcessLRUCache


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeUpstream:
    """
    Scripted upstream for httpx.MockTransport.
    Each path gets a queue of responses (or exceptions to raise); the last item
    repeats once the queue is down to one. Every request is recorded in `calls`.
    """

    def __init__(self):
        self.calls: list[httpx.Request] = []
        self._scripts: dict[str, list] = {}

    def script(self, path: str, *items) -> None:
        self._scripts.setdefault(path, []).extend(items)

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        queue = self._scripts.get(request.url.path)
        if not queue:
            raise AssertionError(f"unexpected upstream call: {request.url}")
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        # fresh copy per call; a Response object must not be reused across requests
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleeps():
    """Delays requested by the retry loop, in seconds."""
    return []


@pytest.fixture
def fake_sleep(sleeps):
    async def _sleep(seconds: float) -> None:
        sleeps.append(seconds)
    return _sleep


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def cache(clock):
    return InProcessLRUCache(capacity=100, stale_retention_seconds=3600, clock=clock)


@pytest.fixture(scope="function")
def client(cache, upstream, fake_sleep):
    """A FastAPI TestClient wired to the scripted upstream and an isolated cache."""
    app = create_app(
        cache=cache,
        transport=httpx.MockTransport(upstream.handler),
        sleep=fake_sleep,
        sweep_interval_seconds=0,
    )
    with TestClient(app) as c:
        yield c
