"""Shared fixtures for the form fill client test suite.

Settings are read from the environment at import time, so the defaults below
are set before any project module is imported.
"""

from __future__ import annotations

import inspect
import os
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("API_BASE_URL", "http://backend.test/api")

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from core.entities import UploadSource
from repository.manifest_cache_repository import ManifestCacheRepository
from service.backend_client import BackendClient
from service.session_service import FormFillSession

BASE_URL = "http://backend.test/api"
IDENTITY = "user-1"


# ============================================================================
# Key/value store double
# ============================================================================


class InMemoryRedis:
    """The slice of redis.asyncio.Redis the repositories use."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, int] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("store unavailable")

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str) -> str | None:
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: str, ex: int | None = None, nx: bool = False):
        self._check()
        if nx and key in self.data:
            return None
        self.data[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    async def expire(self, key: str, seconds: int) -> bool:
        self._check()
        if key not in self.data:
            return False
        self.expiry[key] = seconds
        return True


# ============================================================================
# Time
# ============================================================================


class FakeClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class ManualTimer:
    def __init__(self, due: float, callback: Callable[[], Any]) -> None:
        self.due = due
        self.callback = callback
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class ManualScheduler:
    """Deterministic scheduler: timers only fire inside `advance()`."""

    def __init__(self) -> None:
        self.now = 0.0
        self.delays: list[float] = []
        self._timers: list[ManualTimer] = []

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self._timers if not t.cancelled]

    def schedule(self, delay: float, callback: Callable[[], Any]) -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback)
        self._timers.append(timer)
        self.delays.append(delay)
        return timer

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [t for t in self.pending if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self._timers.remove(timer)
            self.now = timer.due
            result = timer.callback()
            if inspect.isawaitable(result):
                await result
        self._timers = self.pending
        self.now = target

    async def aclose(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()


# ============================================================================
# Backend double
# ============================================================================


class FakeBackend:
    """
    httpx.MockTransport handler. Responses are queued per (method, path); the
    last queued item is sticky. Items may be a Response, an exception to
    raise, or an async callable taking the request.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Any]] = defaultdict(list)

    def on(self, method: str, path: str, *responses: Any) -> None:
        self._routes[(method, "/api/" + path.lstrip("/"))].extend(responses)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        full = "/api/" + path.lstrip("/")
        return [r for r in self.requests if r.method == method and r.url.path == full]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        await request.aread()
        self.requests.append(request)
        queue = self._routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"detail": "Not Found"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            item = await item(request)
        return item


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def cache(redis: InMemoryRedis, clock: FakeClock) -> ManifestCacheRepository:
    return ManifestCacheRepository(
        ttl_seconds=300, max_age_seconds=86400, max_bytes=4096, redis=redis, clock=clock
    )


@pytest.fixture
def server() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend(server: FakeBackend) -> BackendClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server), base_url=BASE_URL)
    return BackendClient(client=client)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def session(
    cache: ManifestCacheRepository,
    backend: BackendClient,
    scheduler: ManualScheduler,
    clock: FakeClock,
) -> FormFillSession:
    return FormFillSession(
        IDENTITY, cache=cache, backend=backend, scheduler=scheduler, clock=clock
    )


@pytest.fixture
def pdf() -> UploadSource:
    return UploadSource(name="w2.pdf", data=b"%PDF-1.4 test", content_type="application/pdf")
