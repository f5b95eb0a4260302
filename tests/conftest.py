from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from requests_monitor.config import MonitorConfig
from requests_monitor.middleware import RequestsMonitorMiddleware
from requests_monitor.monitor import RequestInfo, RequestMonitor

START = datetime(2024, 3, 5, 14, 30, 0)


class FakeClock:
    """Monotonic nanosecond clock and wall clock that only move when told to."""

    def __init__(self) -> None:
        self.ns = 0
        self.wall = START

    def __call__(self) -> int:
        return self.ns

    def now(self) -> datetime:
        return self.wall

    def advance(self, ms: int) -> None:
        self.ns += ms * 1_000_000
        self.wall += timedelta(milliseconds=ms)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_monitor(clock):
    """Build a RequestMonitor on the fake clock from config keyword overrides."""
    def _make(**overrides) -> RequestMonitor:
        return RequestMonitor(MonitorConfig(**overrides), clock=clock, now=clock.now)
    return _make


def make_request(path: str = "/orders", query_string: str | None = None) -> RequestInfo:
    return RequestInfo(path=path, url=f"http://test{path}", query_string=query_string)


def run_request(monitor: RequestMonitor, clock: FakeClock, duration_ms: int, **kwargs):
    """Intercept one request whose handler takes duration_ms on the fake clock."""
    return monitor.intercept(make_request(**kwargs), lambda: clock.advance(duration_ms))


def build_app(monitor: RequestMonitor, clock: FakeClock | None = None) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestsMonitorMiddleware, monitor=monitor)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/slow/{ms}")
    async def slow(ms: int):
        clock.advance(ms)
        return {"slept": ms}

    @app.get("/boom")
    async def boom():
        clock.advance(500)
        raise RuntimeError("downstream failure")

    return app


@pytest_asyncio.fixture
async def client_for():
    """Factory for an httpx client talking to a monitored test app."""
    clients = []

    async def _client(monitor: RequestMonitor, clock: FakeClock | None = None) -> AsyncClient:
        transport = ASGITransport(app=build_app(monitor, clock))
        c = AsyncClient(transport=transport, base_url="http://test")
        clients.append(c)
        return c

    yield _client
    for c in clients:
        await c.aclose()
