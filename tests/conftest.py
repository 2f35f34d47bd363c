"""
Shared fixtures.

Every test that touches persistence gets its own SQLite file under tmp_path,
so tests never share rows. HTTP tests run the real application through
httpx's ASGITransport with the store and rate limiter swapped in via
dependency overrides.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from lnkz.core.rate_limit import FixedWindowRateLimiter, limiter
from lnkz.core.runtime import get_link_store, get_rate_limiter
from lnkz.db.link_store import SQLLinkStore
from lnkz.db.session import build_engine, build_session_maker, init_models
from lnkz.main import app

TEST_BASE_URL = "http://test"


class FakeClock:
    """Manually advanced replacement for time.monotonic."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def rate_limiter(clock):
    return FixedWindowRateLimiter(window_seconds=60, max_requests=5, clock=clock)


@pytest.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'links.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return build_session_maker(engine)


@pytest.fixture
def store(session_maker):
    return SQLLinkStore(session_maker, timeout=5.0)


@pytest.fixture
async def client(store, rate_limiter):
    app.dependency_overrides[get_link_store] = lambda: store
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    limiter.reset()
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url=TEST_BASE_URL
    ) as async_client:
        yield async_client
    app.dependency_overrides.clear()
