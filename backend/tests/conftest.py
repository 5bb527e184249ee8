"""Pytest fixtures shared by the token lifecycle test-suite.

Every test gets a fresh :class:`fakeredis.FakeRedis` and a controllable clock so
expiry can be exercised without sleeping.
"""

from __future__ import annotations

import time
from collections.abc import Callable

import fakeredis
import pytest

from tokenkeeper.core.config import TestingConfig
from tokenkeeper.factory import create_app
from tokenkeeper.infra.redis import RedisTokenStore, RedisUserIndex
from tokenkeeper.services._shared.ports import InMemoryTokenStore, InMemoryUserIndex
from tokenkeeper.services.tokens import TokenLifecycleConfig, UserTokenService


class FakeClock:
    """Manually advanced wall clock (epoch seconds)."""

    def __init__(self, start: float | None = None) -> None:
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Stand-in for :func:`time.sleep` that only records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def clock() -> FakeClock:
    """Provide a clock starting at the real current time."""
    return FakeClock()


@pytest.fixture
def no_sleep() -> RecordingSleep:
    """Provide a sleep function that never blocks."""
    return RecordingSleep()


@pytest.fixture
def fake_redis():
    """Provide a fresh FakeRedis instance for each test."""
    r = fakeredis.FakeRedis()
    r.flushall()
    return r


@pytest.fixture
def make_memory_service(clock, no_sleep) -> Callable[..., UserTokenService]:
    """Factory for a service over the in-memory adapters sharing ``clock``."""

    def _make(**kwargs) -> UserTokenService:
        kwargs.setdefault("token_store", InMemoryTokenStore(clock=clock))
        kwargs.setdefault("user_index", InMemoryUserIndex())
        kwargs.setdefault("cfg", TokenLifecycleConfig())
        return UserTokenService(clock=clock, sleep=no_sleep, **kwargs)

    return _make


@pytest.fixture
def memory_service(make_memory_service) -> UserTokenService:
    """Provide a service over the in-memory adapters."""
    return make_memory_service()


@pytest.fixture
def redis_service(fake_redis, clock, no_sleep) -> UserTokenService:
    """Provide a service over the Redis adapters backed by FakeRedis."""
    return UserTokenService(
        token_store=RedisTokenStore(r=fake_redis),
        user_index=RedisUserIndex(r=fake_redis),
        clock=clock,
        sleep=no_sleep,
    )


@pytest.fixture(params=["memory", "redis"])
def service(request, memory_service, redis_service) -> UserTokenService:
    """Run a test once per storage backend."""
    return memory_service if request.param == "memory" else redis_service


@pytest.fixture
def app(fake_redis):
    """Create a Flask application wired to FakeRedis."""
    application = create_app(TestingConfig, redis_client=fake_redis)
    application.logger.setLevel("WARNING")
    return application
