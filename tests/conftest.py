"""Pytest configuration for upstreamcache tests."""

from datetime import datetime, timedelta, timezone

import pytest

from upstreamcache.core.entities.cache_config import CacheConfig
from upstreamcache.infrastructure.backends.memory import InMemoryHotStore
from upstreamcache.infrastructure.durable.memory import InMemoryDurableStore
from upstreamcache.infrastructure.key_builders.default import DefaultKeyBuilder

START = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, start: datetime = START) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeTimer:
    """Settable monotonic timer in seconds."""

    def __init__(self, start: float = 1000.0) -> None:
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Create a UTC clock frozen at a fixed instant."""
    return FakeClock()


@pytest.fixture
def timer() -> FakeTimer:
    """Create a monotonic timer for hot-store expiry."""
    return FakeTimer()


@pytest.fixture
def config() -> CacheConfig:
    """Create a default configuration."""
    return CacheConfig()


@pytest.fixture
def keys() -> DefaultKeyBuilder:
    """Create the default key builder."""
    return DefaultKeyBuilder()


@pytest.fixture
def hot(timer: FakeTimer) -> InMemoryHotStore:
    """Create an in-memory hot store driven by the fake timer."""
    return InMemoryHotStore(maxsize=1000, timer=timer)


@pytest.fixture
def durable() -> InMemoryDurableStore:
    """Create an in-memory durable store."""
    return InMemoryDurableStore()
