"""Shared pytest fixtures."""

import pytest

from tagcache import AsyncMemoryAdapter, CacheAdmin, CacheStore, create_store


class FakeClock:
    """Controllable millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += int(seconds * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def async_adapter() -> AsyncMemoryAdapter:
    """Create a fresh AsyncMemoryAdapter for each test."""
    return AsyncMemoryAdapter()


@pytest.fixture
def store(async_adapter: AsyncMemoryAdapter, clock: FakeClock) -> CacheStore:
    """Create a store over the memory adapter, driven by the fake clock."""
    return create_store(adapter=async_adapter, default_ttl="5m", clock=clock)


@pytest.fixture
def admin(store: CacheStore) -> CacheAdmin:
    return CacheAdmin(store)
