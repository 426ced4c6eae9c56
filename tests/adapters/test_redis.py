"""Integration tests for the Redis adapter using testcontainers."""

import pytest

# Skip all tests if redis or testcontainers are not installed
pytest.importorskip("redis")
pytest.importorskip("testcontainers.redis")

import time

import redis.asyncio
from testcontainers.redis import RedisContainer

from tagcache import CacheEntry, create_store
from tagcache.adapters.redis import AsyncRedisAdapter


@pytest.fixture(scope="module")
def redis_container():
    """Start a Redis container for the test module."""
    try:
        with RedisContainer() as container:
            yield container
    except Exception as e:  # Docker not available
        pytest.skip(f"Redis container unavailable: {e}")


@pytest.fixture
async def redis_adapter(redis_container):
    """Create an AsyncRedisAdapter with a test namespace, flushed afterwards."""
    client = redis.asyncio.Redis(
        host=redis_container.get_container_host_ip(),
        port=int(redis_container.get_exposed_port(6379)),
        decode_responses=False,
    )
    adapter = AsyncRedisAdapter(client, namespace="test")
    yield adapter
    await client.flushdb()
    await client.aclose()


def far_future_entry(key: str, tags: tuple[str, ...] = ()) -> CacheEntry[object]:
    now = int(time.time() * 1000)
    return CacheEntry(
        key=key,
        value={"id": key},
        tags=frozenset(tags),
        created_at=now,
        expires_at=now + 3_600_000,
        size_bytes=12,
    )


class TestAsyncRedisAdapter:
    """Integration tests for AsyncRedisAdapter."""

    async def test_get_nonexistent_returns_none(
        self, redis_adapter: AsyncRedisAdapter
    ) -> None:
        assert await redis_adapter.get("nonexistent", now=int(time.time() * 1000)) is None

    async def test_set_get_counts_access(
        self, redis_adapter: AsyncRedisAdapter
    ) -> None:
        await redis_adapter.set(far_future_entry("k1", ("a",)))
        now = int(time.time() * 1000)
        first = await redis_adapter.get("k1", now=now)
        second = await redis_adapter.get("k1", now=now)
        assert first is not None and second is not None
        assert first.value == {"id": "k1"}
        assert (first.access_count, second.access_count) == (1, 2)

    async def test_overwrite_reindexes_tags(
        self, redis_adapter: AsyncRedisAdapter
    ) -> None:
        await redis_adapter.set(far_future_entry("k1", ("a",)))
        await redis_adapter.set(far_future_entry("k1", ("b",)))
        assert await redis_adapter.keys_for_tag("a") == set()
        assert await redis_adapter.keys_for_tag("b") == {"k1"}

    async def test_delete_cleans_index(self, redis_adapter: AsyncRedisAdapter) -> None:
        await redis_adapter.set(far_future_entry("k1", ("a",)))
        assert await redis_adapter.delete("k1") is True
        assert await redis_adapter.delete("k1") is False
        assert await redis_adapter.keys_for_tag("a") == set()
        assert await redis_adapter.keys() == []

    async def test_keys_pattern_and_entries(
        self, redis_adapter: AsyncRedisAdapter
    ) -> None:
        await redis_adapter.set(far_future_entry("teams:1"))
        await redis_adapter.set(far_future_entry("analytics:summary"))
        assert await redis_adapter.keys("teams:*") == ["teams:1"]
        assert {e.key for e in await redis_adapter.entries()} == {
            "teams:1",
            "analytics:summary",
        }

    async def test_purge_expired(self, redis_adapter: AsyncRedisAdapter) -> None:
        entry = far_future_entry("k1", ("a",))
        await redis_adapter.set(entry)
        assert await redis_adapter.purge_expired(entry.expires_at + 1) == 1
        assert await redis_adapter.keys_for_tag("a") == set()

    async def test_clear(self, redis_adapter: AsyncRedisAdapter) -> None:
        await redis_adapter.set(far_future_entry("k1", ("a",)))
        await redis_adapter.clear()
        assert await redis_adapter.entries() == []
        assert await redis_adapter.keys_for_tag("a") == set()

    async def test_store_invalidation(self, redis_adapter: AsyncRedisAdapter) -> None:
        store = create_store(adapter=redis_adapter)
        await store.set("k1", 1, tags=["a"])
        await store.set("k2", 2, tags=["a", "b"])
        await store.set("k3", 3, tags=["b"])
        assert await store.invalidate_by_tags(["a"]) is True
        assert await store.get("k1") is None
        assert await store.get("k2") is None
        assert await store.get("k3") == 3
