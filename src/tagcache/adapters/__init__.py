"""Storage adapters for tagcache (async only)."""

from contextlib import suppress

from tagcache.adapters.base import AsyncStorageAdapter
from tagcache.adapters.memory import AsyncMemoryAdapter

# Optional adapters - only available when dependencies are installed
with suppress(ImportError):
    from tagcache.adapters.redis import AsyncRedisAdapter

__all__ = [
    "AsyncMemoryAdapter",
    "AsyncRedisAdapter",
    "AsyncStorageAdapter",
    "create_adapter",
]


def create_adapter(url: str = "memory://", **options: object) -> AsyncStorageAdapter:
    """Instantiate a storage adapter from a URL.

    Args:
        url: ``memory://`` or a ``redis://`` / ``rediss://`` connection URL.
        options: Passed to the adapter (``max_items`` for memory,
            ``namespace`` for Redis).

    Returns:
        Configured adapter.
    """
    if url.startswith("memory://"):
        return AsyncMemoryAdapter(**options)  # type: ignore[arg-type]

    if url.startswith(("redis://", "rediss://", "unix://")):
        try:
            import redis.asyncio
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install 'tagcache[redis]'"
            ) from e
        from tagcache.adapters.redis import AsyncRedisAdapter

        client = redis.asyncio.Redis.from_url(url)
        return AsyncRedisAdapter(client, **options)  # type: ignore[arg-type]

    raise ValueError(f"Unsupported cache backend URL: {url!r}")
