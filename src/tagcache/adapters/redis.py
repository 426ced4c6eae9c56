"""Redis storage adapter.

Layout under the adapter namespace:

- ``{ns}:entry:{key}``  JSON entry, expiring natively just after ``expires_at``
- ``{ns}:tagsof:{key}`` set of the entry's tags (survives native expiry so
  the tag index can still be cleaned up)
- ``{ns}:tag:{tag}``    set of keys carrying the tag
- ``{ns}:keys``         set of every key written
- ``{ns}:access``       hash of key -> access count

Writes and deletes run as one WATCH/MULTI transaction over the
``tagsof`` set. Keys whose entry Redis has already expired are dropped from
the tag and key sets the next time a read path encounters them.
"""

from __future__ import annotations

import dataclasses
import functools
import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, ParamSpec, TypeVar

from redis.exceptions import RedisError, WatchError

from tagcache.codec import decode_entry, encode_entry
from tagcache.errors import StorageError
from tagcache.types import CacheEntry

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def _storage_errors(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Translate Redis client failures into StorageError."""

    @functools.wraps(fn)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await fn(*args, **kwargs)
        except RedisError as e:
            raise StorageError(f"Redis {fn.__name__} failed: {e}") from e

    return wrapper


def _text(data: bytes | str) -> str:
    return data.decode("utf-8") if isinstance(data, bytes) else data


class AsyncRedisAdapter:
    """Async Redis storage adapter."""

    def __init__(
        self,
        client: Any,  # redis.asyncio.Redis
        *,
        namespace: str = "tagcache",
    ) -> None:
        self._client = client
        self._namespace = namespace

    def _entry_key(self, key: str) -> str:
        return f"{self._namespace}:entry:{key}"

    def _tags_of_key(self, key: str) -> str:
        return f"{self._namespace}:tagsof:{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self._namespace}:tag:{tag}"

    @property
    def _registry_key(self) -> str:
        return f"{self._namespace}:keys"

    @property
    def _access_key(self) -> str:
        return f"{self._namespace}:access"

    @_storage_errors
    async def get(self, key: str, *, now: int) -> CacheEntry[object] | None:
        """Read a live entry and count the access."""
        data = await self._client.get(self._entry_key(key))
        if data is None:
            await self._forget(key)
            return None
        entry = decode_entry(data)
        if entry.is_expired(now):
            await self._forget(key)
            return None
        count = await self._client.hincrby(self._access_key, key, 1)
        return dataclasses.replace(entry, access_count=int(count))

    @_storage_errors
    async def peek(self, key: str) -> CacheEntry[object] | None:
        data = await self._client.get(self._entry_key(key))
        if data is None:
            return None
        count = await self._client.hget(self._access_key, key)
        entry = decode_entry(data)
        return dataclasses.replace(entry, access_count=int(count or 0))

    @_storage_errors
    async def set(self, entry: CacheEntry[object]) -> None:
        """Store an entry with automatic expiration and re-index its tags."""
        key = entry.key
        tags_of = self._tags_of_key(key)
        async with self._client.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(tags_of)
                    old_tags = {_text(t) for t in await pipe.smembers(tags_of)}
                    pipe.multi()
                    # Redis drops the key once now > expires_at
                    pipe.set(
                        self._entry_key(key),
                        encode_entry(entry),
                        pxat=entry.expires_at + 1,
                    )
                    pipe.delete(tags_of)
                    if entry.tags:
                        pipe.sadd(tags_of, *entry.tags)
                    for tag in old_tags - entry.tags:
                        pipe.srem(self._tag_key(tag), key)
                    for tag in entry.tags:
                        pipe.sadd(self._tag_key(tag), key)
                    pipe.sadd(self._registry_key, key)
                    pipe.hset(self._access_key, key, 0)
                    await pipe.execute()
                    return
                except WatchError:
                    logger.debug("Concurrent write on %s, retrying", key)
                    continue

    @_storage_errors
    async def delete(self, key: str) -> bool:
        return await self._forget(key)

    @_storage_errors
    async def delete_many(self, keys: Iterable[str]) -> int:
        removed = 0
        for key in list(keys):
            if await self._forget(key):
                removed += 1
        return removed

    @_storage_errors
    async def keys_for_tag(self, tag: str) -> set[str]:
        members = [_text(k) for k in await self._client.smembers(self._tag_key(tag))]
        return set(await self._live_only(members))

    @_storage_errors
    async def keys(self, pattern: str | None = None) -> list[str]:
        members = [
            _text(k)
            async for k in self._client.sscan_iter(self._registry_key, match=pattern)
        ]
        return await self._live_only(members)

    @_storage_errors
    async def entries(self) -> list[CacheEntry[object]]:
        keys = [_text(k) for k in await self._client.smembers(self._registry_key)]
        if not keys:
            return []
        raw = await self._client.mget([self._entry_key(k) for k in keys])
        counts = await self._client.hmget(self._access_key, keys)
        result: list[CacheEntry[object]] = []
        for key, data, count in zip(keys, raw, counts, strict=True):
            if data is None:
                await self._forget(key)
                continue
            entry = decode_entry(data)
            result.append(dataclasses.replace(entry, access_count=int(count or 0)))
        return result

    @_storage_errors
    async def purge_expired(self, now: int) -> int:
        keys = [_text(k) for k in await self._client.smembers(self._registry_key)]
        if not keys:
            return 0
        raw = await self._client.mget([self._entry_key(k) for k in keys])
        purged = 0
        for key, data in zip(keys, raw, strict=True):
            if data is None or decode_entry(data).is_expired(now):
                await self._forget(key)
                purged += 1
        return purged

    @_storage_errors
    async def clear(self) -> None:
        """Clear every key under the adapter namespace."""
        # Use SCAN to find and delete all namespaced keys
        cursor: int = 0
        pattern = f"{self._namespace}:*"
        while True:
            result = await self._client.scan(cursor, match=pattern, count=100)
            cursor = result[0]
            keys = result[1]
            if keys:
                await self._client.delete(*keys)
            if cursor == 0:
                break

    async def disconnect(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()

    async def _live_only(self, keys: list[str]) -> list[str]:
        """Filter keys to those whose entry still exists, forgetting the rest."""
        live: list[str] = []
        for key in keys:
            if await self._client.exists(self._entry_key(key)):
                live.append(key)
            else:
                await self._forget(key)
        return live

    async def _forget(self, key: str) -> bool:
        """Remove an entry and every index record of it in one transaction."""
        tags_of = self._tags_of_key(key)
        async with self._client.pipeline(transaction=True) as pipe:
            while True:
                try:
                    await pipe.watch(tags_of)
                    tags = [_text(t) for t in await pipe.smembers(tags_of)]
                    pipe.multi()
                    pipe.delete(self._entry_key(key))
                    pipe.delete(tags_of)
                    for tag in tags:
                        pipe.srem(self._tag_key(tag), key)
                    pipe.srem(self._registry_key, key)
                    pipe.hdel(self._access_key, key)
                    results = await pipe.execute()
                    return bool(results[0])
                except WatchError:
                    continue
