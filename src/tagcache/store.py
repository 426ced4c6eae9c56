"""CacheStore - the authoritative tag-indexed expiring cache.

This module provides the cache operations every other layer builds on:
- get(), set(), delete(), contains(): single-entry access
- get_or_fetch(): cache-aside read with stampede protection and an optional
  stale-while-revalidate grace window
- set_write_through(), set_write_behind(): writes paired with a persist call
- keys_for_tag(), invalidate_by_tags(), remove_by_pattern(): bulk access
- get_stats(), purge_expired(), clear_all(): housekeeping
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Coroutine, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from tagcache.adapters.base import AsyncStorageAdapter
from tagcache.adapters.memory import AsyncMemoryAdapter
from tagcache.codec import value_size
from tagcache.duration import parse_ttl
from tagcache.errors import StorageError
from tagcache.keys import CacheExpiration, validate_key, validate_tags
from tagcache.stats import HitCounter, compute_stats
from tagcache.types import CacheEntry, CacheStats, Duration

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class CacheStore:
    """Async tag-indexed cache over a storage adapter."""

    _adapter: AsyncStorageAdapter
    _default_ttl: int  # ms
    _clock: Callable[[], int] = _now_ms
    _default_grace: int | None = None  # ms
    _counter: HitCounter = field(default_factory=HitCounter)
    _in_flight: dict[str, asyncio.Future[Any]] = field(default_factory=dict)
    _refreshing: set[str] = field(default_factory=set)
    _background: set[asyncio.Task[None]] = field(default_factory=set)

    @property
    def adapter(self) -> AsyncStorageAdapter:
        return self._adapter

    @property
    def counter(self) -> HitCounter:
        return self._counter

    @property
    def default_ttl(self) -> float:
        """Default TTL in seconds."""
        return self._default_ttl / 1000

    async def get(self, key: str) -> Any | None:
        """Return the live value for ``key``, or None on a miss."""
        entry = await self._adapter.get(validate_key(key), now=self._clock())
        if entry is None:
            self._counter.record_miss()
            logger.debug("Cache miss %s", key)
            return None
        self._counter.record_hit()
        logger.debug("Cache hit %s (access %d)", key, entry.access_count)
        return entry.value

    async def set(
        self,
        key: str,
        value: Any,
        ttl: Duration | None = None,
        *,
        tags: Iterable[str] = (),
    ) -> None:
        """Write or overwrite ``key``.

        Args:
            key: Namespaced cache key
            value: JSON-serializable value
            ttl: Seconds or a duration string (default: store default)
            tags: Tags for grouped invalidation

        Raises:
            ValidationError: Empty key or tag, ttl <= 0, non-JSON value
            StorageError: The backing store failed
        """
        ttl_ms = parse_ttl(ttl) if ttl is not None else self._default_ttl
        await self._write(validate_key(key), value, ttl_ms, validate_tags(tags))

    async def delete(self, key: str) -> bool:
        """Delete ``key``; deleting an absent key is not an error."""
        removed = await self._adapter.delete(validate_key(key))
        logger.debug("Cache delete %s (removed=%s)", key, removed)
        return removed

    async def contains(self, key: str) -> bool:
        """Whether ``key`` is live, without counting a hit or miss."""
        entry = await self._adapter.peek(validate_key(key))
        return entry is not None and not entry.is_expired(self._clock())

    async def get_or_fetch(
        self,
        key: str,
        fn: Callable[[], Awaitable[T]],
        ttl: Duration | None = None,
        *,
        tags: Iterable[str] = (),
        grace: Duration | None = None,
    ) -> T:
        """Cache-aside read.

        Returns the cached value on a hit. On a miss calls ``fn``, stores
        the result and returns it. Concurrent callers for the same key share
        one call to ``fn``. If the backing store fails, the error is logged
        and ``fn`` is used directly.

        With a ``grace`` period (or a store default), the entry outlives its
        ttl by that much. A read inside the grace window returns the stale
        value at once and refreshes it in the background.
        """
        validate_key(key)
        ttl_ms = parse_ttl(ttl) if ttl is not None else self._default_ttl
        grace_ms = parse_ttl(grace) if grace is not None else self._default_grace
        tag_set = validate_tags(tags)

        async def fetch() -> T:
            try:
                entry = await self._adapter.get(key, now=self._clock())
            except StorageError:
                logger.warning(
                    "Cache read failed for %s, returning data directly",
                    key,
                    exc_info=True,
                )
                return await fn()

            if entry is not None:
                self._counter.record_hit()
                if entry.is_stale(self._clock()) and key not in self._refreshing:
                    self._refreshing.add(key)
                    self._spawn(self._refresh(key, fn, ttl_ms, tag_set, grace_ms))
                return entry.value  # type: ignore[return-value]

            self._counter.record_miss()
            value = await fn()
            try:
                await self._write(key, value, ttl_ms, tag_set, grace_ms)
            except StorageError:
                logger.warning("Cache write failed for %s", key, exc_info=True)
            return value

        return await self._coalesce(key, fetch)

    async def set_write_through(
        self,
        key: str,
        value: T,
        write: Callable[[T], Awaitable[None]],
        ttl: Duration | None = None,
        *,
        tags: Iterable[str] = (),
    ) -> bool:
        """Persist ``value`` with ``write``, then cache it.

        Nothing is cached when ``write`` fails. Returns False (after
        logging) if either step fails.

        Raises:
            ValidationError: Bad key, tags, ttl or value (before ``write``)
        """
        validate_key(key)
        ttl_ms = parse_ttl(ttl) if ttl is not None else self._default_ttl
        tag_set = validate_tags(tags)
        value_size(value)
        try:
            await write(value)
            await self._write(key, value, ttl_ms, tag_set)
        except Exception:
            logger.exception("Write-through failed for %s", key)
            return False
        return True

    async def set_write_behind(
        self,
        key: str,
        value: T,
        write: Callable[[T], Awaitable[None]],
        ttl: Duration | None = None,
        *,
        tags: Iterable[str] = (),
    ) -> bool:
        """Cache ``value`` now and persist it with ``write`` in the background.

        Returns False (after logging) if the cache write fails, in which
        case ``write`` is not called. A failing ``write`` is logged; the
        cached value stays. ``wait_background()`` waits for pending writes.
        """
        ttl_ms = parse_ttl(ttl) if ttl is not None else self._default_ttl
        tag_set = validate_tags(tags)
        try:
            await self._write(validate_key(key), value, ttl_ms, tag_set)
        except StorageError:
            logger.exception("Write-behind cache write failed for %s", key)
            return False
        self._spawn(self._persist(key, value, write))
        return True

    async def keys_for_tag(self, tag: str) -> set[str]:
        """Live keys currently carrying ``tag``."""
        await self._adapter.purge_expired(self._clock())
        return await self._adapter.keys_for_tag(tag)

    async def invalidate_by_tags(self, tags: Iterable[str]) -> bool:
        """Delete every entry carrying any of ``tags``.

        Unknown tags and an empty list are no-ops. Returns False (after
        logging) if the backing store fails part-way.
        """
        tag_list = list(validate_tags(tags))
        if not tag_list:
            return True
        try:
            removed = 0
            for tag in tag_list:
                keys = await self._adapter.keys_for_tag(tag)
                if keys:
                    removed += await self._adapter.delete_many(keys)
        except StorageError:
            logger.exception("Error invalidating cache by tags %s", tag_list)
            return False
        logger.info("Invalidated %d entries for tags %s", removed, tag_list)
        return True

    async def remove_by_pattern(self, pattern: str) -> bool:
        """Delete every key matching a glob pattern (``*``, ``?``, ``[...]``)."""
        try:
            keys = await self._adapter.keys(pattern)
            removed = await self._adapter.delete_many(keys) if keys else 0
        except StorageError:
            logger.exception("Error removing keys by pattern %r", pattern)
            return False
        logger.info("Removed %d entries matching %r", removed, pattern)
        return True

    async def purge_expired(self) -> int:
        """Reap expired entries now. Returns how many were removed."""
        purged = await self._adapter.purge_expired(self._clock())
        if purged:
            logger.debug("Purged %d expired entries", purged)
        return purged

    async def get_stats(self) -> CacheStats:
        """Snapshot of the live contents and the hit/miss counters."""
        now = self._clock()
        await self._adapter.purge_expired(now)
        entries = await self._adapter.entries()
        return compute_stats(entries, self._counter, now)

    async def clear_all(self) -> bool:
        """Remove every entry and the whole tag index; reset the counters."""
        try:
            await self._adapter.clear()
        except StorageError:
            logger.exception("Error clearing cache")
            return False
        self._counter.reset()
        logger.info("Cache cleared")
        return True

    def reset_counters(self) -> None:
        self._counter.reset()

    async def wait_background(self) -> None:
        """Wait for pending background refreshes and write-behind writes."""
        while self._background:
            await asyncio.gather(*self._background)

    async def disconnect(self) -> None:
        """Finish background work, then disconnect from the storage backend."""
        await self.wait_background()
        await self._adapter.disconnect()

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    async def _write(
        self,
        key: str,
        value: Any,
        ttl_ms: int,
        tags: frozenset[str],
        grace_ms: int | None = None,
    ) -> None:
        now = self._clock()
        entry: CacheEntry[object] = CacheEntry(
            key=key,
            value=value,
            tags=tags,
            created_at=now,
            expires_at=now + ttl_ms + (grace_ms or 0),
            size_bytes=value_size(value),
            stale_at=now + ttl_ms if grace_ms else None,
        )
        await self._adapter.set(entry)
        logger.debug("Cache set %s (ttl=%dms, tags=%s)", key, ttl_ms, sorted(tags))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _refresh(
        self,
        key: str,
        fn: Callable[[], Awaitable[Any]],
        ttl_ms: int,
        tags: frozenset[str],
        grace_ms: int | None,
    ) -> None:
        """Refresh a stale entry in the background."""
        try:
            value = await fn()
            await self._write(key, value, ttl_ms, tags, grace_ms)
        except Exception:
            logger.warning("Background refresh failed for %s", key, exc_info=True)
        else:
            logger.debug("Refreshed stale entry %s", key)
        finally:
            self._refreshing.discard(key)

    async def _persist(
        self,
        key: str,
        value: Any,
        write: Callable[[Any], Awaitable[None]],
    ) -> None:
        try:
            await write(value)
        except Exception:
            logger.exception("Write-behind persist failed for %s", key)

    async def _coalesce(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        """Coalesce concurrent requests for same key (stampede protection)."""
        # No await between lookup and registration, so this is race-free.
        existing = self._in_flight.get(key)
        if existing is not None:
            result: T = await asyncio.shield(existing)
            # Served by the in-flight fetch
            self._counter.record_hit()
            return result

        future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            result = await fetch()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except BaseException as e:
            future.set_exception(e)
            # Mark retrieved: there may be no other waiter.
            future.exception()
            raise
        else:
            future.set_result(result)
            return result
        finally:
            del self._in_flight[key]


def create_store(
    *,
    adapter: AsyncStorageAdapter | None = None,
    default_ttl: Duration = CacheExpiration.MEDIUM,
    default_grace: Duration | None = None,
    clock: Callable[[], int] | None = None,
) -> CacheStore:
    """Create a cache store.

    Args:
        adapter: Storage adapter (default: a fresh AsyncMemoryAdapter)
        default_ttl: TTL used when a write doesn't give one
        default_grace: Stale-while-revalidate window for get_or_fetch
        clock: Returns the current Unix time in ms (default: wall clock)

    Returns:
        CacheStore instance
    """
    return CacheStore(
        _adapter=adapter if adapter is not None else AsyncMemoryAdapter(),
        _default_ttl=parse_ttl(default_ttl),
        _clock=clock or _now_ms,
        _default_grace=parse_ttl(default_grace) if default_grace is not None else None,
    )


__all__ = ["CacheStore", "create_store"]
