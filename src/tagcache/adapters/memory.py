"""In-memory storage adapter (async only)."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections import OrderedDict
from collections.abc import Iterable
from fnmatch import fnmatchcase

from tagcache.tag_index import TagIndex
from tagcache.types import CacheEntry

logger = logging.getLogger(__name__)


class AsyncMemoryAdapter:
    """Async in-memory storage adapter with optional LRU eviction.

    Entries and the tag index are mutated together under one lock.
    """

    def __init__(self, max_items: int | None = None) -> None:
        if max_items is not None and max_items <= 0:
            raise ValueError("max_items must be positive")
        self._cache: OrderedDict[str, CacheEntry[object]] = OrderedDict()
        self._index = TagIndex()
        self._max_items = max_items
        self._lock = asyncio.Lock()

    async def get(self, key: str, *, now: int) -> CacheEntry[object] | None:
        """Read a live entry and count the access."""
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if entry.is_expired(now):
                self._remove(key)
                return None
            entry = dataclasses.replace(entry, access_count=entry.access_count + 1)
            self._cache[key] = entry
            self._cache.move_to_end(key)  # LRU touch
            return entry

    async def peek(self, key: str) -> CacheEntry[object] | None:
        async with self._lock:
            return self._cache.get(key)

    async def set(self, entry: CacheEntry[object]) -> None:
        """Store a cache entry and re-index its tags."""
        async with self._lock:
            previous = self._cache.get(entry.key)
            old_tags = previous.tags if previous is not None else frozenset()
            self._cache[entry.key] = entry
            self._cache.move_to_end(entry.key)
            self._index.retag(entry.key, old_tags, entry.tags)
            if self._max_items and len(self._cache) > self._max_items:
                evicted = next(iter(self._cache))
                self._remove(evicted)
                logger.debug("Evicted least recently used key %s", evicted)

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._remove(key)

    async def delete_many(self, keys: Iterable[str]) -> int:
        async with self._lock:
            return sum(1 for key in list(keys) if self._remove(key))

    async def keys_for_tag(self, tag: str) -> set[str]:
        async with self._lock:
            return self._index.keys_for_tag(tag)

    async def keys(self, pattern: str | None = None) -> list[str]:
        async with self._lock:
            if pattern is None:
                return list(self._cache)
            return [key for key in self._cache if fnmatchcase(key, pattern)]

    async def entries(self) -> list[CacheEntry[object]]:
        async with self._lock:
            return list(self._cache.values())

    async def purge_expired(self, now: int) -> int:
        async with self._lock:
            expired = [k for k, e in self._cache.items() if e.is_expired(now)]
            for key in expired:
                self._remove(key)
            return len(expired)

    async def clear(self) -> None:
        """Clear all cached entries and the tag index."""
        async with self._lock:
            self._cache.clear()
            self._index.clear()

    async def disconnect(self) -> None:
        """Disconnect from the storage backend (no-op for memory)."""
        pass

    def _remove(self, key: str) -> bool:
        # Caller holds the lock.
        entry = self._cache.pop(key, None)
        if entry is None:
            return False
        self._index.remove_key_from_tags(key, entry.tags)
        return True
