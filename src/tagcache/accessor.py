"""Cache[V] - typed, prefix-scoped access to a CacheStore.

Provides:
- Cache[V]: one accessor per logical domain, keys built as {prefix}:{qualifier}
- .fetch(): cache-aside read through the store's stampede protection
- .invalidate(): drop every key under the prefix
- .store: escape hatch to the underlying CacheStore
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable
from typing import Generic, TypeVar, cast

from tagcache.keys import CacheExpiration, CachePrefix, cache_key, validate_tags
from tagcache.store import CacheStore
from tagcache.types import Duration

V = TypeVar("V")


class Cache(Generic[V]):
    """Typed cache accessor for one key prefix.

    Usage:
        projects: Cache[list[dict]] = Cache(
            store, CachePrefix.RESEARCH_PROJECTS, tags=["research_projects"]
        )
        items = await projects.fetch("list", fn=load_projects)
        await projects.delete("list")
    """

    def __init__(
        self,
        store: CacheStore,
        prefix: CachePrefix | str,
        *,
        default_ttl: Duration = CacheExpiration.MEDIUM,
        tags: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._prefix = str(prefix)
        self._default_ttl = default_ttl
        self._tags = validate_tags(tags)

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def store(self) -> CacheStore:
        """Escape hatch to the raw store."""
        return self._store

    def key(self, *parts: object) -> str:
        """Full cache key for a qualifier."""
        return cache_key(self._prefix, *parts)

    async def get(self, *parts: object) -> V | None:
        return cast("V | None", await self._store.get(self.key(*parts)))

    async def set(
        self,
        *parts: object,
        value: V,
        ttl: Duration | None = None,
        tags: Iterable[str] = (),
    ) -> None:
        await self._store.set(
            self.key(*parts),
            value,
            ttl if ttl is not None else self._default_ttl,
            tags=self._merge_tags(tags),
        )

    async def delete(self, *parts: object) -> bool:
        return await self._store.delete(self.key(*parts))

    async def fetch(
        self,
        *parts: object,
        fn: Callable[[], Awaitable[V]],
        ttl: Duration | None = None,
        tags: Iterable[str] = (),
        grace: Duration | None = None,
    ) -> V:
        """Return the cached value, calling ``fn`` and caching on a miss."""
        return await self._store.get_or_fetch(
            self.key(*parts),
            fn,
            ttl if ttl is not None else self._default_ttl,
            tags=self._merge_tags(tags),
            grace=grace,
        )

    async def invalidate(self) -> bool:
        """Remove every entry under this prefix."""
        return await self._store.remove_by_pattern(f"{self._prefix}:*")

    def _merge_tags(self, tags: Iterable[str]) -> frozenset[str]:
        return self._tags | validate_tags(tags)
