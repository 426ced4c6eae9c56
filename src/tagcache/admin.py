"""Administration facade for operator tooling and monitoring views."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from tagcache.keys import CacheExpiration, CachePrefix, validate_tags
from tagcache.store import CacheStore
from tagcache.types import CacheStats, WarmupOptions, WarmupResult
from tagcache.warmup import WarmupSpec, warmup_cache

logger = logging.getLogger(__name__)


class CacheAdmin:
    """The operations a monitoring UI may call against a CacheStore.

    Every method is a logged pass-through; error handling lives in the
    store and the warmup orchestrator.
    """

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    async def get_cache_stats(self) -> CacheStats:
        try:
            stats = await self._store.get_stats()
        except Exception:
            logger.exception("Error fetching cache stats")
            raise
        logger.info(
            "Cache stats: %d entries, %d bytes, hit rate %.2f",
            stats.total_entries,
            stats.total_size,
            stats.hit_rate,
        )
        return stats

    async def clear_all_cache(self) -> bool:
        logger.info("Admin: clearing all cache entries")
        return await self._store.clear_all()

    async def invalidate_by_tags(self, tags: Iterable[str]) -> bool:
        tag_set = validate_tags(tags)
        logger.info("Admin: invalidating tags %s", sorted(tag_set))
        return await self._store.invalidate_by_tags(tag_set)

    async def warmup_cache(
        self,
        items: Iterable[WarmupSpec],
        options: WarmupOptions | None = None,
    ) -> WarmupResult:
        logger.info("Admin: warming up cache")
        return await warmup_cache(self._store, items, options)

    @staticmethod
    def expiration_tiers() -> dict[str, int]:
        """Configured TTL tiers by name, in seconds (read-only)."""
        return {tier.name: int(tier) for tier in CacheExpiration}

    @staticmethod
    def prefixes() -> dict[str, str]:
        return {prefix.name: prefix.value for prefix in CachePrefix}


__all__ = ["CacheAdmin"]
