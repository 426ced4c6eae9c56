"""Hit/miss bookkeeping and statistics aggregation."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass

from tagcache.types import CacheEntry, CacheStats


@dataclass
class HitCounter:
    """Cumulative hit and miss counts since creation or the last reset."""

    hits: int = 0
    misses: int = 0

    def record_hit(self) -> None:
        self.hits += 1

    def record_miss(self) -> None:
        self.misses += 1

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Hits over all lookups; 0.0 before any lookup."""
        if self.total == 0:
            return 0.0
        return self.hits / self.total

    def reset(self) -> None:
        self.hits = 0
        self.misses = 0


def compute_stats(
    entries: Iterable[CacheEntry[object]],
    counter: HitCounter,
    now: int,
) -> CacheStats:
    """Aggregate a snapshot over the entries that are live at ``now``.

    Expired entries are skipped whether or not they have been reaped yet.
    """
    total_entries = 0
    total_size = 0
    total_access = 0
    tag_stats: Counter[str] = Counter()

    for entry in entries:
        if entry.is_expired(now):
            continue
        total_entries += 1
        total_size += entry.size_bytes
        total_access += entry.access_count
        tag_stats.update(entry.tags)

    return CacheStats(
        total_entries=total_entries,
        total_size=total_size,
        hit_rate=counter.hit_rate,
        avg_access_count=total_access / total_entries if total_entries else 0.0,
        tag_stats=dict(tag_stats),
        hits=counter.hits,
        misses=counter.misses,
    )


__all__ = ["HitCounter", "compute_stats"]
