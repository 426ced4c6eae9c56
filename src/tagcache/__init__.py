"""tagcache - tag-indexed expiring cache for Python."""

import logging
from contextlib import suppress

from tagcache.accessor import Cache

# Adapters (async only)
from tagcache.adapters import (
    AsyncMemoryAdapter,
    AsyncStorageAdapter,
    create_adapter,
)
from tagcache.admin import CacheAdmin

# Duration parsing
from tagcache.duration import parse_duration, parse_ttl
from tagcache.errors import CacheError, FetchError, StorageError, ValidationError
from tagcache.keys import CacheExpiration, CachePrefix, cache_key
from tagcache.stats import HitCounter, compute_stats
from tagcache.store import CacheStore, create_store
from tagcache.tag_index import TagIndex

# Core types
from tagcache.types import (
    CacheEntry,
    CacheStats,
    Duration,
    WarmupItem,
    WarmupOptions,
    WarmupResult,
)
from tagcache.warmup import warmup_cache

# Optional adapter imports - only available when dependencies are installed
with suppress(ImportError):
    from tagcache.adapters import AsyncRedisAdapter

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "AsyncMemoryAdapter",
    "AsyncRedisAdapter",
    "AsyncStorageAdapter",
    "Cache",
    "CacheAdmin",
    "CacheEntry",
    "CacheError",
    "CacheExpiration",
    "CachePrefix",
    "CacheStats",
    "CacheStore",
    "Duration",
    "FetchError",
    "HitCounter",
    "StorageError",
    "TagIndex",
    "ValidationError",
    "WarmupItem",
    "WarmupOptions",
    "WarmupResult",
    "cache_key",
    "compute_stats",
    "create_adapter",
    "create_store",
    "parse_duration",
    "parse_ttl",
    "warmup_cache",
]
