"""Core types for the tagcache library."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import (
    TYPE_CHECKING,
    Generic,
    TypeVar,
)

from tagcache.keys import CacheExpiration

if TYPE_CHECKING:
    from tagcache.errors import FetchError

T = TypeVar("T")

# Duration type alias
Duration = str | int | float  # "30s", "5m", "2h", "1d" or seconds


@dataclass(frozen=True, slots=True)
class CacheEntry(Generic[T]):
    """A cached value with its tags and bookkeeping."""

    key: str
    value: T
    tags: frozenset[str]
    created_at: int  # Unix timestamp ms
    expires_at: int  # created_at + ttl, plus grace when set
    size_bytes: int
    access_count: int = 0
    stale_at: int | None = None  # start of the grace window, if any

    def is_expired(self, now: int) -> bool:
        """True once ``now`` is strictly past the expiration instant."""
        return now > self.expires_at

    def is_stale(self, now: int) -> bool:
        """True inside the grace window: still live, due for a refresh."""
        return self.stale_at is not None and now > self.stale_at


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Point-in-time summary of the live cache contents."""

    total_entries: int = 0
    total_size: int = 0
    hit_rate: float = 0.0
    avg_access_count: float = 0.0
    tag_stats: dict[str, int] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0


@dataclass(frozen=True, slots=True)
class WarmupItem(Generic[T]):
    """A key to pre-populate and the coroutine function producing its value."""

    key: str
    fetch: Callable[[], Awaitable[T]]


@dataclass(frozen=True, slots=True)
class WarmupOptions:
    """How warmed entries are stored and how the warmup run is bounded."""

    expiration: Duration = CacheExpiration.MEDIUM
    tags: tuple[str, ...] = ()
    timeout: float = 30.0  # per item, seconds
    concurrency: int = 5
    skip_existing: bool = False


@dataclass(slots=True)
class WarmupResult:
    """Outcome of a warmup run, one bucket per item outcome."""

    warmed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: "dict[str, FetchError]" = field(default_factory=dict)

    @property
    def attempted(self) -> int:
        return len(self.warmed) + len(self.skipped) + len(self.failed)
