"""Base adapter protocol for storage backends."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from tagcache.types import CacheEntry


@runtime_checkable
class AsyncStorageAdapter(Protocol):
    """Async storage adapter interface.

    An adapter owns both the entries and the tag index and must update
    them together: after any call returns, a key is listed under a tag
    exactly when the stored entry carries that tag.
    """

    async def get(self, key: str, *, now: int) -> CacheEntry[object] | None:
        """Read a live entry, counting the access.

        Returns the entry with ``access_count`` already incremented, or
        None when the key is absent or expired at ``now``. Expired
        entries are removed.
        """
        ...

    async def peek(self, key: str) -> CacheEntry[object] | None:
        """Read an entry without side effects, expired or not."""
        ...

    async def set(self, entry: CacheEntry[object]) -> None:
        """Store or overwrite an entry and re-index its tags."""
        ...

    async def delete(self, key: str) -> bool:
        """Delete an entry. Returns whether anything was removed."""
        ...

    async def delete_many(self, keys: Iterable[str]) -> int:
        """Delete several entries. Returns how many were removed."""
        ...

    async def keys_for_tag(self, tag: str) -> set[str]:
        """Keys currently indexed under a tag."""
        ...

    async def keys(self, pattern: str | None = None) -> list[str]:
        """All stored keys, optionally filtered by a glob pattern."""
        ...

    async def entries(self) -> list[CacheEntry[object]]:
        """Snapshot of every stored entry, expired ones included."""
        ...

    async def purge_expired(self, now: int) -> int:
        """Remove entries expired at ``now``. Returns how many."""
        ...

    async def clear(self) -> None:
        """Remove every entry and the whole tag index."""
        ...

    async def disconnect(self) -> None:
        """Disconnect from the storage backend."""
        ...
