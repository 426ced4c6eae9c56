"""Secondary index from tag to the keys currently carrying it."""

from collections.abc import Iterable, Iterator


class TagIndex:
    """Tag -> set of cache keys.

    Buckets are created on first use and dropped as soon as they become
    empty, so ``tags()`` only ever lists tags with at least one key.
    Not synchronised: owners mutate it inside their own critical section,
    together with the entry map it mirrors.
    """

    __slots__ = ("_buckets",)

    def __init__(self) -> None:
        self._buckets: dict[str, set[str]] = {}

    def add_key_to_tags(self, key: str, tags: Iterable[str]) -> None:
        for tag in tags:
            self._buckets.setdefault(tag, set()).add(key)

    def remove_key_from_tags(self, key: str, tags: Iterable[str]) -> None:
        for tag in tags:
            bucket = self._buckets.get(tag)
            if bucket is None:
                continue
            bucket.discard(key)
            if not bucket:
                del self._buckets[tag]

    def retag(
        self, key: str, old_tags: Iterable[str], new_tags: Iterable[str]
    ) -> None:
        """Move ``key`` from ``old_tags`` to ``new_tags`` (overwrite)."""
        old, new = set(old_tags), set(new_tags)
        self.remove_key_from_tags(key, old - new)
        self.add_key_to_tags(key, new - old)

    def keys_for_tag(self, tag: str) -> set[str]:
        """Keys under ``tag``; a copy, empty for unknown tags."""
        return set(self._buckets.get(tag, ()))

    def tags(self) -> list[str]:
        return list(self._buckets)

    def clear(self) -> None:
        self._buckets.clear()

    def __contains__(self, tag: object) -> bool:
        return tag in self._buckets

    def __len__(self) -> int:
        return len(self._buckets)

    def __iter__(self) -> Iterator[str]:
        return iter(self._buckets)
