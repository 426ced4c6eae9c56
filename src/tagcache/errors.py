"""Exception hierarchy for tagcache."""


class CacheError(Exception):
    """Base class for all cache errors."""


class StorageError(CacheError):
    """The backing store is unreachable or a read/write against it failed."""


class ValidationError(CacheError, ValueError):
    """Malformed input: bad TTL, empty key or tag, non-JSON value."""


class FetchError(CacheError):
    """A warmup fetch function failed or timed out."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key


__all__ = ["CacheError", "FetchError", "StorageError", "ValidationError"]
