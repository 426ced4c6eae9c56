"""Best-effort cache warmup."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from typing import Any, Union

from tagcache.duration import parse_ttl
from tagcache.errors import FetchError, ValidationError
from tagcache.keys import validate_key, validate_tags
from tagcache.store import CacheStore
from tagcache.types import WarmupItem, WarmupOptions, WarmupResult

logger = logging.getLogger(__name__)

WarmupSpec = Union[
    WarmupItem[Any],
    tuple[str, Callable[[], Awaitable[Any]]],
    Mapping[str, Any],
]


def _to_item(raw: WarmupSpec) -> WarmupItem[Any]:
    """Accept WarmupItem, (key, fetch) pairs, or {"key", "fetch"} mappings."""
    if isinstance(raw, WarmupItem):
        item = raw
    elif isinstance(raw, Mapping):
        item = WarmupItem(key=raw["key"], fetch=raw["fetch"])
    else:
        key, fetch = raw
        item = WarmupItem(key=key, fetch=fetch)
    validate_key(item.key)
    if not callable(item.fetch):
        raise ValidationError(f"Warmup fetch for {item.key!r} is not callable")
    return item


async def warmup_cache(
    store: CacheStore,
    items: Iterable[WarmupSpec],
    options: WarmupOptions | None = None,
) -> WarmupResult:
    """Pre-populate ``store`` by calling each item's fetch function.

    Every item runs in its own task; at most ``options.concurrency`` fetches
    are in flight, and each is cut off after ``options.timeout`` seconds so
    a hung fetch releases its slot. A failing or timed-out fetch is logged and recorded in
    the result as a FetchError; the other items carry on and this function
    does not raise for it.

    Raises:
        ValidationError: Malformed items or options (checked before any
            fetch starts)
    """
    options = options or WarmupOptions()
    ttl = parse_ttl(options.expiration) / 1000
    tags = validate_tags(options.tags)
    if options.concurrency < 1:
        raise ValidationError("Warmup concurrency must be at least 1")
    if options.timeout is None or options.timeout <= 0:
        raise ValidationError("Warmup timeout must be a positive number of seconds")

    queue = [_to_item(raw) for raw in items]
    result = WarmupResult()
    semaphore = asyncio.Semaphore(options.concurrency)

    async def warm(item: WarmupItem[Any]) -> None:
        async with semaphore:
            try:
                if options.skip_existing and await store.contains(item.key):
                    logger.debug("Entry already cached, skipping %s", item.key)
                    result.skipped.append(item.key)
                    return
                async with asyncio.timeout(options.timeout):
                    value = await item.fetch()
                await store.set(item.key, value, ttl, tags=tags)
            except TimeoutError:
                error = FetchError(item.key, f"timed out after {options.timeout}s")
                logger.warning("Failed to warm up cache entry: %s", error)
                result.failed[item.key] = error
            except Exception as e:
                error = FetchError(item.key, f"{type(e).__name__}: {e}")
                error.__cause__ = e
                logger.warning("Failed to warm up cache entry: %s", error)
                result.failed[item.key] = error
            else:
                logger.debug("Cache warmed up: %s", item.key)
                result.warmed.append(item.key)

    logger.info("Starting cache warmup (%d entries)", len(queue))
    async with asyncio.TaskGroup() as group:
        for item in queue:
            group.create_task(warm(item))

    logger.info(
        "Cache warmup completed: %d warmed, %d skipped, %d failed",
        len(result.warmed),
        len(result.skipped),
        len(result.failed),
    )
    return result


__all__ = ["WarmupSpec", "warmup_cache"]
