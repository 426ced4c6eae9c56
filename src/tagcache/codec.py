"""JSON encoding of values and entries for networked backends."""

from __future__ import annotations

import json
from typing import Any

from tagcache.errors import StorageError, ValidationError
from tagcache.types import CacheEntry


def dump_value(value: Any) -> str:
    """Serialize a value to JSON, rejecting anything JSON can't express."""
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Value is not JSON-serializable: {e}") from e


def value_size(value: Any) -> int:
    """UTF-8 byte length of the serialized value."""
    return len(dump_value(value).encode("utf-8"))


def entry_to_dict(entry: CacheEntry[object]) -> dict[str, Any]:
    return {
        "key": entry.key,
        "value": entry.value,
        "tags": sorted(entry.tags),
        "createdAt": entry.created_at,
        "expiresAt": entry.expires_at,
        "sizeBytes": entry.size_bytes,
        "accessCount": entry.access_count,
        "staleAt": entry.stale_at,
    }


def entry_from_dict(obj: dict[str, Any]) -> CacheEntry[object]:
    try:
        return CacheEntry(
            key=obj["key"],
            value=obj["value"],
            tags=frozenset(obj["tags"]),
            created_at=int(obj["createdAt"]),
            expires_at=int(obj["expiresAt"]),
            size_bytes=int(obj["sizeBytes"]),
            access_count=int(obj.get("accessCount", 0)),
            stale_at=None if obj.get("staleAt") is None else int(obj["staleAt"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise StorageError(f"Malformed cache entry: {e}") from e


def encode_entry(entry: CacheEntry[object]) -> str:
    """Serialize a cache entry to JSON."""
    return json.dumps(entry_to_dict(entry))


def decode_entry(data: bytes | str) -> CacheEntry[object]:
    """Deserialize JSON to a cache entry."""
    if isinstance(data, bytes):
        data = data.decode("utf-8")
    try:
        obj = json.loads(data)
    except ValueError as e:
        raise StorageError(f"Undecodable cache entry: {e}") from e
    if not isinstance(obj, dict):
        raise StorageError("Malformed cache entry: expected an object")
    return entry_from_dict(obj)
