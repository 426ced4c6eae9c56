"""Duration parsing utilities."""

import math
import re

from tagcache.errors import ValidationError
from tagcache.types import Duration

_DURATION_PATTERN = re.compile(r"^(\d+)(ms|s|m|h|d)$")
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


def parse_duration(duration: Duration) -> int:
    """Parse a duration to milliseconds.

    Numbers are seconds (so ``CacheExpiration`` members pass straight
    through); strings use a unit suffix: ``"500ms"``, ``"30s"``, ``"5m"``,
    ``"2h"``, ``"1d"``.
    """
    if isinstance(duration, bool):
        raise ValidationError(f"Invalid duration: {duration!r}")
    if isinstance(duration, (int, float)):
        if not math.isfinite(duration):
            raise ValidationError(f"Invalid duration: {duration!r}")
        ms = int(duration * 1000)
        # Positive sub-millisecond values round up to the smallest unit
        return 1 if ms == 0 and duration > 0 else ms

    match = _DURATION_PATTERN.match(duration)
    if not match:
        raise ValidationError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return int(value) * _UNITS[unit]


def parse_ttl(ttl: Duration) -> int:
    """Parse a TTL to milliseconds, rejecting non-positive values."""
    ttl_ms = parse_duration(ttl)
    if ttl_ms <= 0:
        raise ValidationError(f"TTL must be positive, got {ttl!r}")
    return ttl_ms
