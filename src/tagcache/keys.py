"""Key namespaces, expiration tiers and key construction."""

from enum import Enum, IntEnum

from tagcache.errors import ValidationError

_ESCAPE_MAP = {"\\": "\\\\", ":": "\\:"}


class CachePrefix(str, Enum):
    """Logical domains used as the first segment of every cache key."""

    RESEARCH_PROJECTS = "research_projects"
    TEAMS = "teams"
    TEAM_MEMBERS = "team_members"
    ANALYTICS = "analytics"
    REPORTS = "reports"
    SEARCH_RESULTS = "search_results"
    USER_PREFERENCES = "user_preferences"
    CITATIONS = "citations"
    ACADEMIC_DATABASES = "academic_databases"
    MACHINE_LEARNING = "machine_learning"
    DATA_ANALYSIS = "data_analysis"

    def __str__(self) -> str:
        return self.value


class CacheExpiration(IntEnum):
    """Named TTL tiers, in seconds."""

    SHORT = 60
    MEDIUM = 300
    LONG = 3600
    VERY_LONG = 86400


def cache_key(prefix: CachePrefix | str, *parts: object) -> str:
    """
    Build a namespaced key from a prefix and qualifier parts.

    Colons and backslashes inside parts are escaped, so parts containing
    ":" never collide with a longer key.

    Example:
        cache_key(CachePrefix.TEAMS, "user-1")          # "teams:user-1"
        cache_key(CachePrefix.RESEARCH_PROJECTS, "list") # "research_projects:list"
    """
    if not str(prefix):
        raise ValidationError("Cache key prefix must not be empty")

    def escape(part: str) -> str:
        result = part
        for char, escaped in _ESCAPE_MAP.items():
            result = result.replace(char, escaped)
        return result

    return ":".join([str(prefix), *(escape(str(p)) for p in parts)])


def validate_key(key: str) -> str:
    if not isinstance(key, str) or not key:
        raise ValidationError("Cache key must be a non-empty string")
    return key


def validate_tags(tags: object) -> frozenset[str]:
    """Normalise a tag collection, rejecting empty or non-string tags."""
    if isinstance(tags, str):
        raise ValidationError("Tags must be a collection of strings, not a string")
    result = frozenset(tags)  # type: ignore[arg-type]
    for tag in result:
        if not isinstance(tag, str) or not tag:
            raise ValidationError(f"Invalid tag: {tag!r}")
    return result
