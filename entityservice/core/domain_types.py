"""Domain Types — rich types that replace bare primitives across the engine.

Invariants:
    - EntityKey and QueryKey are always str (ints are stringified before use)
    - Payload is the decoded JSON object exchanged with the server
    - All valid states and policies encoded as Enums, no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: values match the wire/config spelling ("previousQuery", "snake")
      so settings and request options parse without custom converters
"""

from enum import Enum
from typing import Any, NewType


# ─── Identity Types ──────────────────────────────────────────────

EntityKey = NewType("EntityKey", str)
QueryKey = NewType("QueryKey", str)


# ─── Value Types ─────────────────────────────────────────────────

Payload = dict[str, Any]

DEFAULT_CACHE_TTL_MS = 86_400_000  # 24 hours


# ─── Enums ───────────────────────────────────────────────────────

class KeyCase(str, Enum):
    """Naming convention used to derive a wire key from an entity field."""
    CAMEL = "camel"
    SNAKE = "snake"


class CacheHitPolicy(str, Enum):
    """What a cached query returns: the whole cache, or only its own results."""
    ALL = "all"
    PREVIOUS_QUERY = "previousQuery"


class GetCacheBehaviour(str, Enum):
    """How a single-entity get is served from the cache."""
    CACHE_ENTITY = "cacheEntity"
    CACHE_QUERY = "cacheQuery"


class ProcessState(str, Enum):
    """Mapping process lifecycle."""
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETE = "complete"
    FAILED = "failed"


class RuleKind(str, Enum):
    """Inbound behaviour of a field rule, exactly one per field."""
    COPY = "copy"
    TRANSFORM = "transform"
    OPERATION = "operation"
    ASYNC_OPERATION = "async_operation"
