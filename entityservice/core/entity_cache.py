"""Entity Cache — identity map of entities plus TTL-bound memoized query results.

Invariants:
    - At most one live instance per key; commit() merges into the existing
      instance and never substitutes the reference
    - set(k, e) stores exactly e, so get(k) is e afterwards
    - A query record is live iff now <= expires_at; ran_query() evicts a dead
      record on lookup (lazy expiry, no background sweep)
    - A failed producer leaves both stores untouched
    - Every committed mutation publishes the full contents once; a batch
      publishes once on exit no matter how many entities it touched,
      and not at all when it touched none
    - Only cache methods mutate the two stores

Design Decisions:
    - Injected monotonic clock: TTL tests advance time without sleeping
    - Explicit instance per service (no module-level singleton); the default is
      built at the composition root (entityservice/main.py)
    - Concurrent identical fetches are not coalesced: the last response to land
      wins the merged state
"""

import logging
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from entityservice.core.change_stream import ChangeStream
from entityservice.core.domain_types import (
    DEFAULT_CACHE_TTL_MS, CacheHitPolicy, EntityKey, QueryKey,
)
from entityservice.core.entity import Entity, merge_into
from entityservice.core.request_options import RequestOptions

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


@dataclass
class QueryRecord(Generic[E]):
    """Results of one query signature and the moment they stop being valid."""
    query_key: QueryKey
    expires_at: float
    results: list[E] = field(default_factory=list)

    def has_expired(self, now: float) -> bool:
        return now > self.expires_at


class EntityCache(Generic[E]):
    """Keyed entity store plus query records, announcing changes on a stream."""

    def __init__(
        self,
        ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_ms = ttl_ms
        self._clock = clock
        self._entities: dict[EntityKey, E] = {}
        self._queries: dict[QueryKey, QueryRecord[E]] = {}
        self._batch_depth = 0
        self._dirty = False
        self.changes: ChangeStream[list[E]] = ChangeStream([])

    # --- Keyed store --------------------------------------------------------

    @property
    def size(self) -> int:
        return len(self._entities)

    @property
    def current_values(self) -> list[E]:
        return list(self._entities.values())

    def get(self, key: EntityKey) -> E | None:
        return self._entities.get(key)

    def has(self, key: EntityKey) -> bool:
        return key in self._entities

    def set(self, key: EntityKey, entity: E) -> None:
        self._entities[key] = entity
        self._announce()

    def add(self, entity: E) -> None:
        self.set(entity.key, entity)

    def delete(self, entity: EntityKey | E) -> bool:
        """Remove by key or instance; also drops it from recorded query results."""
        key = entity if isinstance(entity, str) else entity.key
        removed = self._entities.pop(key, None)
        if removed is None:
            return False
        for record in self._queries.values():
            record.results = [e for e in record.results if e is not removed]
        self._announce()
        return True

    def commit(self, entity: E) -> E:
        """Insert a new entity or merge it into the cached instance for its key."""
        existing = self._entities.get(entity.key)
        if existing is None:
            self.set(entity.key, entity)
            return entity
        merge_into(existing, entity)
        self._announce()
        return existing

    def get_or_create(self, key: EntityKey, factory: Callable[[], E]) -> E:
        existing = self._entities.get(key)
        if existing is not None:
            return existing
        entity = factory()
        self.set(key, entity)
        return entity

    def clear(self) -> None:
        self._entities.clear()
        self._queries.clear()
        self.changes.publish([])

    @contextmanager
    def batch(self) -> Iterator["EntityCache[E]"]:
        """Suppress change notifications until the outermost batch exits."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self._dirty = False
                self.changes.publish(self.current_values)

    def _announce(self) -> None:
        if self._batch_depth:
            self._dirty = True
            return
        self.changes.publish(self.current_values)

    # --- Query records ------------------------------------------------------

    async def register_query(self, query_key: QueryKey, producer: Awaitable[list[E]]) -> list[E]:
        """Await a fetch, record its results under query_key, commit each entity."""
        results = await producer
        with self.batch():
            canonical = [self.commit(entity) for entity in results]
            self._queries[query_key] = QueryRecord(
                query_key, self._expiry(), canonical,
            )
        logger.debug(
            f"Registered query with {len(canonical)} result(s)",
            extra={"query_key": query_key, "cache_size": self.size},
        )
        return canonical

    async def register_get_query(self, query_key: QueryKey, producer: Awaitable[E]) -> E:
        """Single-entity variant of register_query."""
        entity = await producer
        with self.batch():
            canonical = self.commit(entity)
            self._queries[query_key] = QueryRecord(
                query_key, self._expiry(), [canonical],
            )
        return canonical

    def ran_query(self, query_key: QueryKey) -> bool:
        """True while a live record exists; an expired record is evicted here."""
        record = self._queries.get(query_key)
        if record is None:
            return False
        if record.has_expired(self._clock()):
            del self._queries[query_key]
            logger.debug("Query record expired", extra={"query_key": query_key})
            return False
        return True

    def observer_for(self, query_key: QueryKey, options: RequestOptions | None = None) -> list[E]:
        """Cached answer for a query: the whole cache or the recorded subset."""
        policy = options.on_cache_hit_return if options else None
        filtered = bool(options and options.params)
        if policy is CacheHitPolicy.ALL or (policy is None and not filtered):
            return self.current_values
        record = self._queries.get(query_key)
        return list(record.results) if record else []

    def observer_for_get(self, query_key: QueryKey) -> E | None:
        record = self._queries.get(query_key)
        if record is None or not record.results:
            return None
        return record.results[0]

    def _expiry(self) -> float:
        return self._clock() + self.ttl_ms / 1000
