"""Cached Entity Service — EntityService backed by an EntityCache.

Invariants:
    - A live query record (or, for gets, a cached key) is served without a
      transport call; expired records are treated as misses
    - Every entity returned by this service is the cache's canonical instance
      for its key: responses are mapped onto the cached instance when one exists
    - A failed request leaves the cache untouched
    - delete evicts the key only after the transport call succeeded

Design Decisions:
    - Query key = endpoint plus the sorted, url-encoded params, so the same
      filter in a different order hits the same record
    - Cache-hit policy resolved per call: options > service default > the cache
      rule ("all" for unfiltered, "previousQuery" for filtered queries)
    - options.cache swaps the cache for one request (e.g. a scratch cache)
"""

import logging
from dataclasses import replace
from typing import Any, TypeVar

import httpx

from entityservice.core.domain_types import (
    CacheHitPolicy, EntityKey, GetCacheBehaviour, Payload, QueryKey,
)
from entityservice.core.entity import Entity
from entityservice.core.entity_cache import EntityCache
from entityservice.core.mapping_plan import MappingPlan
from entityservice.core.request_options import RequestOptions
from entityservice.infrastructure.transport import Transport
from entityservice.services.entity_service import EntityService, PathIds

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)


class CachedEntityService(EntityService[E]):
    """Cache-aware reads and cache-committing writes for one entity type."""

    cache_behaviour_on_get: GetCacheBehaviour = GetCacheBehaviour.CACHE_ENTITY

    def __init__(
        self,
        transport: Transport,
        api_url: str,
        plan: MappingPlan,
        cache: EntityCache[E],
        on_cache_hit_return: CacheHitPolicy | None = None,
    ):
        super().__init__(transport, api_url, plan)
        self.cache = cache
        self.on_cache_hit_return = on_cache_hit_return

    # --- Keys ---------------------------------------------------------------

    def cache_for(self, options: RequestOptions | None) -> EntityCache[E]:
        if options is not None and options.cache is not None:
            return options.cache
        return self.cache

    def key_from_path_ids(self, path_ids: PathIds) -> EntityKey | None:
        if path_ids is None:
            return None
        if isinstance(path_ids, (int, str)):
            return EntityKey(str(path_ids))
        if isinstance(path_ids, dict):
            value = path_ids.get(self.key_name)
            return None if value is None else EntityKey(str(value))
        return EntityKey(path_ids.key)

    @staticmethod
    def query_key(endpoint: str, params: dict[str, Any] | None = None) -> QueryKey:
        if not params:
            return QueryKey(endpoint)
        ordered = {name: params[name] for name in sorted(params)}
        return QueryKey(f"{endpoint}?{httpx.QueryParams(ordered)}")

    def instance_for(self, payload: Payload, options: RequestOptions) -> E:
        key = self.key_for_payload(payload)
        cached = self.cache_for(options).get(key) if key is not None else None
        if cached is not None:
            return cached
        return self.new_entity()

    # --- Reads --------------------------------------------------------------

    async def get(self, path_ids: PathIds, options: RequestOptions | None = None) -> E:
        """Return the cached entity when allowed, otherwise fetch and cache it."""
        options = options or RequestOptions()
        cache = self.cache_for(options)
        query_key = self.query_key(self._endpoint(path_ids, options), options.params)
        behaviour = options.cache_behaviour_on_get or self.cache_behaviour_on_get

        if behaviour is GetCacheBehaviour.CACHE_QUERY:
            if cache.ran_query(query_key):
                hit = cache.observer_for_get(query_key)
                if hit is not None:
                    logger.debug("Get served from query record", extra={"query_key": query_key})
                    return hit
        else:
            key = self.key_from_path_ids(path_ids)
            if key is not None and cache.has(key):
                logger.debug("Get served from cache", extra={"entity_key": key})
                return cache.get(key)

        logger.debug("Get cache miss", extra={"query_key": query_key})
        return await cache.register_get_query(query_key, super().get(path_ids, options))

    fetch_by_id = get

    async def fetch(self, path_ids: PathIds, options: RequestOptions | None = None) -> E:
        """Always hit the transport, then commit the result into the cache."""
        options = options or RequestOptions()
        query_key = self.query_key(self._endpoint(path_ids, options), options.params)
        return await self.cache_for(options).register_get_query(
            query_key, super().get(path_ids, options),
        )

    async def query(
        self, path_ids: PathIds = None, options: RequestOptions | None = None,
    ) -> list[E]:
        """Serve a live query from the cache, otherwise fetch_all."""
        options = options or RequestOptions()
        cache = self.cache_for(options)
        query_key = self.query_key(self._endpoint(path_ids, options), options.params)
        if cache.ran_query(query_key):
            policy = options.on_cache_hit_return or self.on_cache_hit_return
            logger.debug(
                "Query served from cache",
                extra={"query_key": query_key, "cache_size": cache.size},
            )
            return cache.observer_for(
                query_key, replace(options, on_cache_hit_return=policy),
            )
        logger.debug("Query cache miss", extra={"query_key": query_key})
        return await self.fetch_all(path_ids, options)

    async def fetch_all(
        self, path_ids: PathIds = None, options: RequestOptions | None = None,
    ) -> list[E]:
        """Always hit the transport; record the results under the query key."""
        options = options or RequestOptions()
        query_key = self.query_key(self._endpoint(path_ids, options), options.params)
        return await self.cache_for(options).register_query(
            query_key, super().query(path_ids, options),
        )

    # --- Writes -------------------------------------------------------------

    async def create(
        self, path_ids: PathIds = None, options: RequestOptions | None = None,
    ) -> E:
        options = options or RequestOptions()
        entity = await super().create(path_ids, options)
        return self.cache_for(options).commit(entity)

    async def store(self, entity: E, options: RequestOptions | None = None) -> E:
        options = options or RequestOptions()
        stored = await super().store(entity, options)
        return self.cache_for(options).commit(stored)

    async def update(self, entity: E, options: RequestOptions | None = None) -> E:
        options = options or RequestOptions()
        updated = await super().update(entity, options)
        return self.cache_for(options).commit(updated)

    async def delete(self, path_ids: PathIds, options: RequestOptions | None = None) -> Any:
        """DELETE, then evict the key so later gets go back to the server."""
        options = options or RequestOptions()
        response = await super().delete(path_ids, options)
        key = self.key_from_path_ids(path_ids)
        if key is not None and self.cache_for(options).delete(key):
            logger.debug("Evicted deleted entity", extra={"entity_key": key})
        return response
