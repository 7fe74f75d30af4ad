"""Entity Service — uncached CRUD for one entity type over a Transport.

Invariants:
    - Every request targets f"{api_url}/{endpoint}" where endpoint is the
      endpoint template with its :name: placeholders filled from path ids
    - Placeholders with no matching path id are stripped, never sent literally
    - Every response payload is mapped through the service's MappingPlan before
      it reaches the caller; raw payloads are returned only by put/delete
    - Transport failures propagate unmodified (no retry, no wrapping)

Design Decisions:
    - Path ids may be a scalar (shortcut for the key placeholder), a dict, or an
      entity (its attributes fill the template)
    - Request body precedence: options.body > options.entity > path-ids entity
      > raw path-ids dict (first one present wins)
    - instance_for is the extension point for identity-preserving subclasses
      (CachedEntityService maps onto the cached instance instead)
"""

import logging
import re
from typing import Any, Generic, TypeVar

from entityservice.core.domain_types import EntityKey, Payload
from entityservice.core.entity import Entity
from entityservice.core.mapping_plan import MappingPlan
from entityservice.core.request_options import RequestOptions
from entityservice.infrastructure.transport import Transport

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)

PathIds = int | str | dict[str, Any] | Entity | None

_PLACEHOLDER = re.compile(r":[\w-]*?:")


class EntityService(Generic[E]):
    """CRUD for one entity type: endpoint templating, body building, mapping."""

    # Endpoint template, e.g. "users/:id:"
    endpoint_format: str = ""
    # Placeholder a scalar path id fills, and the payload field holding the key
    key_name: str = "id"
    entity_type: type[E]

    def __init__(self, transport: Transport, api_url: str, plan: MappingPlan):
        self.transport = transport
        self.api_url = api_url.rstrip("/")
        self.plan = plan

    # --- Endpoints and bodies -----------------------------------------------

    def build_endpoint(self, path: str, path_ids: PathIds = None) -> str:
        """Fill :name: placeholders from path ids and join the result to api_url."""
        for name, value in self._path_values(path_ids).items():
            path = path.replace(f":{name}:", "" if value is None else str(value))
        path = _PLACEHOLDER.sub("", path).rstrip("/")
        return f"{self.api_url}/{path}"

    def _path_values(self, path_ids: PathIds) -> dict[str, Any]:
        if path_ids is None:
            return {}
        if isinstance(path_ids, (int, str)):
            return {self.key_name: path_ids}
        if isinstance(path_ids, dict):
            return path_ids
        return vars(path_ids)

    def body_for(self, path_ids: PathIds, options: RequestOptions) -> Any:
        if options.body is not None:
            return options.body
        if options.entity is not None:
            return self.plan.to_wire(options.entity)
        if isinstance(path_ids, Entity):
            return self.plan.to_wire(path_ids)
        return path_ids

    def _endpoint(self, path_ids: PathIds, options: RequestOptions) -> str:
        return self.build_endpoint(
            options.endpoint_format or self.endpoint_format, path_ids,
        )

    # --- Instances ----------------------------------------------------------

    def key_for_payload(self, payload: Payload) -> EntityKey | None:
        value = payload.get(self.key_name)
        return None if value is None else EntityKey(str(value))

    def new_entity(self) -> E:
        return self.entity_type()

    def instance_for(self, payload: Payload, options: RequestOptions) -> E:
        """Entity the payload should be mapped onto (a fresh one here)."""
        return self.new_entity()

    async def build_instance(self, payload: Payload | None, options: RequestOptions) -> E:
        payload = payload or {}
        entity = self.instance_for(payload, options)
        await entity.apply(self.plan, payload, options.constructor_params)
        return entity

    # --- CRUD ---------------------------------------------------------------

    async def get(self, path_ids: PathIds, options: RequestOptions | None = None) -> E:
        options = options or RequestOptions()
        endpoint = self._endpoint(path_ids, options)
        payload = await self.transport.get(
            endpoint, params=options.params, headers=options.headers,
        )
        return await self.build_instance(payload, options)

    async def query(
        self, path_ids: PathIds = None, options: RequestOptions | None = None,
    ) -> list[E]:
        options = options or RequestOptions()
        endpoint = self._endpoint(path_ids, options)
        payload = await self.transport.query(
            endpoint, params=options.params, headers=options.headers,
        )
        if payload is None:
            return []
        items = payload if isinstance(payload, list) else [payload]
        logger.debug(f"Mapping {len(items)} result(s)", extra={"endpoint": endpoint})
        # Sequential: entities in one response may share nested records
        return [await self.build_instance(item, options) for item in items]

    async def create(
        self, path_ids: PathIds = None, options: RequestOptions | None = None,
    ) -> E:
        """POST a body built from path ids/options; map the response to a new entity."""
        options = options or RequestOptions()
        endpoint = self._endpoint(path_ids, options)
        payload = await self.transport.create(
            endpoint, body=self.body_for(path_ids, options),
            params=options.params, headers=options.headers,
        )
        return await self.build_instance(payload, options)

    async def store(self, entity: E, options: RequestOptions | None = None) -> E:
        """POST a locally built entity; the response is mapped onto that same instance."""
        options = options or RequestOptions()
        endpoint = self._endpoint(entity, options)
        payload = await self.transport.create(
            endpoint, body=self.body_for(entity, options),
            params=options.params, headers=options.headers,
        )
        await entity.apply(self.plan, payload or {}, options.constructor_params)
        return entity

    async def update(self, entity: E, options: RequestOptions | None = None) -> E:
        """PUT changed fields; the response (or the sent body) becomes the new baseline."""
        options = options or RequestOptions()
        endpoint = self._endpoint(entity, options)
        body = self.body_for(entity, options)
        payload = await self.transport.update(
            endpoint, body=body, params=options.params, headers=options.headers,
        )
        if isinstance(payload, dict):
            await entity.apply(self.plan, payload, options.constructor_params)
        elif isinstance(body, dict):
            self.plan.merge_baseline(entity, body)
        return entity

    async def put(self, path_ids: PathIds, options: RequestOptions | None = None) -> Any:
        """PUT and return the raw response payload."""
        options = options or RequestOptions()
        return await self.transport.update(
            self._endpoint(path_ids, options), body=self.body_for(path_ids, options),
            params=options.params, headers=options.headers,
        )

    async def delete(self, path_ids: PathIds, options: RequestOptions | None = None) -> Any:
        """DELETE and return the raw response payload."""
        options = options or RequestOptions()
        return await self.transport.delete(
            self._endpoint(path_ids, options),
            params=options.params, headers=options.headers,
        )
