"""Request Options — per-call knobs for entity service requests.

Invariants:
    - Every field is optional; None means "use the service/settings default"
    - body takes precedence over entity and path ids when building a request body

Design Decisions:
    - Dataclass not Pydantic: carries live objects (cache, entity) that never
      cross the wire
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from entityservice.core.domain_types import CacheHitPolicy, GetCacheBehaviour

if TYPE_CHECKING:
    from entityservice.core.entity_cache import EntityCache


@dataclass
class RequestOptions:
    """Options accepted by every EntityService / CachedEntityService call."""

    # Query-string parameters; their presence marks a query as filtered
    params: dict[str, Any] | None = None
    headers: dict[str, str] | None = None

    # Alternate endpoint template, e.g. "rooms/:room_id:/messages"
    endpoint_format: str | None = None

    body: Any = None
    entity: Any = None

    # Overrides the service cache for this request only
    cache: "EntityCache | None" = None

    # Handed to the mapping plan of entities built from the response
    constructor_params: Any = None

    on_cache_hit_return: CacheHitPolicy | None = None
    cache_behaviour_on_get: GetCacheBehaviour | None = None
