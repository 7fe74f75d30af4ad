"""Entity Capability — the structural contract every cached domain record satisfies.

Invariants:
    - key is stable for the lifetime of the record and unique per entity type
    - original_payload is the merged wire baseline used for dirty-diff
      serialization; None means "never synced"
    - merge_into mutates the existing instance; references held elsewhere
      (UI bindings, other entities) stay valid

Design Decisions:
    - Protocol over ABC: entity types are plain dataclasses composed with a
      MappingPlan, not subclasses of a base entity
    - apply() delegates to the plan so each entity type decides which plan
      (and params) it is mapped with
"""

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from entityservice.core.domain_types import Payload

if TYPE_CHECKING:
    from entityservice.core.mapping_plan import MappingPlan


@runtime_checkable
class Entity(Protocol):
    """Structural contract for identity-bearing records held by the cache."""

    original_payload: Payload | None

    @property
    def key(self) -> str: ...

    async def apply(
        self, plan: "MappingPlan", payload: Payload, params: Any = None,
    ) -> None: ...


def merge_into(existing: Entity, incoming: Entity) -> Entity:
    """Copy incoming's state onto existing and return existing.

    Baselines are merged key by key so fields the incoming payload did not
    carry keep their previously synced value.
    """
    if existing is incoming:
        return existing
    baseline = dict(existing.original_payload or {})
    baseline.update(incoming.original_payload or {})
    vars(existing).update(vars(incoming))
    existing.original_payload = baseline or None
    return existing
