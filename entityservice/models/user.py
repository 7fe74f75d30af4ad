"""User Entity — chat participant, keyed by server id.

Invariants:
    - key is str(id); id is None until the server has created the user
    - id is never sent to the server (it lives in the endpoint, not the body)
"""

from dataclasses import dataclass, field
from typing import Any

from entityservice.core.domain_types import KeyCase, Payload
from entityservice.core.mapping_plan import MappingPlan


@dataclass
class User:
    """Chat user."""
    id: int | None = None
    username: str = ""
    name: str = ""
    password: str = ""
    original_payload: Payload | None = field(default=None, repr=False, compare=False)

    @property
    def key(self) -> str:
        return str(self.id)

    async def apply(self, plan: MappingPlan, payload: Payload, params: Any = None) -> None:
        await plan.apply(self, payload, params)


def build_user_plan(
    wire_key_case: KeyCase = KeyCase.SNAKE, only_emit_changed: bool = True,
) -> MappingPlan:
    plan = MappingPlan(wire_key_case, only_emit_changed)
    plan.add_fields("id", "username", "name", "password")
    plan.allow_all_for_wire_except("id")
    return plan
