"""Message Entity — one chat message inside a conversation (room).

Invariants:
    - kind travels as the plain string "message_kind" on the wire and as a
      MessageKind value on the entity
    - Messages embedded in a conversation payload and messages fetched on
      their own resolve to the same instance (shared message cache)

Design Decisions:
    - MessageKind is a frozen value object, not an Enum: the server accepts
      arbitrary kind strings
"""

from dataclasses import dataclass, field
from typing import Any

from entityservice.core.domain_types import KeyCase, Payload
from entityservice.core.mapping_plan import MappingPlan


@dataclass(frozen=True)
class MessageKind:
    id: str = "text"


@dataclass
class Message:
    """Chat message."""
    id: int | None = None
    content: str = ""
    kind: MessageKind | None = None
    message_color: int = 0
    user_id: int | None = None
    conversation_id: int | None = None
    original_payload: Payload | None = field(default=None, repr=False, compare=False)

    @property
    def key(self) -> str:
        return str(self.id)

    async def apply(self, plan: MappingPlan, payload: Payload, params: Any = None) -> None:
        await plan.apply(self, payload, params)


def _kind_from_wire(payload: Payload, entity_field: str, entity: Message, params: Any) -> MessageKind | None:
    value = payload.get("message_kind")
    return MessageKind(value) if value else None


def _kind_to_wire(entity: Message, entity_field: str) -> str | None:
    return entity.kind.id if entity.kind else None


def build_message_plan(
    wire_key_case: KeyCase = KeyCase.SNAKE, only_emit_changed: bool = True,
) -> MappingPlan:
    plan = MappingPlan(wire_key_case, only_emit_changed)
    plan.add_fields(
        "id",
        "content",
        {"keys": ("kind", "message_kind"), "to_entity": _kind_from_wire, "to_wire": _kind_to_wire},
        "message_color",
        "user_id",
        "conversation_id",
    )
    plan.allow_all_for_wire_except("id")
    return plan
