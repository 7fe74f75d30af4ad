"""Conversation Entity — a room between two users with its embedded messages.

Invariants:
    - messages holds the canonical Message instances from the message cache;
      an embedded message never produces a second instance for its key
    - sender is resolved through the user lookup (cache-aware), after the
      plain id fields are mapped; until it resolves the process is SUSPENDED
    - Only sender_id and recipient_id are sent to the server

Design Decisions:
    - Plan built per client (build_conversation_plan) because its field
      operations close over that client's message cache and user lookup
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from entityservice.core.domain_types import EntityKey, KeyCase, Payload
from entityservice.core.entity_cache import EntityCache
from entityservice.core.mapping_plan import MappingPlan
from entityservice.core.mapping_process import MappingProcess
from entityservice.models.message import Message
from entityservice.models.user import User

UserLookup = Callable[[int], Awaitable[User]]


@dataclass
class Conversation:
    """Chat room between a sender and a recipient."""
    id: int | None = None
    sender_id: int | None = None
    recipient_id: int | None = None
    sender: User | None = None
    messages: list[Message] = field(default_factory=list)
    original_payload: Payload | None = field(default=None, repr=False, compare=False)

    @property
    def key(self) -> str:
        return str(self.id)

    async def apply(self, plan: MappingPlan, payload: Payload, params: Any = None) -> None:
        await plan.apply(self, payload, params)


def build_conversation_plan(
    message_cache: EntityCache[Message],
    message_plan: MappingPlan,
    load_user: UserLookup,
    wire_key_case: KeyCase = KeyCase.SNAKE,
    only_emit_changed: bool = True,
) -> MappingPlan:
    def map_messages(payload: Payload, entity_field: str, entity: Conversation, params: Any) -> None:
        messages = []
        with message_cache.batch():
            for item in payload.get("messages") or []:
                message = message_cache.get_or_create(EntityKey(str(item.get("id"))), Message)
                message_plan.update_entity_from_wire(message, item)
                messages.append(message)
        entity.messages = messages

    async def resolve_sender(process: MappingProcess) -> None:
        sender_id = process.payload.get("sender_id")
        process.entity.sender = await load_user(sender_id) if sender_id is not None else None

    plan = MappingPlan(wire_key_case, only_emit_changed)
    plan.add_fields(
        "id",
        "sender_id",
        "recipient_id",
        {"keys": "messages", "operation": map_messages},
        {"keys": ("sender", "sender_id"), "async_operation": resolve_sender},
    )
    plan.allow_field_for_wire("sender_id", "recipient_id")
    return plan
