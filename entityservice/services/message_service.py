"""Message Service — cached CRUD for messages, plus the per-room message endpoints.

Invariants:
    - Messages listed through a room and through messages/ share one cache,
      so both paths return the same instances
    - A room listing served from the cache holds only that room's recorded
      messages (the room id is in the path, not the params)
"""

from entityservice.core.domain_types import CacheHitPolicy
from entityservice.core.request_options import RequestOptions
from entityservice.models.message import Message
from entityservice.services.cached_entity_service import CachedEntityService

ROOM_MESSAGES_FORMAT = "rooms/:room_id:/messages"


class MessageService(CachedEntityService[Message]):
    endpoint_format = "messages/:id:"
    entity_type = Message

    async def in_conversation(self, conversation_id: int) -> list[Message]:
        return await self.query(
            options=RequestOptions(params={"conversation_id": conversation_id}),
        )

    async def for_room(self, room_id: int) -> list[Message]:
        return await self.query(
            {"room_id": room_id},
            RequestOptions(
                endpoint_format=ROOM_MESSAGES_FORMAT,
                on_cache_hit_return=CacheHitPolicy.PREVIOUS_QUERY,
            ),
        )

    async def post_to_room(self, room_id: int, content: str, user_id: int) -> Message:
        return await self.create(
            {"room_id": room_id},
            RequestOptions(
                endpoint_format=ROOM_MESSAGES_FORMAT,
                body={"content": content, "user_id": user_id},
            ),
        )
