"""Conversation Service — uncached CRUD for rooms at rooms/:id:.

Design Decisions:
    - Not cached: room listings are cheap and must reflect new messages;
      the embedded messages still land in the shared message cache
"""

from entityservice.core.request_options import RequestOptions
from entityservice.models.conversation import Conversation
from entityservice.services.entity_service import EntityService


class ConversationService(EntityService[Conversation]):
    endpoint_format = "rooms/:id:"
    entity_type = Conversation

    async def for_user(self, user_id: int) -> list[Conversation]:
        return await self.query(options=RequestOptions(params={"user_id": user_id}))

    async def open(self, sender_id: int, recipient_id: int) -> Conversation:
        """Create a room between two users."""
        return await self.create({"sender_id": sender_id, "recipient_id": recipient_id})
