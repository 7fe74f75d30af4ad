"""User Service — cached CRUD for chat users at users/:id:."""

from entityservice.core.request_options import RequestOptions
from entityservice.models.user import User
from entityservice.services.cached_entity_service import CachedEntityService


class UserService(CachedEntityService[User]):
    endpoint_format = "users/:id:"
    entity_type = User

    async def search(self, text: str) -> list[User]:
        """Users matching a server-side filter; a filtered query, so only its own results."""
        return await self.query(options=RequestOptions(params={"filter": text}))
