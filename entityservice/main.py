"""Chat Client — composition root wiring caches, plans and services.

Invariants:
    - One EntityCache per entity type per client; nothing is module-global
    - Services share the single Transport they are built with
    - setup_logging runs here and only here (never at import time)

Design Decisions:
    - build_client takes any Transport so tests wire an in-memory fake while
      applications get HttpTransport through lifespan()
    - lifespan() as an async context manager: the httpx client and the log
      handler are released on exit even when the body raises
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from entityservice.config import Settings, get_settings
from entityservice.core.entity_cache import EntityCache
from entityservice.infrastructure.observability import setup_logging
from entityservice.infrastructure.transport import HttpTransport, Transport
from entityservice.models.conversation import build_conversation_plan
from entityservice.models.message import Message, build_message_plan
from entityservice.models.user import User, build_user_plan
from entityservice.services.conversation_service import ConversationService
from entityservice.services.message_service import MessageService
from entityservice.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class ChatClient:
    """The three chat services plus the caches behind them."""
    users: UserService
    messages: MessageService
    conversations: ConversationService
    user_cache: EntityCache[User]
    message_cache: EntityCache[Message]


def build_client(settings: Settings, transport: Transport) -> ChatClient:
    user_cache: EntityCache[User] = EntityCache(settings.cache_ttl_ms)
    message_cache: EntityCache[Message] = EntityCache(settings.cache_ttl_ms)

    users = UserService(
        transport, settings.api_url,
        build_user_plan(only_emit_changed=settings.only_emit_changed),
        user_cache, settings.on_cache_hit_return,
    )
    message_plan = build_message_plan(only_emit_changed=settings.only_emit_changed)
    messages = MessageService(
        transport, settings.api_url, message_plan,
        message_cache, settings.on_cache_hit_return,
    )
    conversations = ConversationService(
        transport, settings.api_url,
        build_conversation_plan(
            message_cache, message_plan, users.get,
            only_emit_changed=settings.only_emit_changed,
        ),
    )
    return ChatClient(users, messages, conversations, user_cache, message_cache)


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncIterator[ChatClient]:
    """Open an HTTP-backed client; close the transport on exit."""
    settings = settings or get_settings()
    handler = setup_logging(settings.log_level, settings.log_format)
    transport = HttpTransport(timeout_seconds=settings.http_timeout_seconds)
    logger.info("Chat client started", extra={"endpoint": settings.api_url})
    try:
        yield build_client(settings, transport)
    finally:
        await transport.close()
        logger.info("Chat client shut down")
        logging.getLogger("entityservice").removeHandler(handler)
