"""Service test fixtures — in-memory transport and wired chat services.

Invariants:
    - FakeTransport answers from a (verb, endpoint) table and records every call
    - Responses are deep-copied per call so entities never share payload dicts
    - Unrouted requests fail loudly (ResourceNotFoundError), like a real 404

Design Decisions:
    - Fake at the Transport protocol boundary (no httpx): service tests
      exercise caching and mapping, HttpTransport has its own tests
"""

import copy
from dataclasses import dataclass
from typing import Any

import pytest

from entityservice.config import Settings
from entityservice.core.entity_cache import EntityCache
from entityservice.core.errors import ResourceNotFoundError
from entityservice.main import build_client
from entityservice.models.user import build_user_plan
from entityservice.services.user_service import UserService

API_URL = "http://api.test"


@dataclass
class Call:
    verb: str
    endpoint: str
    body: Any = None
    params: dict | None = None


class FakeTransport:
    def __init__(self):
        self.calls: list[Call] = []
        self._routes: dict[tuple[str, str], Any] = {}

    def respond(self, verb: str, path: str, payload: Any) -> None:
        """Route verb + path (relative to API_URL); payload may be an exception."""
        self._routes[(verb, f"{API_URL}/{path}")] = payload

    def calls_to(self, verb: str) -> list[Call]:
        return [c for c in self.calls if c.verb == verb]

    async def _handle(self, verb, endpoint, body, params):
        self.calls.append(Call(verb, endpoint, copy.deepcopy(body), params))
        if (verb, endpoint) not in self._routes:
            raise ResourceNotFoundError(endpoint)
        response = self._routes[(verb, endpoint)]
        if isinstance(response, Exception):
            raise response
        return copy.deepcopy(response)

    async def get(self, endpoint, body=None, params=None, headers=None):
        return await self._handle("get", endpoint, body, params)

    async def query(self, endpoint, body=None, params=None, headers=None):
        return await self._handle("query", endpoint, body, params)

    async def create(self, endpoint, body=None, params=None, headers=None):
        return await self._handle("create", endpoint, body, params)

    async def update(self, endpoint, body=None, params=None, headers=None):
        return await self._handle("update", endpoint, body, params)

    async def delete(self, endpoint, body=None, params=None, headers=None):
        return await self._handle("delete", endpoint, body, params)


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def user_cache(clock):
    return EntityCache(ttl_ms=100, clock=clock)


@pytest.fixture
def user_service(transport, user_cache):
    return UserService(transport, API_URL, build_user_plan(), user_cache)


@pytest.fixture
def chat(transport):
    return build_client(Settings(api_url=API_URL, _env_file=None), transport)
