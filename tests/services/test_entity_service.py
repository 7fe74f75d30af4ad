"""Entity Service — verifies endpoint templating, body precedence and uncached CRUD.

Tests:
    - Placeholders filled from scalars, dicts and entities; missing ones stripped
    - Body precedence: options.body > options.entity > path-ids entity > raw dict
    - get/query/create map responses into fresh entities
    - update sends only changed fields and refreshes the baseline
    - put/delete return the raw response
"""

import pytest

from entityservice.core.request_options import RequestOptions
from entityservice.models.user import User, build_user_plan
from entityservice.services.entity_service import EntityService


class PlainUserService(EntityService[User]):
    endpoint_format = "users/:id:"
    entity_type = User


@pytest.fixture
def service(transport):
    return PlainUserService(transport, "http://api.test/", build_user_plan())


# --- Endpoints ------------------------------------------------------------


def test_scalar_path_id_fills_key_placeholder(service):
    assert service.build_endpoint("users/:id:", 7) == "http://api.test/users/7"


def test_missing_placeholder_stripped(service):
    assert service.build_endpoint("users/:id:") == "http://api.test/users"


def test_dict_fills_nested_template(service):
    endpoint = service.build_endpoint("rooms/:room_id:/messages/:id:", {"room_id": 3})
    assert endpoint == "http://api.test/rooms/3/messages"


def test_entity_attributes_fill_template(service):
    assert service.build_endpoint("users/:id:", User(id=4)) == "http://api.test/users/4"


def test_none_value_becomes_empty(service):
    assert service.build_endpoint("users/:id:", {"id": None}) == "http://api.test/users"


# --- Bodies ---------------------------------------------------------------


def test_explicit_body_wins(service):
    options = RequestOptions(body={"raw": 1}, entity=User(name="Ana"))
    assert service.body_for({"id": 1}, options) == {"raw": 1}


def test_options_entity_serialized(service):
    options = RequestOptions(entity=User(username="ana"))
    assert service.body_for(None, options) == {"username": "ana", "name": "", "password": ""}


def test_path_ids_entity_serialized(service):
    body = service.body_for(User(name="Ana"), RequestOptions())
    assert body["name"] == "Ana"
    assert "id" not in body


def test_raw_path_ids_used_last(service):
    assert service.body_for({"sender_id": 1}, RequestOptions()) == {"sender_id": 1}


# --- CRUD -----------------------------------------------------------------


async def test_get_maps_response(service, transport):
    transport.respond("get", "users/1", {"id": 1, "username": "ana", "name": "Ana"})
    user = await service.get(1)
    assert isinstance(user, User)
    assert (user.id, user.username) == (1, "ana")
    assert user.original_payload == {"id": 1, "username": "ana", "name": "Ana"}


async def test_get_is_not_cached(service, transport):
    transport.respond("get", "users/1", {"id": 1})
    first = await service.get(1)
    second = await service.get(1)
    assert first is not second
    assert len(transport.calls_to("get")) == 2


async def test_query_normalizes_single_object(service, transport):
    transport.respond("query", "users", {"id": 1})
    assert [u.id for u in await service.query()] == [1]


async def test_query_empty_body_is_empty_list(service, transport):
    transport.respond("query", "users", None)
    assert await service.query() == []


async def test_query_passes_params(service, transport):
    transport.respond("query", "users", [{"id": 1}, {"id": 2}])
    users = await service.query(options=RequestOptions(params={"filter": "a"}))
    assert [u.id for u in users] == [1, 2]
    assert transport.calls[0].params == {"filter": "a"}


async def test_create_posts_raw_dict(service, transport):
    transport.respond("create", "users", {"id": 5, "username": "bia"})
    user = await service.create({"username": "bia"})
    assert user.id == 5
    assert transport.calls[0].body == {"username": "bia"}


async def test_store_maps_response_onto_same_instance(service, transport):
    transport.respond("create", "users", {"id": 6, "username": "caio"})
    draft = User(username="caio")
    stored = await service.store(draft)
    assert stored is draft
    assert draft.id == 6


async def test_update_sends_changed_fields_only(service, transport):
    transport.respond("get", "users/1", {"id": 1, "username": "ana", "name": "Ana", "password": ""})
    transport.respond("update", "users/1", {"id": 1, "username": "ana", "name": "Ana B", "password": ""})
    user = await service.get(1)
    user.name = "Ana B"
    updated = await service.update(user)
    assert updated is user
    assert transport.calls_to("update")[0].body == {"name": "Ana B"}
    assert service.plan.to_wire(user) == {}


async def test_update_without_response_body_adopts_sent_body(service, transport):
    transport.respond("get", "users/1", {"id": 1, "username": "ana", "name": "Ana", "password": ""})
    transport.respond("update", "users/1", None)
    user = await service.get(1)
    user.name = "Ana B"
    await service.update(user)
    assert user.original_payload["name"] == "Ana B"
    assert service.plan.to_wire(user) == {}


async def test_put_and_delete_return_raw_payload(service, transport):
    transport.respond("update", "users/1", {"ok": True})
    transport.respond("delete", "users/1", True)
    assert await service.put({"id": 1}, RequestOptions(body={"name": "x"})) == {"ok": True}
    assert await service.delete(1) is True


async def test_endpoint_format_override(service, transport):
    transport.respond("query", "rooms/2/members", [{"id": 3}])
    users = await service.query(
        {"room_id": 2}, RequestOptions(endpoint_format="rooms/:room_id:/members"),
    )
    assert users[0].id == 3
