"""Domain Types — verifies enum spellings and identity types.

Tests:
    - Enum values match the config/wire spelling so they parse from strings
    - ProcessState has exactly four states
    - NewType wrappers are plain str at runtime
"""

from entityservice.core.domain_types import (
    DEFAULT_CACHE_TTL_MS, CacheHitPolicy, EntityKey, GetCacheBehaviour,
    KeyCase, ProcessState, QueryKey, RuleKind,
)


def test_identity_types_wrap_str():
    assert EntityKey("7") == "7"
    assert QueryKey("http://api.test/users?filter=a") == "http://api.test/users?filter=a"


def test_default_ttl_is_one_day():
    assert DEFAULT_CACHE_TTL_MS == 24 * 60 * 60 * 1000


def test_cache_hit_policy_parses_config_spelling():
    assert CacheHitPolicy("all") is CacheHitPolicy.ALL
    assert CacheHitPolicy("previousQuery") is CacheHitPolicy.PREVIOUS_QUERY


def test_get_cache_behaviour_values():
    assert GetCacheBehaviour("cacheEntity") is GetCacheBehaviour.CACHE_ENTITY
    assert GetCacheBehaviour("cacheQuery") is GetCacheBehaviour.CACHE_QUERY


def test_process_state_has_four_states():
    assert set(ProcessState) == {
        ProcessState.RUNNING,
        ProcessState.SUSPENDED,
        ProcessState.COMPLETE,
        ProcessState.FAILED,
    }


def test_rule_kind_and_key_case_are_str_enums():
    assert RuleKind.ASYNC_OPERATION == "async_operation"
    assert KeyCase("camel") is KeyCase.CAMEL
