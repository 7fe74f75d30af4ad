"""Mapping Process — verifies suspension, resumption and terminal states.

Tests:
    - Copy then async field: SUSPENDED after start, COMPLETE after resume()
    - An operation may resume the process from inside itself
    - Awaitable operations auto-resume; wait() resolves with the entity
    - Failures mark the process FAILED and leave earlier fields mapped
    - Awaitable operations without a running loop fail the process, never hang it
    - Illegal transitions raise ProcessStateError
"""

import asyncio
from dataclasses import dataclass, field

import pytest

from entityservice.core.domain_types import ProcessState
from entityservice.core.errors import ProcessStateError
from entityservice.core.mapping_plan import MappingPlan
from entityservice.core.mapping_process import MappingProcess


@dataclass
class Counter:
    a: int = 0
    b: int = 0
    c: int = 0
    original_payload: dict | None = field(default=None, repr=False)


def _increment(process):
    process.entity.b = process.payload["b"] + 1


def _plan(async_operation=_increment) -> MappingPlan:
    plan = MappingPlan()
    plan.add_fields("a", {"keys": "b", "async_operation": async_operation}, "c")
    return plan


# --- Suspension -----------------------------------------------------------


def test_suspends_at_async_field_then_completes_on_resume():
    counter = Counter()
    process = _plan().update_entity_from_wire(counter, {"a": 1, "b": 5})
    assert counter.a == 1
    assert process.state is ProcessState.SUSPENDED
    assert process.current_field == "b"

    process.resume()
    assert process.state is ProcessState.COMPLETE
    assert counter.b == 6


def test_fields_after_async_field_wait_for_resume():
    counter = Counter()
    process = _plan().update_entity_from_wire(counter, {"a": 1, "b": 5, "c": 9})
    assert counter.c == 0
    process.resume()
    assert counter.c == 9


def test_absent_async_field_does_not_suspend():
    process = _plan().update_entity_from_wire(Counter(), {"a": 1})
    assert process.state is ProcessState.COMPLETE


def test_operation_may_resume_synchronously():
    def increment_and_resume(process):
        _increment(process)
        process.resume()

    counter = Counter()
    process = _plan(increment_and_resume).update_entity_from_wire(counter, {"b": 1, "c": 2})
    assert process.state is ProcessState.COMPLETE
    assert (counter.b, counter.c) == (2, 2)


def test_on_complete_called_with_entity():
    seen = []
    counter = Counter()
    process = _plan().update_entity_from_wire(counter, {"a": 1, "b": 1}, on_complete=seen.append)
    assert seen == []
    process.resume()
    assert seen == [counter]


# --- Awaitable operations -------------------------------------------------


async def test_awaitable_operation_auto_resumes():
    async def slow_increment(process):
        await asyncio.sleep(0)
        _increment(process)

    counter = Counter()
    process = _plan(slow_increment).update_entity_from_wire(counter, {"a": 1, "b": 5, "c": 3})
    assert process.state is ProcessState.SUSPENDED
    assert await process.wait() is counter
    assert process.state is ProcessState.COMPLETE
    assert (counter.b, counter.c) == (6, 3)


async def test_awaitable_operation_that_resumes_itself_resumes_once():
    async def increment_and_resume(process):
        await asyncio.sleep(0)
        _increment(process)
        process.resume()

    counter = Counter()
    process = _plan(increment_and_resume).update_entity_from_wire(counter, {"b": 5, "c": 3})
    await process.wait()
    assert process.cursor == 3
    assert counter.c == 3


async def test_awaitable_failure_fails_process():
    async def broken(process):
        raise RuntimeError("lookup failed")

    counter = Counter()
    process = _plan(broken).update_entity_from_wire(counter, {"a": 1, "b": 5})
    with pytest.raises(RuntimeError, match="lookup failed"):
        await process.wait()
    assert process.state is ProcessState.FAILED
    assert counter.a == 1


def test_awaitable_operation_without_event_loop_fails_process():
    async def slow_increment(process):
        _increment(process)

    counter = Counter()
    with pytest.raises(ProcessStateError, match="running event loop"):
        _plan(slow_increment).update_entity_from_wire(counter, {"a": 1, "b": 5})
    assert counter.a == 1
    assert counter.b == 0


def test_failed_process_records_error_without_event_loop():
    async def slow_increment(process):
        _increment(process)

    plan = _plan(slow_increment)
    process = MappingProcess(plan, Counter(), {"b": 5})
    with pytest.raises(ProcessStateError):
        process.execute()
    assert process.state is ProcessState.FAILED
    assert isinstance(process.error, ProcessStateError)


async def test_wait_on_complete_process_returns_immediately():
    counter = Counter()
    process = _plan().update_entity_from_wire(counter, {"a": 1})
    assert await process.wait() is counter


# --- Failure and misuse ---------------------------------------------------


def test_transform_failure_propagates_and_keeps_earlier_fields():
    def explode(payload, entity_field, entity, params):
        raise ValueError("bad value")

    plan = MappingPlan()
    plan.add_fields("a", {"keys": "b", "to_entity": explode}, "c")
    counter = Counter()
    with pytest.raises(ValueError):
        plan.update_entity_from_wire(counter, {"a": 1, "b": 2, "c": 3})
    assert counter.a == 1
    assert counter.c == 0


def test_resume_requires_suspended_state():
    process = _plan().update_entity_from_wire(Counter(), {"a": 1})
    with pytest.raises(ProcessStateError):
        process.resume()


def test_execute_rejected_while_suspended():
    process = _plan().update_entity_from_wire(Counter(), {"b": 1})
    with pytest.raises(ProcessStateError):
        process.execute()
