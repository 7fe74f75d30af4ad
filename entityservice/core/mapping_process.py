"""Mapping Process — resumable stepper that applies a MappingPlan to one entity.

Invariants:
    - cursor is the only mutable progress state; plan/entity/payload never change
    - Fields are mapped strictly in declared order, one at a time
    - An async operation suspends the process BEFORE it is invoked, so a
      synchronous resume() from inside the operation re-enters cleanly
    - resume() is legal only from SUSPENDED and advances past the suspending field
    - Final entity state is identical to mapping every field synchronously in order

State machine:
    RUNNING --(async field)--> SUSPENDED --resume()--> RUNNING
    RUNNING --(cursor exhausted)--> COMPLETE
    RUNNING/SUSPENDED --(transform/operation raises)--> FAILED

Design Decisions:
    - Awaitable-returning async operations are scheduled on the running loop and
      auto-resume when they resolve, unless the operation resumed the process
      itself; callback-style operations resume explicitly
    - No rollback on failure: the entity stays partially mapped (known limitation)
    - An awaitable operation with no running event loop fails the process
      (ProcessStateError) instead of leaving it SUSPENDED
    - No timeout or cancellation: an operation that never resumes stalls the process
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from entityservice.core.domain_types import Payload, ProcessState, RuleKind
from entityservice.core.errors import ProcessStateError

if TYPE_CHECKING:
    from entityservice.core.mapping_plan import FieldRule, MappingPlan

logger = logging.getLogger(__name__)


class MappingProcess:
    """Maps one payload onto one entity, suspending at async field rules."""

    def __init__(
        self,
        plan: "MappingPlan",
        entity: Any,
        payload: Payload,
        on_complete: Callable[[Any], None] | None = None,
        params: Any = None,
    ):
        self.plan = plan
        self.entity = entity
        self.payload = payload
        self.params = plan.params if params is None else params
        self.cursor = 0
        self.state = ProcessState.RUNNING
        self.error: Exception | None = None
        self._on_complete = on_complete
        self._waiters: list[asyncio.Future] = []
        self._pending: asyncio.Task | None = None

    @property
    def current_field(self) -> str | None:
        """Entity field at the cursor (the suspending field while SUSPENDED)."""
        rules = self.plan.rules
        if not rules:
            return None
        return rules[min(self.cursor, len(rules) - 1)].entity_field

    # --- Stepping -----------------------------------------------------------

    def execute(self) -> "MappingProcess":
        """Run fields from the cursor until complete or the next async field."""
        if self.state is not ProcessState.RUNNING:
            raise ProcessStateError(
                f"Cannot execute a {self.state.value} mapping process",
                self.state.value,
            )
        rules = self.plan.rules
        while self.cursor < len(rules):
            rule = rules[self.cursor]
            if rule.wire_field in self.payload:
                if rule.kind is RuleKind.ASYNC_OPERATION:
                    self._suspend(rule)
                    return self
                try:
                    self._apply_sync(rule)
                except Exception as exc:
                    self._fail(exc)
                    raise
            self.cursor += 1
        self._complete()
        return self

    def resume(self) -> "MappingProcess":
        """Continue after the async field that suspended the process."""
        if self.state is not ProcessState.SUSPENDED:
            raise ProcessStateError(
                f"Cannot resume a {self.state.value} mapping process",
                self.state.value,
            )
        self.cursor += 1
        self.state = ProcessState.RUNNING
        return self.execute()

    async def wait(self) -> Any:
        """Resolve with the entity once COMPLETE; raise the failure if FAILED."""
        if self.state is ProcessState.COMPLETE:
            return self.entity
        if self.state is ProcessState.FAILED:
            raise self.error
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        return await waiter

    # --- Field application --------------------------------------------------

    def _apply_sync(self, rule: "FieldRule") -> None:
        if rule.kind is RuleKind.OPERATION:
            rule.operation(self.payload, rule.entity_field, self.entity, self.params)
        elif rule.kind is RuleKind.TRANSFORM:
            value = rule.to_entity(
                self.payload, rule.entity_field, self.entity, self.params,
            )
            rule.setter(self.entity, value)
        else:
            rule.setter(self.entity, self.payload[rule.wire_field])

    def _suspend(self, rule: "FieldRule") -> None:
        self.state = ProcessState.SUSPENDED
        suspended_at = self.cursor
        logger.debug(
            "Mapping suspended at async field",
            extra={"field_name": rule.entity_field},
        )
        try:
            result = rule.async_operation(self)
        except Exception as exc:
            self._fail(exc)
            raise
        if not inspect.isawaitable(result):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            if inspect.iscoroutine(result):
                result.close()
            error = ProcessStateError(
                f"Async field '{rule.entity_field}' needs a running event loop",
                self.state.value,
            )
            self._fail(error)
            raise error from exc
        self._pending = loop.create_task(self._resume_after(result, suspended_at))

    async def _resume_after(self, awaitable: Awaitable, suspended_at: int) -> None:
        """Await an async operation, then resume unless it already did."""
        try:
            await awaitable
            if self.state is ProcessState.SUSPENDED and self.cursor == suspended_at:
                self.resume()
        except Exception as exc:
            if self.state is not ProcessState.FAILED:
                self._fail(exc)
            logger.error(
                f"Mapping aborted: {exc}",
                extra={"field_name": self.current_field},
            )

    # --- Terminal states ----------------------------------------------------

    def _complete(self) -> None:
        self.state = ProcessState.COMPLETE
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_result(self.entity)
        self._waiters.clear()
        if self._on_complete:
            self._on_complete(self.entity)

    def _fail(self, exc: Exception) -> None:
        self.state = ProcessState.FAILED
        self.error = exc
        for waiter in self._waiters:
            if not waiter.done():
                waiter.set_exception(exc)
        self._waiters.clear()
