"""Mapping Plan — declarative field table between wire payloads and entities.

Invariants:
    - Rules are applied (inbound) and emitted (outbound) in declaration order
    - Each entity field appears at most once in the plan
    - Each rule has exactly one inbound behaviour: copy, transform, operation,
      or async operation
    - Nothing is sent to the server unless allowed for wire (empty by default)
    - update_entity_from_wire is the only inbound entry point and always merges
      the payload into entity.original_payload before mapping starts
    - With only_emit_changed, to_wire omits fields equal to the synced baseline;
      a key missing from the baseline counts as changed

Design Decisions:
    - Getter/setter descriptors built once per rule at registration: the mapping
      loop never derives attribute names at runtime
    - Rule objects given to add_fields are plain dicts ({"keys": ..., "to_entity": ...})
      to keep plan declarations short at the entity definition site
    - Inbound execution delegated to a fresh MappingProcess per call so async
      field operations can suspend without blocking the plan
"""

import operator
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any

from entityservice.core.domain_types import KeyCase, Payload, RuleKind
from entityservice.core.errors import MappingPlanError
from entityservice.core.key_case import convert
from entityservice.core.mapping_process import MappingProcess

ToEntityFn = Callable[[Payload, str, Any, Any], Any]
OperationFn = Callable[[Payload, str, Any, Any], None]
AsyncOperationFn = Callable[[MappingProcess], Awaitable[None] | None]
ToWireFn = Callable[[Any, str], Any]

FieldKeys = str | tuple[str, str] | list[str]


def _setter_for(name: str) -> Callable[[Any, Any], None]:
    def set_field(entity: Any, value: Any) -> None:
        setattr(entity, name, value)
    return set_field


@dataclass(frozen=True)
class FieldRule:
    """One compiled row of the plan."""
    entity_field: str
    wire_field: str
    kind: RuleKind
    getter: Callable[[Any], Any]
    setter: Callable[[Any, Any], None]
    to_entity: ToEntityFn | None = None
    operation: OperationFn | None = None
    async_operation: AsyncOperationFn | None = None
    to_wire: ToWireFn | None = None


class MappingPlan:
    """Ordered field rules plus the outbound allow-list and diff policy."""

    def __init__(
        self,
        wire_key_case: KeyCase | str = KeyCase.SNAKE,
        only_emit_changed: bool = True,
        params: Any = None,
    ):
        self.wire_key_case = KeyCase(wire_key_case)
        self.only_emit_changed = only_emit_changed
        self.params = params
        self._rules: list[FieldRule] = []
        self._wire_allow_list: dict[str, None] = {}

    @property
    def rules(self) -> list[FieldRule]:
        return self._rules

    @property
    def wire_allow_list(self) -> list[str]:
        return list(self._wire_allow_list)

    def rule_for(self, entity_field: str) -> FieldRule | None:
        return next((r for r in self._rules if r.entity_field == entity_field), None)

    # --- Declaration --------------------------------------------------------

    def add_field(
        self,
        keys: FieldKeys,
        to_entity: ToEntityFn | None = None,
        to_wire: ToWireFn | None = None,
    ) -> FieldRule:
        """Register one field; a single key derives the wire key by wire_key_case."""
        return self._register(keys, to_entity=to_entity, to_wire=to_wire)

    def add_fields(self, *specs: FieldKeys | dict) -> None:
        """Register many fields: keys, (entity_key, wire_key) pairs, or rule dicts."""
        for spec in specs:
            if isinstance(spec, dict):
                self._register(
                    spec.get("keys"),
                    to_entity=spec.get("to_entity"),
                    operation=spec.get("operation"),
                    async_operation=spec.get("async_operation"),
                    to_wire=spec.get("to_wire"),
                )
            else:
                self._register(spec)

    def allow_field_for_wire(self, *keys: str) -> None:
        for key in keys:
            self._wire_allow_list.setdefault(key, None)

    def allow_all_for_wire(self) -> None:
        self.allow_field_for_wire(*(r.entity_field for r in self._rules))

    def allow_all_for_wire_except(self, *keys: str) -> None:
        excluded = set(keys)
        self.allow_field_for_wire(
            *(r.entity_field for r in self._rules if r.entity_field not in excluded),
        )

    def _register(
        self,
        keys: FieldKeys | None,
        to_entity: ToEntityFn | None = None,
        operation: OperationFn | None = None,
        async_operation: AsyncOperationFn | None = None,
        to_wire: ToWireFn | None = None,
    ) -> FieldRule:
        entity_field, wire_field = self._resolve_keys(keys)
        if self.rule_for(entity_field):
            raise MappingPlanError(
                f"Field '{entity_field}' is already mapped", entity_field,
            )

        inbound = [
            (kind, fn) for kind, fn in (
                (RuleKind.TRANSFORM, to_entity),
                (RuleKind.OPERATION, operation),
                (RuleKind.ASYNC_OPERATION, async_operation),
            ) if fn is not None
        ]
        if len(inbound) > 1:
            names = ", ".join(kind.value for kind, _ in inbound)
            raise MappingPlanError(
                f"Field '{entity_field}' declares more than one inbound behaviour ({names})",
                entity_field,
            )
        kind = inbound[0][0] if inbound else RuleKind.COPY

        rule = FieldRule(
            entity_field=entity_field,
            wire_field=wire_field,
            kind=kind,
            getter=operator.attrgetter(entity_field),
            setter=_setter_for(entity_field),
            to_entity=to_entity,
            operation=operation,
            async_operation=async_operation,
            to_wire=to_wire,
        )
        self._rules.append(rule)
        return rule

    def _resolve_keys(self, keys: FieldKeys | None) -> tuple[str, str]:
        if isinstance(keys, str) and keys:
            return keys, convert(keys, self.wire_key_case)
        if isinstance(keys, (tuple, list)) and len(keys) == 2 and all(keys):
            return keys[0], keys[1]
        raise MappingPlanError(
            f"Field keys must be a name or an (entity_key, wire_key) pair, got {keys!r}",
            str(keys),
        )

    # --- Inbound ------------------------------------------------------------

    def update_entity_from_wire(
        self,
        entity: Any,
        payload: Payload | None,
        on_complete: Callable[[Any], None] | None = None,
        params: Any = None,
    ) -> MappingProcess:
        """Merge payload into the entity's baseline and start a mapping process.

        Returns the process, which is COMPLETE unless an async field suspended it.
        params overrides the plan's params for this call only.
        """
        payload = payload or {}
        self.merge_baseline(entity, payload)
        process = MappingProcess(self, entity, payload, on_complete, params)
        return process.execute()

    async def apply(self, entity: Any, payload: Payload | None, params: Any = None) -> Any:
        """Map payload onto entity and wait for any async fields to finish."""
        return await self.update_entity_from_wire(entity, payload, params=params).wait()

    @staticmethod
    def merge_baseline(entity: Any, payload: Payload) -> None:
        """Record payload as the last synced state (merged key by key)."""
        baseline = getattr(entity, "original_payload", None)
        if baseline is None:
            entity.original_payload = dict(payload)
        else:
            baseline.update(payload)

    # --- Outbound -----------------------------------------------------------

    def to_wire(self, entity: Any, ignore_keys: Iterable[str] | None = None) -> Payload:
        """Serialize wire-allowed fields, only the changed ones under only_emit_changed."""
        ignored = set(ignore_keys or ())
        baseline = getattr(entity, "original_payload", None) or {}
        wire: Payload = {}
        for rule in self._rules:
            if rule.entity_field not in self._wire_allow_list or rule.entity_field in ignored:
                continue
            if rule.to_wire:
                value = rule.to_wire(entity, rule.entity_field)
            else:
                value = rule.getter(entity)
            if (
                self.only_emit_changed
                and rule.wire_field in baseline
                and baseline[rule.wire_field] == value
            ):
                continue
            wire[rule.wire_field] = value
        return wire
