"""Status blueprints: who may edit a record in each status, which fields, and which transitions."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic.alias_generators import to_camel

from brokerdesk.core.errors import ForbiddenError, ValidationFailedError
from brokerdesk.platform.security.roles import Role, RoleGroup, in_group


S = TypeVar("S", bound=StrEnum)


@dataclass(frozen=True, slots=True)
class StatusRule(Generic[S]):
    editors: RoleGroup
    editable: frozenset[str] = frozenset()
    transitions: Mapping[S, frozenset[str]] = field(default_factory=dict)
    # extra fields accepted only together with the given transition
    unlocks: Mapping[S, frozenset[str]] = field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return not self.transitions


@dataclass(frozen=True, slots=True)
class Lifecycle(Generic[S]):
    noun: str
    rules: Mapping[S, StatusRule[S]]

    def rule(self, status: S) -> StatusRule[S]:
        return self.rules[status]

    def editable_fields(self, current: S, target: S | None) -> frozenset[str]:
        rule = self.rules[current]
        allowed = set(rule.editable)
        if not rule.is_terminal:
            allowed.add("status")
        if target is not None:
            allowed |= rule.unlocks.get(target, frozenset())
        return frozenset(allowed)

    def check_update(
        self,
        current: S,
        role: Role | None,
        changes: Mapping[str, Any],
        merged: Mapping[str, Any],
    ) -> S | None:
        """Validate a patch against the blueprint; returns the target status when it changes.

        Editability is judged against ``current``; transition requirements against ``merged``.
        Sending the current status again is a plain edit.
        """

        rule = self.rules[current]
        if not in_group(role, rule.editors):
            raise ForbiddenError(f"Role cannot edit {self.noun} in status {current}")

        requested = changes.get("status")
        target = type(current)(requested) if requested is not None and requested != current else None

        if target is not None and target not in rule.transitions:
            raise ValidationFailedError.for_field("status", f"Transition from {current} to {target} is not allowed")

        allowed = self.editable_fields(current, target)
        if target is None:
            allowed |= {"status"}
        rejected = sorted(key for key in changes if key not in allowed)
        if rejected:
            raise ValidationFailedError(
                f"Fields are not editable in status {current}",
                details=[{"field": to_camel(key), "message": f"Not editable in status {current}"} for key in rejected],
            )

        if target is not None:
            missing = sorted(key for key in rule.transitions[target] if merged.get(key) in (None, ""))
            if missing:
                raise ValidationFailedError(
                    f"Missing required fields for transition to {target}",
                    details=[{"field": to_camel(key), "message": f"Required to move to {target}"} for key in missing],
                )
        return target
