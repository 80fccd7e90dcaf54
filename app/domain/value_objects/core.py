"""Domain value objects for the docflow application.

Value objects are immutable types that represent workflow definition
concepts with self-validation. They have no identity, only value.

Deadline rules are a tagged union: a step deadline is either a
FixedDeadline or a DynamicDeadline, never a record whose required fields
depend on a sibling discriminator.
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar

from app.domain.enums import (
    AssignmentKind,
    ConditionOperator,
    DeadlineKind,
    RecipientKind,
)


def _normalize_value(value: str | list[str] | tuple[str, ...], label: str) -> str | tuple[str, ...]:
    """Accept a non-empty string or a non-empty list of non-empty strings."""
    if isinstance(value, str):
        if not value:
            raise ValueError(f"{label} value must be a non-empty string")
        return value
    items = tuple(value)
    if not items:
        raise ValueError(f"{label} value list must not be empty")
    if not all(isinstance(v, str) and v for v in items):
        raise ValueError(f"{label} value list must contain non-empty strings")
    return items


@dataclass(frozen=True)
class AssignmentRule:
    """Who a step is assigned to.

    For user/role/department the value names ids or keys directly; for
    dynamic the value is a lookup key resolved by the identity directory
    when the step is instantiated.
    """

    kind: AssignmentKind
    value: str | tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", AssignmentKind(self.kind))
        object.__setattr__(self, "value", _normalize_value(self.value, "Assignment"))

    @property
    def values(self) -> tuple[str, ...]:
        """Return the value as a tuple regardless of its submitted shape."""
        return (self.value,) if isinstance(self.value, str) else self.value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AssignmentRule":
        return cls(kind=AssignmentKind(data["type"]), value=data["value"])

    def to_dict(self) -> dict[str, Any]:
        value = self.value if isinstance(self.value, str) else list(self.value)
        return {"type": self.kind.value, "value": value}


@dataclass(frozen=True)
class RecipientRule:
    """Who receives a step notification. Unlike AssignmentRule, never dynamic."""

    kind: RecipientKind
    value: str | tuple[str, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "kind", RecipientKind(self.kind))
        object.__setattr__(self, "value", _normalize_value(self.value, "Recipient"))

    @property
    def values(self) -> tuple[str, ...]:
        return (self.value,) if isinstance(self.value, str) else self.value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RecipientRule":
        return cls(kind=RecipientKind(data["type"]), value=data["value"])

    def to_dict(self) -> dict[str, Any]:
        value = self.value if isinstance(self.value, str) else list(self.value)
        return {"type": self.kind.value, "value": value}


@dataclass(frozen=True)
class FixedDeadline:
    """Deadline of a fixed number of configured units after step activation."""

    kind: ClassVar[DeadlineKind] = DeadlineKind.FIXED

    value: float

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise ValueError("Fixed deadline value must be a number")
        if self.value < 0:
            raise ValueError("Fixed deadline value must not be negative")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "value": self.value}


@dataclass(frozen=True)
class DynamicDeadline:
    """Deadline computed from an arithmetic formula over document metadata."""

    kind: ClassVar[DeadlineKind] = DeadlineKind.DYNAMIC

    formula: str

    def __post_init__(self) -> None:
        if not isinstance(self.formula, str) or not self.formula.strip():
            raise ValueError("Dynamic deadline formula must be a non-empty string")

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind.value, "formula": self.formula}


DeadlineRule = FixedDeadline | DynamicDeadline


def deadline_from_dict(data: dict[str, Any]) -> DeadlineRule:
    """Build the deadline variant named by data['type'].

    The field belonging to the other variant is ignored.

    Raises:
        ValueError: If the type is unknown or the variant's field is invalid.
    """
    kind = DeadlineKind(data["type"])
    if kind is DeadlineKind.FIXED:
        return FixedDeadline(value=data.get("value"))
    return DynamicDeadline(formula=data.get("formula"))


@dataclass(frozen=True)
class StepCondition:
    """Predicate over document metadata: field <operator> value."""

    field: str
    operator: ConditionOperator
    value: Any = None

    def __post_init__(self) -> None:
        if not self.field:
            raise ValueError("Condition field must be a non-empty string")
        object.__setattr__(self, "operator", ConditionOperator(self.operator))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StepCondition":
        return cls(field=data["field"], operator=data["operator"], value=data.get("value"))

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "operator": self.operator.value, "value": self.value}


@dataclass(frozen=True)
class StepActionConfig:
    """Opaque action handed to the dispatcher when an action step runs."""

    type: str
    config: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StepActionConfig":
        return cls(type=data["type"], config=dict(data.get("config") or {}))

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "config": dict(self.config)}


@dataclass(frozen=True)
class NotificationRule:
    """Notification template sent to a recipients block when a step event fires."""

    event: str
    template: str
    recipients: RecipientRule

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationRule":
        return cls(
            event=data["event"],
            template=data["template"],
            recipients=RecipientRule.from_dict(data["recipients"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "event": self.event,
            "template": self.template,
            "recipients": self.recipients.to_dict(),
        }


@dataclass(frozen=True)
class SlaPolicy:
    """Template-wide SLA policy.

    warning_threshold is expressed in the same unit as step deadlines.
    backup_assignees maps a role or department key to ordered user ids.
    """

    DEFAULT_WARNING_THRESHOLD: ClassVar[int] = 2

    warning_threshold: int = DEFAULT_WARNING_THRESHOLD
    auto_reassign: bool = False
    backup_assignees: dict[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if isinstance(self.warning_threshold, bool) or self.warning_threshold < 1:
            raise ValueError("SLA warning threshold must be an integer >= 1")
        object.__setattr__(
            self,
            "backup_assignees",
            {key: tuple(users) for key, users in self.backup_assignees.items()},
        )

    def backups_for(self, key: str | None) -> tuple[str, ...]:
        """Return configured backups for a role or department key (empty if none)."""
        if not key:
            return ()
        return self.backup_assignees.get(key, ())

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "SlaPolicy":
        data = data or {}
        return cls(
            warning_threshold=data.get("warningThreshold", cls.DEFAULT_WARNING_THRESHOLD),
            auto_reassign=data.get("autoReassign", False),
            backup_assignees=data.get("backupAssignees") or {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "warningThreshold": self.warning_threshold,
            "autoReassign": self.auto_reassign,
            "backupAssignees": {k: list(v) for k, v in self.backup_assignees.items()},
        }
