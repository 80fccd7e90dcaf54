"""Domain enumerations for the docflow application.

Enums represent fixed sets of workflow values (step kinds, assignment kinds,
approval and step lifecycle states).
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings (e.g. for JSON schema enums)."""
        return [member.value for member in cls]


class StepType(_ValuesMixin, str, Enum):
    """Kind of work a workflow step represents."""

    APPROVAL = "approval"
    REVIEW = "review"
    SIGN = "sign"
    ROUTE = "route"
    NOTIFY = "notify"
    CONDITION = "condition"
    ACTION = "action"

    @property
    def needs_participants(self) -> bool:
        """Return whether the step creates per-assignee approval records."""
        return self in (StepType.APPROVAL, StepType.REVIEW, StepType.SIGN, StepType.ROUTE)


class AssignmentKind(_ValuesMixin, str, Enum):
    """How a step's assignees are identified."""

    USER = "user"
    ROLE = "role"
    DEPARTMENT = "department"
    DYNAMIC = "dynamic"


class RecipientKind(_ValuesMixin, str, Enum):
    """How notification recipients are identified. Has no dynamic kind."""

    USER = "user"
    ROLE = "role"
    DEPARTMENT = "department"


class DeadlineKind(_ValuesMixin, str, Enum):
    """Discriminator of a step deadline rule."""

    FIXED = "fixed"
    DYNAMIC = "dynamic"


class ConditionOperator(_ValuesMixin, str, Enum):
    """Comparison operators for step conditions."""

    EQUALS = "eq"
    NOT_EQUALS = "ne"
    GREATER_THAN = "gt"
    GREATER_EQUAL = "gte"
    LESS_THAN = "lt"
    LESS_EQUAL = "lte"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    EXISTS = "exists"


class ApprovalStatus(_ValuesMixin, str, Enum):
    """DocumentApproval lifecycle. APPROVED and REJECTED are terminal."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not ApprovalStatus.PENDING


class StepStatus(_ValuesMixin, str, Enum):
    """Lifecycle of one step within a workflow run. Latches once terminal."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    SKIPPED = "SKIPPED"

    @property
    def is_terminal(self) -> bool:
        return self is not StepStatus.ACTIVE


class RunStatus(_ValuesMixin, str, Enum):
    """Lifecycle of a document's pass through a workflow template version."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


class ParticipantAction(_ValuesMixin, str, Enum):
    """Response a participant may submit on a pending approval."""

    APPROVE = "approve"
    REJECT = "reject"
    REVIEW = "review"
    SIGN = "sign"
    COMPLETE = "complete"

    @property
    def is_affirmative(self) -> bool:
        """Every action except reject records an APPROVED decision."""
        return self is not ParticipantAction.REJECT


class SlaDecisionKind(_ValuesMixin, str, Enum):
    """Outcome of evaluating an approval against its template's SLA policy."""

    NONE = "none"
    WARN = "warn"
    ESCALATE = "escalate"
    MISSING_BACKUP = "missing_backup"


class DependencyGate(_ValuesMixin, str, Enum):
    """Readiness of a step given the state of its dependencies."""

    READY = "ready"
    WAITING = "waiting"
    BLOCKED = "blocked"
