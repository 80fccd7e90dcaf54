"""Shared enumerations for the docflow application.

Cross-cutting enums used by application and infrastructure (e.g. audit,
actor type). Workflow-specific enums (e.g. StepType, ApprovalStatus) live
in app.domain.enums.
"""

from enum import Enum


class _ValuesMixin:
    """Mixin that adds a values() classmethod to str Enums."""

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid values as strings."""
        return [member.value for member in cls]


class ActorType(_ValuesMixin, str, Enum):
    """Actor type for audit tracking (who performed the action)."""

    USER = "user"
    SYSTEM = "system"


class AuditAction(_ValuesMixin, str, Enum):
    """Audit action types for workflow state changes."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    START = "START"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    ESCALATE = "ESCALATE"
    REMIND = "REMIND"
    WARN = "WARN"


class AuditStatus(_ValuesMixin, str, Enum):
    """Outcome recorded on an audit log entry."""

    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    WARNING = "WARNING"


class AuditEntityType(_ValuesMixin, str, Enum):
    """Entity types that produce audit entries."""

    WORKFLOW_TEMPLATE = "WORKFLOW_TEMPLATE"
    WORKFLOW_RUN = "WORKFLOW_RUN"
    DOCUMENT_APPROVAL = "DOCUMENT_APPROVAL"
