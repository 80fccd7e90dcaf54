"""Persistence models: ORM entities and mixins."""

from app.infrastructure.persistence.models.approval import DocumentApproval
from app.infrastructure.persistence.models.audit_log import AuditLog
from app.infrastructure.persistence.models.document import Document
from app.infrastructure.persistence.models.mixins import (
    ActorStampMixin,
    CuidMixin,
    IdentifiedModel,
    TimestampedModel,
    TimestampMixin,
)
from app.infrastructure.persistence.models.organization import (
    Department,
    Designation,
    User,
)
from app.infrastructure.persistence.models.workflow import (
    WorkflowRun,
    WorkflowStep,
    WorkflowTemplate,
    WorkflowTemplateVersion,
)

__all__ = [
    "ActorStampMixin",
    "AuditLog",
    "CuidMixin",
    "Department",
    "Designation",
    "Document",
    "DocumentApproval",
    "IdentifiedModel",
    "TimestampMixin",
    "TimestampedModel",
    "User",
    "WorkflowRun",
    "WorkflowStep",
    "WorkflowTemplate",
    "WorkflowTemplateVersion",
]
