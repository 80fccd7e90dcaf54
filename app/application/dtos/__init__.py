"""Application DTOs (no ORM dependency)."""

from app.application.dtos.audit_log import AuditLogEntryCreate, AuditLogResult
from app.application.dtos.notification import NotificationEvent
from app.application.dtos.organization import ApproverProfile, DocumentInfo
from app.application.dtos.sweep import SweepResult
from app.application.dtos.workflow import (
    WorkflowRunDetail,
    WorkflowTemplateResult,
    WorkflowTemplateVersionResult,
)

__all__ = [
    "ApproverProfile",
    "AuditLogEntryCreate",
    "AuditLogResult",
    "DocumentInfo",
    "NotificationEvent",
    "SweepResult",
    "WorkflowRunDetail",
    "WorkflowTemplateResult",
    "WorkflowTemplateVersionResult",
]
