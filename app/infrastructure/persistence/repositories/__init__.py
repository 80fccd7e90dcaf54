"""Persistence repositories: SQLAlchemy implementations of the application ports."""

from app.infrastructure.persistence.repositories.approval_repo import (
    DocumentApprovalRepository,
)
from app.infrastructure.persistence.repositories.audit_log_repo import AuditLogRepository
from app.infrastructure.persistence.repositories.base import BaseRepository
from app.infrastructure.persistence.repositories.document_repo import DocumentRepository
from app.infrastructure.persistence.repositories.workflow_run_repo import (
    WorkflowRunRepository,
)
from app.infrastructure.persistence.repositories.workflow_template_repo import (
    WorkflowTemplateRepository,
)

__all__ = [
    "AuditLogRepository",
    "BaseRepository",
    "DocumentApprovalRepository",
    "DocumentRepository",
    "WorkflowRunRepository",
    "WorkflowTemplateRepository",
]
