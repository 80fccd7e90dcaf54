"""Application interfaces (ports): repository and service protocols."""

from app.application.interfaces.repositories import (
    IAuditLogRepository,
    IDocumentApprovalRepository,
    IDocumentRepository,
    IWorkflowRunRepository,
    IWorkflowTemplateRepository,
)
from app.application.interfaces.services import (
    IIdentityDirectory,
    INotificationDispatcher,
    ITransactionScope,
)

__all__ = [
    "IAuditLogRepository",
    "IDocumentApprovalRepository",
    "IDocumentRepository",
    "IIdentityDirectory",
    "INotificationDispatcher",
    "ITransactionScope",
    "IWorkflowRunRepository",
    "IWorkflowTemplateRepository",
]
