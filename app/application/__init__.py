"""Application layer: interfaces, services, use cases.

Depends only on domain and protocol definitions (DIP).
Infrastructure implements the interfaces (repositories, identity, notifications).
"""

from app.application.interfaces import (
    IAuditLogRepository,
    IDocumentApprovalRepository,
    IDocumentRepository,
    IIdentityDirectory,
    INotificationDispatcher,
    ITransactionScope,
    IWorkflowRunRepository,
    IWorkflowTemplateRepository,
)
from app.application.services.audit_trail import AuditTrail
from app.application.services.template_validator import TemplateValidator
from app.application.services.workflow_engine import WorkflowEngine
from app.application.use_cases import (
    ApprovalService,
    GetWorkflowRunUseCase,
    RunReminderSweepUseCase,
    RunSlaSweepUseCase,
    StartWorkflowRunUseCase,
    WorkflowTemplateService,
)

__all__ = [
    "ApprovalService",
    "AuditTrail",
    "GetWorkflowRunUseCase",
    "IAuditLogRepository",
    "IDocumentApprovalRepository",
    "IDocumentRepository",
    "IIdentityDirectory",
    "INotificationDispatcher",
    "ITransactionScope",
    "IWorkflowRunRepository",
    "IWorkflowTemplateRepository",
    "RunReminderSweepUseCase",
    "RunSlaSweepUseCase",
    "StartWorkflowRunUseCase",
    "TemplateValidator",
    "WorkflowEngine",
    "WorkflowTemplateService",
]
