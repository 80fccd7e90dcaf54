"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for DB sessions and application services.
Every service is built from infrastructure implementations here; routes
depend only on these dependencies, not on infra directly.

Read routes use get_db; write routes use get_db_transactional so the whole
request (decision, step evaluation, advancing the run, audit entries)
commits or rolls back together. Failure audit entries go through
DetachedAuditLogWriter so they survive that rollback.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.services.audit_trail import AuditTrail
from app.application.services.template_validator import TemplateValidator
from app.application.services.workflow_engine import WorkflowEngine
from app.application.use_cases.approvals import ApprovalService
from app.application.use_cases.sweeps import RunReminderSweepUseCase, RunSlaSweepUseCase
from app.application.use_cases.templates import WorkflowTemplateService
from app.application.use_cases.workflow_runs import (
    GetWorkflowRunUseCase,
    StartWorkflowRunUseCase,
)
from app.core.config import get_settings
from app.domain.exceptions import AuthorizationException
from app.infrastructure.persistence.database import get_db, get_db_transactional
from app.infrastructure.persistence.repositories import (
    AuditLogRepository,
    DocumentApprovalRepository,
    DocumentRepository,
    WorkflowRunRepository,
    WorkflowTemplateRepository,
)
from app.infrastructure.services import (
    DetachedAuditLogWriter,
    LogOnlyNotificationDispatcher,
    SqlIdentityDirectory,
    SqlTransactionScope,
)
from app.shared.context import get_current_actor_id

# Compiled JSON schemas are reused across requests
_validator = TemplateValidator()


def get_template_validator() -> TemplateValidator:
    return _validator


async def require_actor() -> str:
    """Return the acting user id; raise AuthorizationException for anonymous requests."""
    user_id = get_current_actor_id()
    if not user_id:
        raise AuthorizationException(message="An acting user is required")
    return user_id


def _audit_trail(db: AsyncSession) -> AuditTrail:
    return AuditTrail(AuditLogRepository(db), failure_writer=DetachedAuditLogWriter())


def _workflow_engine(db: AsyncSession, audit: AuditTrail) -> WorkflowEngine:
    return WorkflowEngine(
        template_repo=WorkflowTemplateRepository(db),
        run_repo=WorkflowRunRepository(db),
        approval_repo=DocumentApprovalRepository(db),
        document_repo=DocumentRepository(db),
        identity=SqlIdentityDirectory(db),
        dispatcher=LogOnlyNotificationDispatcher(),
        audit=audit,
        deadline_unit=get_settings().deadline_unit,
    )


def build_approval_service(db: AsyncSession) -> ApprovalService:
    """Build ApprovalService on one session (routes and the sweep script)."""
    audit = _audit_trail(db)
    return ApprovalService(
        approval_repo=DocumentApprovalRepository(db),
        run_repo=WorkflowRunRepository(db),
        engine=_workflow_engine(db, audit),
        identity=SqlIdentityDirectory(db),
        dispatcher=LogOnlyNotificationDispatcher(),
        validator=_validator,
        audit=audit,
        deadline_unit=get_settings().deadline_unit,
    )


def build_sweeps(db: AsyncSession) -> tuple[RunSlaSweepUseCase, RunReminderSweepUseCase]:
    """Build the SLA and reminder sweeps on one session."""
    settings = get_settings()
    approvals = build_approval_service(db)
    approval_repo = DocumentApprovalRepository(db)
    tx = SqlTransactionScope(db)
    sla = RunSlaSweepUseCase(
        approval_repo=approval_repo,
        approvals=approvals,
        identity=SqlIdentityDirectory(db),
        tx=tx,
        audit=_audit_trail(db),
        deadline_unit=settings.deadline_unit,
        batch_size=settings.sweep_batch_size,
    )
    reminders = RunReminderSweepUseCase(
        approval_repo=approval_repo,
        approvals=approvals,
        tx=tx,
        reminder_interval=timedelta(hours=settings.reminder_interval_hours),
        max_reminders=settings.max_reminders,
        batch_size=settings.sweep_batch_size,
    )
    return sla, reminders


def _template_service(db: AsyncSession) -> WorkflowTemplateService:
    return WorkflowTemplateService(
        WorkflowTemplateRepository(db),
        WorkflowRunRepository(db),
        _validator,
        _audit_trail(db),
    )


# ---- Workflow templates ----


async def get_template_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WorkflowTemplateService:
    """WorkflowTemplateService for read routes."""
    return _template_service(db)


async def get_template_service_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> WorkflowTemplateService:
    """WorkflowTemplateService for create/update/delete (request transaction)."""
    return _template_service(db)


# ---- Workflow runs ----


async def get_start_run_use_case(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> StartWorkflowRunUseCase:
    audit = _audit_trail(db)
    return StartWorkflowRunUseCase(
        template_repo=WorkflowTemplateRepository(db),
        run_repo=WorkflowRunRepository(db),
        approval_repo=DocumentApprovalRepository(db),
        engine=_workflow_engine(db, audit),
        audit=audit,
    )


async def get_run_use_case(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> GetWorkflowRunUseCase:
    return GetWorkflowRunUseCase(WorkflowRunRepository(db), DocumentApprovalRepository(db))


# ---- Approvals ----


async def get_approval_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ApprovalService:
    return build_approval_service(db)


async def get_approval_service_for_write(
    db: Annotated[AsyncSession, Depends(get_db_transactional)],
) -> ApprovalService:
    """ApprovalService for decisions, escalation and reminders (request transaction)."""
    return build_approval_service(db)


# ---- Audit log ----


async def get_audit_log_repo(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> AuditLogRepository:
    return AuditLogRepository(db)
