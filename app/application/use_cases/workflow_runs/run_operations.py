"""Workflow run use cases: start a document on a template, read a run."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from app.application.dtos.workflow import WorkflowRunDetail
from app.application.services.audit_trail import AuditedChange, AuditTrail, audited
from app.domain.entities.workflow import WorkflowTemplateEntity
from app.domain.exceptions import (
    ResourceNotFoundException,
    RunAlreadyActiveException,
    ValidationException,
)
from app.shared.context import get_current_actor_id
from app.shared.enums import AuditAction, AuditEntityType
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import add_span_attributes, traced
from app.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from app.application.interfaces.repositories import (
        IDocumentApprovalRepository,
        IWorkflowRunRepository,
        IWorkflowTemplateRepository,
    )
    from app.application.services.workflow_engine import WorkflowEngine

logger = get_logger(__name__)


async def _run_detail(
    run_id: str,
    run_repo: IWorkflowRunRepository,
    approval_repo: IDocumentApprovalRepository,
) -> WorkflowRunDetail:
    run = await run_repo.get_run(run_id)
    if run is None:
        raise ResourceNotFoundException("workflow_run", run_id)
    steps = await run_repo.list_step_states(run_id)
    approvals = await approval_repo.list_by_steps([s.id for s in steps]) if steps else []
    return WorkflowRunDetail(run=run, steps=steps, approvals=approvals)


class StartWorkflowRunUseCase:
    """Starts a document on the current version of an active template.

    The run pins the version it started on; root steps are instantiated
    immediately and every step whose dependencies settle on the way is
    instantiated too (notify/condition/action chains run through).
    """

    def __init__(
        self,
        template_repo: IWorkflowTemplateRepository,
        run_repo: IWorkflowRunRepository,
        approval_repo: IDocumentApprovalRepository,
        engine: WorkflowEngine,
        audit: AuditTrail,
    ) -> None:
        self._template_repo = template_repo
        self._run_repo = run_repo
        self._approval_repo = approval_repo
        self._engine = engine
        self._audit = audit

    @traced("workflow_runs.start")
    async def execute(
        self, document_id: str, template_id: str, now: datetime | None = None
    ) -> WorkflowRunDetail:
        """Start the workflow and return the run with its first steps and approvals.

        Raises:
            ResourceNotFoundException: If the document or template does not exist.
            ValidationException: If the template is inactive or excludes the document's file type.
            RunAlreadyActiveException: If the document already has an active run.
        """
        add_span_attributes(document_id=document_id, template_id=template_id)
        run_id = await self._start(
            document_id=document_id, template_id=template_id, now=now or utc_now()
        )
        return await _run_detail(run_id, self._run_repo, self._approval_repo)

    @audited(AuditEntityType.WORKFLOW_RUN, AuditAction.START, id_param="document_id")
    async def _start(self, document_id: str, template_id: str, now: datetime) -> AuditedChange:
        document = await self._engine.load_document(document_id)
        header = await self._template_repo.get_by_id(template_id)
        if header is None:
            raise ResourceNotFoundException("workflow_template", template_id)
        if not header.active:
            raise ValidationException(
                f"Workflow template {template_id} is not active", field="templateId"
            )
        if header.file_types and document.file_type not in header.file_types:
            raise ValidationException(
                f"Workflow template {template_id} does not accept file type "
                f"{document.file_type!r}",
                field="documentId",
            )
        active = await self._run_repo.get_active_run_for_document(document_id)
        if active is not None:
            raise RunAlreadyActiveException(document_id, active.id)

        version = await self._template_repo.get_current_version(template_id)
        if version is None:
            raise ResourceNotFoundException("workflow_template_version", template_id)
        template = WorkflowTemplateEntity.from_definition(
            template_id, version.definition, version.version, version.id
        )
        run = await self._run_repo.create_run(
            document_id=document_id,
            template_id=template_id,
            template_version_id=version.id,
            initiated_by=get_current_actor_id(),
            started_at=now,
        )
        logger.info(
            "Started workflow run %s for document %s on template %s v%d",
            run.id,
            document_id,
            template_id,
            version.version,
        )
        await self._engine.advance(run, now, template, document)
        return AuditedChange(run.id, None, run, result=run.id)


class GetWorkflowRunUseCase:
    """Reads a run with its step states and approvals."""

    def __init__(
        self,
        run_repo: IWorkflowRunRepository,
        approval_repo: IDocumentApprovalRepository,
    ) -> None:
        self._run_repo = run_repo
        self._approval_repo = approval_repo

    async def execute(self, run_id: str) -> WorkflowRunDetail:
        return await _run_detail(run_id, self._run_repo, self._approval_repo)
