"""Workflow template operations: validate, create (v1), update (new version), delete, query."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from app.application.services.audit_trail import AuditedChange, AuditTrail, audited
from app.domain.exceptions import ResourceNotFoundException, TemplateInUseException
from app.shared.context import get_current_actor_id
from app.shared.enums import AuditAction, AuditEntityType
from app.shared.telemetry.logging import get_logger

if TYPE_CHECKING:
    from app.application.dtos.workflow import (
        WorkflowTemplateResult,
        WorkflowTemplateVersionResult,
    )
    from app.application.interfaces.repositories import (
        IWorkflowRunRepository,
        IWorkflowTemplateRepository,
    )
    from app.application.services.template_validator import FieldError, TemplateValidator

logger = get_logger(__name__)


class WorkflowTemplateService:
    """Create and query workflow templates. Every write validates the full definition first."""

    def __init__(
        self,
        template_repo: IWorkflowTemplateRepository,
        run_repo: IWorkflowRunRepository,
        validator: TemplateValidator,
        audit: AuditTrail,
    ) -> None:
        self._template_repo = template_repo
        self._run_repo = run_repo
        self._validator = validator
        self._audit = audit

    def validate(self, payload: Any) -> list[FieldError]:
        """Return every field error of a template payload without persisting it."""
        return self._validator.validate_template(payload)

    async def create_template(
        self, payload: dict[str, Any], change_log: str | None = None
    ) -> WorkflowTemplateResult:
        """Validate and persist a template as version 1.

        Raises:
            ValidationException: With every field error when the payload is invalid.
        """
        return await self._create(payload=payload, change_log=change_log)

    @audited(AuditEntityType.WORKFLOW_TEMPLATE, AuditAction.CREATE)
    async def _create(
        self, payload: dict[str, Any], change_log: str | None
    ) -> AuditedChange:
        definition = self._validator.normalize_template(payload)
        created = await self._template_repo.create_template(
            definition=definition,
            created_by=get_current_actor_id(),
            change_log=change_log,
        )
        logger.info("Created workflow template %s (%s)", created.id, created.name)
        return AuditedChange(created.id, None, created)

    async def update_template(
        self,
        template_id: str,
        payload: dict[str, Any],
        change_log: str | None = None,
    ) -> WorkflowTemplateResult:
        """Validate the new definition and append it as the next version.

        Runs already started keep the version they pinned.

        Raises:
            ResourceNotFoundException: If the template does not exist.
            ValidationException: With every field error when the payload is invalid.
        """
        return await self._update(
            template_id=template_id, payload=payload, change_log=change_log
        )

    @audited(AuditEntityType.WORKFLOW_TEMPLATE, AuditAction.UPDATE, id_param="template_id")
    async def _update(
        self, template_id: str, payload: dict[str, Any], change_log: str | None
    ) -> AuditedChange:
        before = await self.get_template(template_id)
        definition = self._validator.normalize_template(payload)
        after = await self._template_repo.add_version(
            template_id=template_id,
            definition=definition,
            created_by=get_current_actor_id(),
            change_log=change_log,
        )
        logger.info(
            "Workflow template %s updated to version %d", template_id, after.current_version
        )
        return AuditedChange(template_id, before, after)

    async def delete_template(self, template_id: str) -> None:
        """Delete a template that no workflow run references.

        Raises:
            ResourceNotFoundException: If the template does not exist.
            TemplateInUseException: If any run (active or finished) pinned one of its versions.
        """
        await self._delete(template_id=template_id)

    @audited(AuditEntityType.WORKFLOW_TEMPLATE, AuditAction.DELETE, id_param="template_id")
    async def _delete(self, template_id: str) -> AuditedChange:
        before = await self.get_template(template_id)
        run_count = await self._run_repo.count_by_template(template_id)
        if run_count > 0:
            raise TemplateInUseException(template_id, run_count)
        if not await self._template_repo.delete(template_id):
            raise ResourceNotFoundException("workflow_template", template_id)
        return AuditedChange(template_id, before, None, result=True)

    async def get_template(self, template_id: str) -> WorkflowTemplateResult:
        template = await self._template_repo.get_by_id(template_id)
        if template is None:
            raise ResourceNotFoundException("workflow_template", template_id)
        return template

    async def list_templates(
        self,
        skip: int = 0,
        limit: int = 100,
        department: str | None = None,
        active: bool | None = None,
    ) -> list[WorkflowTemplateResult]:
        return await self._template_repo.list_templates(
            skip=skip, limit=limit, department=department, active=active
        )

    async def list_versions(self, template_id: str) -> list[WorkflowTemplateVersionResult]:
        """Return every version of a template, newest first."""
        await self.get_template(template_id)
        return await self._template_repo.list_versions(template_id)
