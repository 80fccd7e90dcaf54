"""Repository interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
All types reference application DTOs or domain entities only; no infrastructure imports.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

from app.domain.enums import RunStatus, StepStatus, StepType

if TYPE_CHECKING:
    from app.application.dtos.audit_log import AuditLogEntryCreate, AuditLogResult
    from app.application.dtos.organization import DocumentInfo
    from app.application.dtos.workflow import (
        WorkflowTemplateResult,
        WorkflowTemplateVersionResult,
    )
    from app.domain.entities.approval import DocumentApprovalEntity
    from app.domain.entities.workflow_run import StepStateEntity, WorkflowRunEntity


# Workflow template repository interface
class IWorkflowTemplateRepository(Protocol):
    """Protocol for workflow templates and their immutable versions."""

    async def create_template(
        self,
        definition: dict[str, Any],
        created_by: str | None,
        change_log: str | None = None,
    ) -> WorkflowTemplateResult:
        """Create a template header and its version 1 from a validated definition."""

    async def add_version(
        self,
        template_id: str,
        definition: dict[str, Any],
        created_by: str | None,
        change_log: str | None = None,
    ) -> WorkflowTemplateResult:
        """Append the next version, refresh header fields, and bump current_version."""

    async def get_by_id(self, template_id: str) -> WorkflowTemplateResult | None:
        """Return template with its current definition."""

    async def list_templates(
        self,
        skip: int = 0,
        limit: int = 100,
        department: str | None = None,
        active: bool | None = None,
    ) -> list[WorkflowTemplateResult]:
        """Return templates ordered by name."""

    async def list_versions(self, template_id: str) -> list[WorkflowTemplateVersionResult]:
        """Return all versions of a template (newest first)."""

    async def get_version(self, version_id: str) -> WorkflowTemplateVersionResult | None:
        """Return one template version by id."""

    async def get_current_version(
        self, template_id: str
    ) -> WorkflowTemplateVersionResult | None:
        """Return the version a new run would pin."""

    async def delete(self, template_id: str) -> bool:
        """Delete template and its versions. Returns False if not found."""


# Workflow run repository interface
class IWorkflowRunRepository(Protocol):
    """Protocol for workflow runs and their step states."""

    async def create_run(
        self,
        document_id: str,
        template_id: str,
        template_version_id: str,
        initiated_by: str | None,
        started_at: datetime,
    ) -> WorkflowRunEntity:
        """Create an ACTIVE run pinned to a template version."""

    async def get_run(self, run_id: str, for_update: bool = False) -> WorkflowRunEntity | None:
        """Return run by id; for_update serializes step advancement of the run."""

    async def get_active_run_for_document(self, document_id: str) -> WorkflowRunEntity | None:
        """Return the ACTIVE run of a document, if any."""

    async def count_by_template(self, template_id: str) -> int:
        """Return how many runs (any status) reference the template."""

    async def set_run_status(
        self, run_id: str, status: RunStatus, completed_at: datetime | None
    ) -> WorkflowRunEntity:
        """Update run status (only while ACTIVE)."""

    async def create_step_state(
        self,
        run_id: str,
        step_key: str,
        step_type: StepType,
        status: StepStatus,
        required_approvals: int,
        deadline: datetime | None,
        activated_at: datetime,
    ) -> StepStateEntity:
        """Create the state row for one instantiated step. Unique per (run, step_key)."""

    async def get_step_state(
        self, step_state_id: str, for_update: bool = False
    ) -> StepStateEntity | None:
        """Return step state; for_update takes a row lock until the transaction ends."""

    async def list_step_states(self, run_id: str) -> list[StepStateEntity]:
        """Return all step states of a run."""

    async def latch_step_status(
        self, step_state_id: str, status: StepStatus, completed_at: datetime
    ) -> StepStateEntity | None:
        """Move an ACTIVE step to a terminal status. Returns None if it was already terminal."""


# DocumentApproval repository interface
class IDocumentApprovalRepository(Protocol):
    """Protocol for DocumentApproval records (never deleted)."""

    async def create(
        self,
        document_id: str,
        workflow_step_id: str,
        approver_id: str,
        deadline: datetime | None,
        metadata: dict[str, Any] | None = None,
    ) -> DocumentApprovalEntity:
        """Create a PENDING approval. Raises DuplicateAssignmentException on (document, step, approver) clash."""

    async def get_by_id(self, approval_id: str) -> DocumentApprovalEntity | None:
        """Return approval by id."""

    async def list_by_step(self, workflow_step_id: str) -> list[DocumentApprovalEntity]:
        """Return all sibling approvals of one step state."""

    async def list_by_steps(self, workflow_step_ids: list[str]) -> list[DocumentApprovalEntity]:
        """Return approvals for several step states."""

    async def list_pending_for_user(
        self, user_id: str, skip: int = 0, limit: int = 100
    ) -> list[DocumentApprovalEntity]:
        """Return PENDING approvals where the user is approver or escalation target."""

    async def list_pending(
        self, after_id: str | None = None, limit: int = 200
    ) -> list[DocumentApprovalEntity]:
        """Return PENDING approvals of ACTIVE steps ordered by id, starting after after_id (keyset paging)."""

    async def compare_and_swap(
        self, before: DocumentApprovalEntity, after: DocumentApprovalEntity
    ) -> DocumentApprovalEntity:
        """Persist after only if the stored row is still PENDING.

        Raises StateConflictException when the row was decided concurrently.
        """

    async def increment_reminders(
        self, approval_id: str, sent_at: datetime
    ) -> DocumentApprovalEntity:
        """Atomically add one reminder to a PENDING approval.

        Raises StateConflictException when the row is no longer PENDING.
        """


# Audit log repository interface
class IAuditLogRepository(Protocol):
    """Protocol for the append-only audit log."""

    async def create(self, entry: AuditLogEntryCreate) -> AuditLogResult:
        """Append one audit log entry."""

    async def list_entries(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        user_id: str | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AuditLogResult]:
        """Return entries newest first, filtered by the given fields."""


# Document repository interface (read-only collaborator)
class IDocumentRepository(Protocol):
    """Protocol for reading the documents routed through workflows."""

    async def get_by_id(self, document_id: str) -> DocumentInfo | None:
        """Return document by id."""
