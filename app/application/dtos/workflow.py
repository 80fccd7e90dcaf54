"""DTOs for workflow templates, template versions and run read-models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from app.domain.entities.approval import DocumentApprovalEntity
from app.domain.entities.workflow_run import StepStateEntity, WorkflowRunEntity


@dataclass(frozen=True)
class WorkflowTemplateResult:
    """Template read-model: header fields plus the current version's definition."""

    id: str
    name: str
    description: str | None
    department: str
    file_types: list[str]
    active: bool
    current_version: int
    created_by: str | None
    created_at: datetime
    updated_at: datetime
    definition: dict[str, Any]


@dataclass(frozen=True)
class WorkflowTemplateVersionResult:
    """One immutable version of a template definition."""

    id: str
    template_id: str
    version: int
    definition: dict[str, Any]
    change_log: str | None
    created_by: str | None
    created_at: datetime


@dataclass(frozen=True)
class WorkflowRunDetail:
    """Run with its instantiated step states and approvals."""

    run: WorkflowRunEntity
    steps: list[StepStateEntity]
    approvals: list[DocumentApprovalEntity]
