"""Domain entities and aggregates.

Pure domain models; no ORM or persistence concerns.
"""

from app.domain.entities.approval import DocumentApprovalEntity
from app.domain.entities.workflow import StepDefinition, WorkflowTemplateEntity
from app.domain.entities.workflow_run import (
    StepStateEntity,
    WorkflowRunEntity,
    settle_run,
)

__all__ = [
    "DocumentApprovalEntity",
    "StepDefinition",
    "StepStateEntity",
    "WorkflowRunEntity",
    "WorkflowTemplateEntity",
    "settle_run",
]
