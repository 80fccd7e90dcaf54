"""Workflow run API schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.enums import RunStatus, StepStatus, StepType
from app.schemas.approval import DocumentApprovalResponse


class StartWorkflowRunRequest(BaseModel):
    """Request body for starting a document on a workflow template."""

    document_id: str = Field(..., min_length=1, max_length=64)
    template_id: str = Field(..., min_length=1, max_length=64)


class WorkflowRunResponse(BaseModel):
    """Workflow run header."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    document_id: str
    template_id: str
    template_version_id: str
    status: RunStatus
    initiated_by: str | None
    started_at: datetime
    completed_at: datetime | None


class StepStateResponse(BaseModel):
    """State of one instantiated step."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    step_key: str
    step_type: StepType
    status: StepStatus
    required_approvals: int
    deadline: datetime | None
    activated_at: datetime
    completed_at: datetime | None


class WorkflowRunDetailResponse(BaseModel):
    """Run with step states and approvals."""

    model_config = ConfigDict(from_attributes=True)

    run: WorkflowRunResponse
    steps: list[StepStateResponse]
    approvals: list[DocumentApprovalResponse]
