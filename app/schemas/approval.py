"""DocumentApproval API schemas.

Decision bodies (POST /approvals/{id}/actions) are validated by the workflow
action schema, not by a Pydantic model, so every field error is reported.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.domain.enums import ApprovalStatus


class EscalateRequest(BaseModel):
    """Request body for escalating a pending approval."""

    to: str = Field(..., min_length=1, max_length=64, description="User id to escalate to")


class DocumentApprovalResponse(BaseModel):
    """DocumentApproval record."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    document_id: str
    workflow_step_id: str
    approver_id: str
    status: ApprovalStatus
    comments: str | None = None
    approved_at: datetime | None = None
    deadline: datetime | None = None
    reminders_sent: int
    last_reminder_sent: datetime | None = None
    is_escalated: bool
    escalated_at: datetime | None = None
    escalated_to: str | None = None
    warning_sent_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ApprovalListResponse(BaseModel):
    """Paginated list of approvals."""

    items: list[DocumentApprovalResponse]
    skip: int
    limit: int
