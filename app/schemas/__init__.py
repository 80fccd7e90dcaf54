"""Pydantic request/response schemas for the API."""

from app.schemas.approval import (
    ApprovalListResponse,
    DocumentApprovalResponse,
    EscalateRequest,
)
from app.schemas.audit_log import AuditLogEntryResponse, AuditLogListResponse
from app.schemas.health import HealthResponse, ReadinessErrorResponse, ReadinessResponse
from app.schemas.workflow_run import (
    StartWorkflowRunRequest,
    StepStateResponse,
    WorkflowRunDetailResponse,
    WorkflowRunResponse,
)
from app.schemas.workflow_template import (
    FieldErrorResponse,
    TemplateValidationResponse,
    WorkflowTemplateListResponse,
    WorkflowTemplateResponse,
    WorkflowTemplateVersionResponse,
)

__all__ = [
    "ApprovalListResponse",
    "AuditLogEntryResponse",
    "AuditLogListResponse",
    "DocumentApprovalResponse",
    "EscalateRequest",
    "FieldErrorResponse",
    "HealthResponse",
    "ReadinessErrorResponse",
    "ReadinessResponse",
    "StartWorkflowRunRequest",
    "StepStateResponse",
    "TemplateValidationResponse",
    "WorkflowRunDetailResponse",
    "WorkflowRunResponse",
    "WorkflowTemplateListResponse",
    "WorkflowTemplateResponse",
    "WorkflowTemplateVersionResponse",
]
