"""Application use cases: one entry point per workflow."""

from app.application.use_cases.approvals import ApprovalService
from app.application.use_cases.sweeps import RunReminderSweepUseCase, RunSlaSweepUseCase
from app.application.use_cases.templates import WorkflowTemplateService
from app.application.use_cases.workflow_runs import (
    GetWorkflowRunUseCase,
    StartWorkflowRunUseCase,
)

__all__ = [
    "ApprovalService",
    "GetWorkflowRunUseCase",
    "RunReminderSweepUseCase",
    "RunSlaSweepUseCase",
    "StartWorkflowRunUseCase",
    "WorkflowTemplateService",
]
