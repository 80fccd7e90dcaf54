"""Workflow run use cases: start and read."""

from app.application.use_cases.workflow_runs.run_operations import (
    GetWorkflowRunUseCase,
    StartWorkflowRunUseCase,
)

__all__ = ["GetWorkflowRunUseCase", "StartWorkflowRunUseCase"]
