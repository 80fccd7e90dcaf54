"""Workflow run API: start a document on a template and read run state."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.api.v1.dependencies import get_run_use_case, get_start_run_use_case
from app.application.use_cases.workflow_runs import (
    GetWorkflowRunUseCase,
    StartWorkflowRunUseCase,
)
from app.core.limiter import limit_writes
from app.schemas.workflow_run import StartWorkflowRunRequest, WorkflowRunDetailResponse

router = APIRouter()


@router.post("", response_model=WorkflowRunDetailResponse, status_code=201)
@limit_writes
async def start_workflow_run(
    request: Request,
    body: StartWorkflowRunRequest,
    use_case: Annotated[StartWorkflowRunUseCase, Depends(get_start_run_use_case)],
):
    """Start a document on the current version of an active template."""
    detail = await use_case.execute(body.document_id, body.template_id)
    return WorkflowRunDetailResponse.model_validate(detail)


@router.get("/{run_id}", response_model=WorkflowRunDetailResponse)
async def get_workflow_run(
    run_id: str,
    use_case: Annotated[GetWorkflowRunUseCase, Depends(get_run_use_case)],
):
    """Get a run with its step states and approvals."""
    detail = await use_case.execute(run_id)
    return WorkflowRunDetailResponse.model_validate(detail)
