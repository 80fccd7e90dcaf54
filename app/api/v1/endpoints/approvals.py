"""Approval API: decide, escalate and remind on DocumentApproval records."""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, Request

from app.api.v1.dependencies import (
    get_approval_service,
    get_approval_service_for_write,
    require_actor,
)
from app.application.use_cases.approvals import ApprovalService
from app.core.limiter import limit_writes
from app.schemas.approval import (
    ApprovalListResponse,
    DocumentApprovalResponse,
    EscalateRequest,
)

router = APIRouter()


@router.get("/mine", response_model=ApprovalListResponse)
async def list_my_approvals(
    user_id: Annotated[str, Depends(require_actor)],
    service: Annotated[ApprovalService, Depends(get_approval_service)],
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """Pending approvals assigned or escalated to the acting user, nearest deadline first."""
    items = await service.list_for_user(user_id, skip=skip, limit=limit)
    return ApprovalListResponse(
        items=[DocumentApprovalResponse.model_validate(a) for a in items],
        skip=skip,
        limit=limit,
    )


@router.get("/{approval_id}", response_model=DocumentApprovalResponse)
async def get_approval(
    approval_id: str,
    service: Annotated[ApprovalService, Depends(get_approval_service)],
):
    approval = await service.get(approval_id)
    return DocumentApprovalResponse.model_validate(approval)


@router.post("/{approval_id}/actions", response_model=DocumentApprovalResponse)
@limit_writes
async def act_on_approval(
    request: Request,
    approval_id: str,
    payload: Annotated[dict[str, Any], Body()],
    _actor: Annotated[str, Depends(require_actor)],
    service: Annotated[ApprovalService, Depends(get_approval_service_for_write)],
):
    """Apply a workflow action ({action, remarks?, formData?}) to a pending approval."""
    approval = await service.act(approval_id, payload)
    return DocumentApprovalResponse.model_validate(approval)


@router.post("/{approval_id}/escalate", response_model=DocumentApprovalResponse)
@limit_writes
async def escalate_approval(
    request: Request,
    approval_id: str,
    body: EscalateRequest,
    _actor: Annotated[str, Depends(require_actor)],
    service: Annotated[ApprovalService, Depends(get_approval_service_for_write)],
):
    """Hand a pending approval to another user (overdue or inside the SLA warning window).

    Requires an acting user; unattended escalation belongs to the SLA sweep.
    """
    approval = await service.escalate(approval_id, body.to)
    return DocumentApprovalResponse.model_validate(approval)


@router.post("/{approval_id}/remind", response_model=DocumentApprovalResponse)
@limit_writes
async def remind_approver(
    request: Request,
    approval_id: str,
    _actor: Annotated[str, Depends(require_actor)],
    service: Annotated[ApprovalService, Depends(get_approval_service_for_write)],
):
    """Send a reminder to the approver of a pending approval."""
    approval = await service.remind(approval_id)
    return DocumentApprovalResponse.model_validate(approval)
