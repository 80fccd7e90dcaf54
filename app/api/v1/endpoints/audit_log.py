"""Audit log API: list audit entries (who did what, when, and what failed)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.v1.dependencies import get_audit_log_repo
from app.infrastructure.persistence.repositories.audit_log_repo import AuditLogRepository
from app.schemas.audit_log import AuditLogEntryResponse, AuditLogListResponse
from app.shared.enums import AuditEntityType, AuditStatus

router = APIRouter()


@router.get("", response_model=AuditLogListResponse)
async def list_audit_log(
    audit_repo: Annotated[AuditLogRepository, Depends(get_audit_log_repo)],
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    entity_type: AuditEntityType | None = Query(None, description="Filter by entity type"),
    entity_id: str | None = Query(None, description="Filter by entity id"),
    user_id: str | None = Query(None, description="Filter by acting user id"),
    status: AuditStatus | None = Query(None, description="Filter by outcome"),
):
    """List audit log entries, newest first (paginated, optional filters)."""
    items = await audit_repo.list_entries(
        entity_type=entity_type.value if entity_type else None,
        entity_id=entity_id,
        user_id=user_id,
        status=status.value if status else None,
        skip=skip,
        limit=limit,
    )
    return AuditLogListResponse(
        items=[AuditLogEntryResponse.model_validate(e) for e in items],
        skip=skip,
        limit=limit,
    )
