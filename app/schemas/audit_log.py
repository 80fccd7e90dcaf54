"""Audit log API schemas (read-only)."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.shared.enums import AuditAction, AuditEntityType, AuditStatus


class AuditLogEntryResponse(BaseModel):
    """One audit entry. user_id is null for SYSTEM actions such as sweeps."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str | None
    action: AuditAction
    entity_type: AuditEntityType
    entity_id: str | None
    old_values: dict[str, Any] | None = None
    new_values: dict[str, Any] | None = None
    status: AuditStatus
    error_message: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime


class AuditLogListResponse(BaseModel):
    items: list[AuditLogEntryResponse]
    skip: int
    limit: int
