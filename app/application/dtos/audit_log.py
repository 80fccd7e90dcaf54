"""DTOs for the audit log (append-only record of state-changing actions)."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from app.shared.enums import AuditAction, AuditEntityType, AuditStatus


@dataclass(frozen=True)
class AuditLogEntryCreate:
    """Input for appending one audit log record. Append-only; no update."""

    user_id: str | None
    action: AuditAction
    entity_type: AuditEntityType
    entity_id: str | None
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    status: AuditStatus = AuditStatus.SUCCESS
    error_message: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AuditLogResult:
    """Single audit log entry (read-model for list/get)."""

    id: str
    user_id: str | None
    action: str
    entity_type: str
    entity_id: str | None
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    status: str
    error_message: str | None
    ip_address: str | None
    user_agent: str | None
    request_id: str | None
    metadata: dict[str, Any]
    timestamp: datetime
