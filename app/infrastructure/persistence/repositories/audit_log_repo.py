"""Audit log repository (implements IAuditLogRepository). Append and list; nothing else."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.audit_log import AuditLogEntryCreate, AuditLogResult
from app.infrastructure.persistence.models.audit_log import AuditLog


def _orm_to_result(row: AuditLog) -> AuditLogResult:
    return AuditLogResult(
        id=row.id,
        user_id=row.user_id,
        action=row.action,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        old_values=row.old_values,
        new_values=row.new_values,
        status=row.status,
        error_message=row.error_message,
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        request_id=row.request_id,
        metadata=row.entry_metadata or {},
        timestamp=row.timestamp,
    )


class AuditLogRepository:
    """Appends audit entries inside the caller's session and transaction."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def create(self, entry: AuditLogEntryCreate) -> AuditLogResult:
        row = AuditLog(
            user_id=entry.user_id,
            action=entry.action.value,
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            old_values=entry.old_values,
            new_values=entry.new_values,
            status=entry.status.value,
            error_message=entry.error_message,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            request_id=entry.request_id,
            entry_metadata=dict(entry.metadata),
        )
        self.db.add(row)
        await self.db.flush()
        # timestamp comes from the server default
        await self.db.refresh(row)
        return _orm_to_result(row)

    async def list_entries(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        user_id: str | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AuditLogResult]:
        """Entries matching every given filter, newest first."""
        filters = [
            (AuditLog.entity_type, entity_type),
            (AuditLog.entity_id, entity_id),
            (AuditLog.user_id, user_id),
            (AuditLog.status, status),
        ]
        stmt = (
            select(AuditLog)
            .where(*(column == value for column, value in filters if value is not None))
            .order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [_orm_to_result(r) for r in result.scalars().all()]
