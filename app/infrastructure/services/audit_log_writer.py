"""Detached audit log writer: appends entries in their own session and transaction.

Used for FAILURE entries, which must survive the rollback of the request
transaction that failed.
"""

from __future__ import annotations

from app.application.dtos.audit_log import AuditLogEntryCreate, AuditLogResult
from app.infrastructure.persistence import database
from app.infrastructure.persistence.repositories.audit_log_repo import AuditLogRepository


class DetachedAuditLogWriter:
    """IAuditLogRepository implementation that commits each entry independently."""

    async def create(self, entry: AuditLogEntryCreate) -> AuditLogResult:
        """Append one entry in a new session; commits before returning."""
        database._ensure_engine()
        if database.AsyncSessionLocal is None:
            raise RuntimeError("Detached audit writer used without a configured database")
        async with database.AsyncSessionLocal() as session:
            async with session.begin():
                return await AuditLogRepository(session).create(entry)

    async def list_entries(
        self,
        entity_type: str | None = None,
        entity_id: str | None = None,
        user_id: str | None = None,
        status: str | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[AuditLogResult]:
        database._ensure_engine()
        if database.AsyncSessionLocal is None:
            return []
        async with database.AsyncSessionLocal() as session:
            return await AuditLogRepository(session).list_entries(
                entity_type=entity_type,
                entity_id=entity_id,
                user_id=user_id,
                status=status,
                skip=skip,
                limit=limit,
            )
