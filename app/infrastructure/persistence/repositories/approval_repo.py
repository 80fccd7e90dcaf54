"""DocumentApproval repository. Transitions are compare-and-swap on PENDING status."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.entities.approval import DocumentApprovalEntity
from app.domain.enums import ApprovalStatus, StepStatus
from app.domain.exceptions import (
    DuplicateAssignmentException,
    ResourceNotFoundException,
    StateConflictException,
)
from app.infrastructure.persistence.models.approval import DocumentApproval
from app.infrastructure.persistence.models.workflow import WorkflowStep
from app.infrastructure.persistence.repositories.base import BaseRepository

_PENDING = ApprovalStatus.PENDING.value


def _orm_to_entity(row: DocumentApproval) -> DocumentApprovalEntity:
    """Map ORM to domain entity."""
    return DocumentApprovalEntity(
        id=row.id,
        document_id=row.document_id,
        workflow_step_id=row.workflow_step_id,
        approver_id=row.approver_id,
        status=ApprovalStatus(row.status),
        comments=row.comments,
        approved_at=row.approved_at,
        deadline=row.deadline,
        reminders_sent=row.reminders_sent,
        last_reminder_sent=row.last_reminder_sent,
        is_escalated=row.is_escalated,
        escalated_at=row.escalated_at,
        escalated_to=row.escalated_to,
        warning_sent_at=row.warning_sent_at,
        metadata=dict(row.approval_metadata or {}),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _mutable_values(entity: DocumentApprovalEntity) -> dict[str, Any]:
    return {
        "status": entity.status.value,
        "comments": entity.comments,
        "approved_at": entity.approved_at,
        "is_escalated": entity.is_escalated,
        "escalated_at": entity.escalated_at,
        "escalated_to": entity.escalated_to,
        "warning_sent_at": entity.warning_sent_at,
        "approval_metadata": entity.metadata,
        "updated_at": entity.updated_at or func.now(),
    }


class DocumentApprovalRepository(BaseRepository[DocumentApproval]):
    """DocumentApproval repository. Records are never deleted."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, DocumentApproval)

    async def create(
        self,
        document_id: str,
        workflow_step_id: str,
        approver_id: str,
        deadline: datetime | None,
        metadata: dict[str, Any] | None = None,
    ) -> DocumentApprovalEntity:
        row = DocumentApproval(
            document_id=document_id,
            workflow_step_id=workflow_step_id,
            approver_id=approver_id,
            status=_PENDING,
            deadline=deadline,
            reminders_sent=0,
            is_escalated=False,
            approval_metadata=metadata or {},
        )
        try:
            async with self.db.begin_nested():
                self.db.add(row)
                await self.db.flush()
        except IntegrityError as e:
            raise DuplicateAssignmentException(
                document_id, workflow_step_id, approver_id
            ) from e
        await self.db.refresh(row)
        return _orm_to_entity(row)

    async def get_by_id(self, approval_id: str) -> DocumentApprovalEntity | None:
        row = await self._get_row(approval_id)
        return _orm_to_entity(row) if row else None

    async def list_by_step(self, workflow_step_id: str) -> list[DocumentApprovalEntity]:
        return await self.list_by_steps([workflow_step_id])

    async def list_by_steps(self, workflow_step_ids: list[str]) -> list[DocumentApprovalEntity]:
        if not workflow_step_ids:
            return []
        result = await self.db.execute(
            select(DocumentApproval)
            .where(DocumentApproval.workflow_step_id.in_(workflow_step_ids))
            .order_by(DocumentApproval.created_at.asc(), DocumentApproval.id.asc())
            .execution_options(populate_existing=True)
        )
        return [_orm_to_entity(r) for r in result.scalars().all()]

    async def list_pending_for_user(
        self, user_id: str, skip: int = 0, limit: int = 100
    ) -> list[DocumentApprovalEntity]:
        result = await self.db.execute(
            select(DocumentApproval)
            .where(
                DocumentApproval.status == _PENDING,
                or_(
                    DocumentApproval.approver_id == user_id,
                    and_(
                        DocumentApproval.is_escalated.is_(True),
                        DocumentApproval.escalated_to == user_id,
                    ),
                ),
            )
            .order_by(
                DocumentApproval.deadline.asc().nulls_last(),
                DocumentApproval.created_at.asc(),
            )
            .offset(skip)
            .limit(limit)
        )
        return [_orm_to_entity(r) for r in result.scalars().all()]

    async def list_pending(
        self, after_id: str | None = None, limit: int = 200
    ) -> list[DocumentApprovalEntity]:
        """Pending approvals whose step is still ACTIVE, by id; leftovers of settled steps are skipped."""
        stmt = (
            select(DocumentApproval)
            .join(WorkflowStep, WorkflowStep.id == DocumentApproval.workflow_step_id)
            .where(
                DocumentApproval.status == _PENDING,
                WorkflowStep.status == StepStatus.ACTIVE.value,
            )
        )
        if after_id is not None:
            stmt = stmt.where(DocumentApproval.id > after_id)
        result = await self.db.execute(stmt.order_by(DocumentApproval.id.asc()).limit(limit))
        return [_orm_to_entity(r) for r in result.scalars().all()]

    async def _conflict(self, approval_id: str, attempted: str) -> StateConflictException:
        current = await self._get_row(approval_id)
        if current is None:
            raise ResourceNotFoundException("document_approval", approval_id)
        return StateConflictException(approval_id, current.status, attempted)

    async def compare_and_swap(
        self, before: DocumentApprovalEntity, after: DocumentApprovalEntity
    ) -> DocumentApprovalEntity:
        result = await self.db.execute(
            update(DocumentApproval)
            .where(DocumentApproval.id == before.id, DocumentApproval.status == _PENDING)
            .values(**_mutable_values(after))
            .returning(DocumentApproval)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            attempted = after.status.value if after.status != before.status else "update"
            raise await self._conflict(before.id, attempted)
        return _orm_to_entity(row)

    async def increment_reminders(
        self, approval_id: str, sent_at: datetime
    ) -> DocumentApprovalEntity:
        result = await self.db.execute(
            update(DocumentApproval)
            .where(DocumentApproval.id == approval_id, DocumentApproval.status == _PENDING)
            .values(
                reminders_sent=DocumentApproval.reminders_sent + 1,
                last_reminder_sent=sent_at,
                updated_at=sent_at,
            )
            .returning(DocumentApproval)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            raise await self._conflict(approval_id, "remind")
        return _orm_to_entity(row)
