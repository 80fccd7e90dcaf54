"""Workflow run repository: runs and their step states."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain.entities.workflow_run import StepStateEntity, WorkflowRunEntity
from app.domain.enums import RunStatus, StepStatus, StepType
from app.domain.exceptions import ResourceNotFoundException, StateConflictException
from app.infrastructure.persistence.models.workflow import WorkflowRun, WorkflowStep
from app.infrastructure.persistence.repositories.base import BaseRepository


def _run_to_entity(row: WorkflowRun) -> WorkflowRunEntity:
    return WorkflowRunEntity(
        id=row.id,
        document_id=row.document_id,
        template_id=row.template_id,
        template_version_id=row.template_version_id,
        status=RunStatus(row.status),
        initiated_by=row.initiated_by,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )


def _step_to_entity(row: WorkflowStep) -> StepStateEntity:
    return StepStateEntity(
        id=row.id,
        run_id=row.run_id,
        step_key=row.step_key,
        step_type=StepType(row.step_type),
        status=StepStatus(row.status),
        required_approvals=row.required_approvals,
        deadline=row.deadline,
        activated_at=row.activated_at,
        completed_at=row.completed_at,
    )


class WorkflowRunRepository(BaseRepository[WorkflowRun]):
    """Run and step state repository. Status updates are conditional on ACTIVE."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, WorkflowRun)

    async def create_run(
        self,
        document_id: str,
        template_id: str,
        template_version_id: str,
        initiated_by: str | None,
        started_at: datetime,
    ) -> WorkflowRunEntity:
        row = await self._add(
            WorkflowRun(
                document_id=document_id,
                template_id=template_id,
                template_version_id=template_version_id,
                status=RunStatus.ACTIVE.value,
                initiated_by=initiated_by,
                started_at=started_at,
            )
        )
        return _run_to_entity(row)

    async def get_run(self, run_id: str, for_update: bool = False) -> WorkflowRunEntity | None:
        row = await self._get_row(run_id, for_update=for_update)
        return _run_to_entity(row) if row else None

    async def get_active_run_for_document(self, document_id: str) -> WorkflowRunEntity | None:
        result = await self.db.execute(
            select(WorkflowRun).where(
                WorkflowRun.document_id == document_id,
                WorkflowRun.status == RunStatus.ACTIVE.value,
            )
        )
        row = result.scalar_one_or_none()
        return _run_to_entity(row) if row else None

    async def count_by_template(self, template_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(WorkflowRun).where(
                WorkflowRun.template_id == template_id
            )
        )
        return result.scalar_one()

    async def set_run_status(
        self, run_id: str, status: RunStatus, completed_at: datetime | None
    ) -> WorkflowRunEntity:
        result = await self.db.execute(
            update(WorkflowRun)
            .where(WorkflowRun.id == run_id, WorkflowRun.status == RunStatus.ACTIVE.value)
            .values(status=status.value, completed_at=completed_at)
            .returning(WorkflowRun)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        row = result.scalar_one_or_none()
        if row is None:
            current = await self._get_row(run_id)
            if current is None:
                raise ResourceNotFoundException("workflow_run", run_id)
            raise StateConflictException(run_id, current.status, status.value)
        return _run_to_entity(row)

    async def create_step_state(
        self,
        run_id: str,
        step_key: str,
        step_type: StepType,
        status: StepStatus,
        required_approvals: int,
        deadline: datetime | None,
        activated_at: datetime,
    ) -> StepStateEntity:
        row = WorkflowStep(
            run_id=run_id,
            step_key=step_key,
            step_type=step_type.value,
            status=status.value,
            required_approvals=required_approvals,
            deadline=deadline,
            activated_at=activated_at,
            completed_at=activated_at if status.is_terminal else None,
        )
        self.db.add(row)
        await self.db.flush()
        await self.db.refresh(row)
        return _step_to_entity(row)

    async def get_step_state(
        self, step_state_id: str, for_update: bool = False
    ) -> StepStateEntity | None:
        stmt = select(WorkflowStep).where(WorkflowStep.id == step_state_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        row = result.scalar_one_or_none()
        return _step_to_entity(row) if row else None

    async def list_step_states(self, run_id: str) -> list[StepStateEntity]:
        result = await self.db.execute(
            select(WorkflowStep)
            .where(WorkflowStep.run_id == run_id)
            .order_by(WorkflowStep.activated_at.asc(), WorkflowStep.id.asc())
        )
        return [_step_to_entity(r) for r in result.scalars().all()]

    async def latch_step_status(
        self, step_state_id: str, status: StepStatus, completed_at: datetime
    ) -> StepStateEntity | None:
        result = await self.db.execute(
            update(WorkflowStep)
            .where(
                WorkflowStep.id == step_state_id,
                WorkflowStep.status == StepStatus.ACTIVE.value,
            )
            .values(status=status.value, completed_at=completed_at)
            .returning(WorkflowStep)
            .execution_options(synchronize_session=False, populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return _step_to_entity(row) if row else None
