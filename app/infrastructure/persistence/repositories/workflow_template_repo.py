"""Workflow template repository: template headers and immutable versions."""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.workflow import (
    WorkflowTemplateResult,
    WorkflowTemplateVersionResult,
)
from app.domain.exceptions import ResourceNotFoundException
from app.infrastructure.persistence.models.workflow import (
    WorkflowTemplate,
    WorkflowTemplateVersion,
)
from app.infrastructure.persistence.repositories.base import BaseRepository


def _version_to_result(row: WorkflowTemplateVersion) -> WorkflowTemplateVersionResult:
    return WorkflowTemplateVersionResult(
        id=row.id,
        template_id=row.template_id,
        version=row.version,
        definition=row.definition,
        change_log=row.change_log,
        created_by=row.created_by,
        created_at=row.created_at,
    )


def _orm_to_result(
    row: WorkflowTemplate, definition: dict[str, Any]
) -> WorkflowTemplateResult:
    """Map header ORM plus current definition to application DTO."""
    return WorkflowTemplateResult(
        id=row.id,
        name=row.name,
        description=row.description,
        department=row.department,
        file_types=list(row.file_types or []),
        active=row.is_active,
        current_version=row.current_version,
        created_by=row.created_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
        definition=definition,
    )


def _apply_header(row: WorkflowTemplate, definition: dict[str, Any]) -> None:
    row.name = definition["name"]
    row.description = definition.get("description")
    row.department = definition["department"]
    row.file_types = list(definition.get("fileTypes") or [])
    row.is_active = bool(definition.get("active", True))


class WorkflowTemplateRepository(BaseRepository[WorkflowTemplate]):
    """Workflow template repository. Versions are append-only; delete removes all of them."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, WorkflowTemplate)

    async def _current_definition(self, row: WorkflowTemplate) -> dict[str, Any]:
        result = await self.db.execute(
            select(WorkflowTemplateVersion.definition).where(
                WorkflowTemplateVersion.template_id == row.id,
                WorkflowTemplateVersion.version == row.current_version,
            )
        )
        return result.scalar_one()

    async def _add_version_row(
        self,
        template_id: str,
        version: int,
        definition: dict[str, Any],
        created_by: str | None,
        change_log: str | None,
    ) -> None:
        self.db.add(
            WorkflowTemplateVersion(
                template_id=template_id,
                version=version,
                definition=definition,
                change_log=change_log,
                created_by=created_by,
            )
        )
        await self.db.flush()

    async def create_template(
        self,
        definition: dict[str, Any],
        created_by: str | None,
        change_log: str | None = None,
    ) -> WorkflowTemplateResult:
        row = WorkflowTemplate(current_version=1, created_by=created_by)
        _apply_header(row, definition)
        row = await self._add(row)
        await self._add_version_row(row.id, 1, definition, created_by, change_log)
        return _orm_to_result(row, definition)

    async def add_version(
        self,
        template_id: str,
        definition: dict[str, Any],
        created_by: str | None,
        change_log: str | None = None,
    ) -> WorkflowTemplateResult:
        row = await self._get_row(template_id, for_update=True)
        if row is None:
            raise ResourceNotFoundException("workflow_template", template_id)
        next_version = row.current_version + 1
        await self._add_version_row(
            template_id, next_version, definition, created_by, change_log
        )
        _apply_header(row, definition)
        row.current_version = next_version
        await self.db.flush()
        await self.db.refresh(row)
        return _orm_to_result(row, definition)

    async def get_by_id(self, template_id: str) -> WorkflowTemplateResult | None:
        row = await self._get_row(template_id)
        if row is None:
            return None
        return _orm_to_result(row, await self._current_definition(row))

    async def list_templates(
        self,
        skip: int = 0,
        limit: int = 100,
        department: str | None = None,
        active: bool | None = None,
    ) -> list[WorkflowTemplateResult]:
        stmt = select(WorkflowTemplate, WorkflowTemplateVersion.definition).join(
            WorkflowTemplateVersion,
            (WorkflowTemplateVersion.template_id == WorkflowTemplate.id)
            & (WorkflowTemplateVersion.version == WorkflowTemplate.current_version),
        )
        if department is not None:
            stmt = stmt.where(WorkflowTemplate.department == department)
        if active is not None:
            stmt = stmt.where(WorkflowTemplate.is_active.is_(active))
        stmt = stmt.order_by(WorkflowTemplate.name.asc(), WorkflowTemplate.id.asc())
        result = await self.db.execute(stmt.offset(skip).limit(limit))
        return [_orm_to_result(row, definition) for row, definition in result.all()]

    async def list_versions(self, template_id: str) -> list[WorkflowTemplateVersionResult]:
        result = await self.db.execute(
            select(WorkflowTemplateVersion)
            .where(WorkflowTemplateVersion.template_id == template_id)
            .order_by(WorkflowTemplateVersion.version.desc())
        )
        return [_version_to_result(r) for r in result.scalars().all()]

    async def get_version(self, version_id: str) -> WorkflowTemplateVersionResult | None:
        result = await self.db.execute(
            select(WorkflowTemplateVersion).where(WorkflowTemplateVersion.id == version_id)
        )
        row = result.scalar_one_or_none()
        return _version_to_result(row) if row else None

    async def get_current_version(
        self, template_id: str
    ) -> WorkflowTemplateVersionResult | None:
        result = await self.db.execute(
            select(WorkflowTemplateVersion)
            .join(
                WorkflowTemplate,
                (WorkflowTemplate.id == WorkflowTemplateVersion.template_id)
                & (WorkflowTemplate.current_version == WorkflowTemplateVersion.version),
            )
            .where(WorkflowTemplate.id == template_id)
        )
        row = result.scalar_one_or_none()
        return _version_to_result(row) if row else None

    async def delete(self, template_id: str) -> bool:
        row = await self._get_row(template_id)
        if row is None:
            return False
        await self.db.execute(
            delete(WorkflowTemplateVersion).where(
                WorkflowTemplateVersion.template_id == template_id
            )
        )
        await self._delete(row)
        return True
