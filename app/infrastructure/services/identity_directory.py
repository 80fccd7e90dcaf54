"""Identity directory over the users and departments tables."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.organization import ApproverProfile, DocumentInfo
from app.domain.enums import AssignmentKind, RecipientKind
from app.domain.value_objects.core import AssignmentRule, RecipientRule
from app.infrastructure.persistence.models.organization import Department, User
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

# Dynamic assignment key that resolves to the user who started the run
INITIATOR_KEY = "initiator"


def _unique(ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for user_id in ids:
        if user_id and user_id not in seen:
            seen.add(user_id)
            out.append(user_id)
    return out


def _metadata_user_ids(value: Any) -> list[str]:
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple)):
        return [v for v in value if isinstance(v, str)]
    return []


class SqlIdentityDirectory:
    """IIdentityDirectory implementation. Only active users are ever returned."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _active_ids(self, user_ids: list[str]) -> list[str]:
        """Filter user ids to active users, keeping the given order."""
        if not user_ids:
            return []
        result = await self.db.execute(
            select(User.id).where(User.id.in_(user_ids), User.is_active.is_(True))
        )
        active = set(result.scalars().all())
        missing = [u for u in user_ids if u not in active]
        if missing:
            logger.warning("Ignoring unknown or inactive users: %s", missing)
        return [u for u in user_ids if u in active]

    async def _ids_by_role(self, roles: tuple[str, ...]) -> list[str]:
        result = await self.db.execute(
            select(User.id)
            .where(User.role.in_(roles), User.is_active.is_(True))
            .order_by(User.id.asc())
        )
        return list(result.scalars().all())

    async def _ids_by_department(self, departments: tuple[str, ...]) -> list[str]:
        result = await self.db.execute(
            select(User.id)
            .join(Department, Department.id == User.department_id)
            .where(
                or_(Department.name.in_(departments), Department.code.in_(departments)),
                Department.is_active.is_(True),
                User.is_active.is_(True),
            )
            .order_by(User.id.asc())
        )
        return list(result.scalars().all())

    async def _resolve(self, kind: str, values: tuple[str, ...]) -> list[str]:
        if kind == AssignmentKind.ROLE.value:
            return _unique(await self._ids_by_role(values))
        if kind == AssignmentKind.DEPARTMENT.value:
            return _unique(await self._ids_by_department(values))
        return await self._active_ids(_unique(values))

    async def resolve_assignees(
        self,
        rule: AssignmentRule,
        document: DocumentInfo,
        initiated_by: str | None = None,
    ) -> list[str]:
        if rule.kind is not AssignmentKind.DYNAMIC:
            return await self._resolve(rule.kind.value, rule.values)
        candidates: list[str] = []
        for key in rule.values:
            if key == INITIATOR_KEY:
                candidates.extend([initiated_by] if initiated_by else [])
            else:
                candidates.extend(_metadata_user_ids(document.metadata.get(key)))
        if not candidates:
            logger.warning(
                "Dynamic assignment %s resolved no users for document %s",
                list(rule.values),
                document.id,
            )
        return await self._active_ids(_unique(candidates))

    async def resolve_recipients(self, rule: RecipientRule) -> list[str]:
        if rule.kind is RecipientKind.USER:
            return await self._active_ids(_unique(rule.values))
        return await self._resolve(rule.kind.value, rule.values)

    async def get_profile(self, user_id: str) -> ApproverProfile | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.unique().scalar_one_or_none()
        if user is None:
            return None
        return ApproverProfile(
            user_id=user.id,
            role=user.role,
            department=user.department.name if user.department else None,
        )
