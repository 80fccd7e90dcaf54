"""Document repository (read-only). Returns DocumentInfo DTOs."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from app.application.dtos.organization import DocumentInfo
from app.infrastructure.persistence.models.document import Document
from app.infrastructure.persistence.repositories.base import BaseRepository


def _orm_to_info(row: Document) -> DocumentInfo:
    return DocumentInfo(
        id=row.id,
        title=row.title,
        department=row.department,
        file_type=row.file_type,
        status=row.status,
        metadata=dict(row.document_metadata or {}),
    )


class DocumentRepository(BaseRepository[Document]):
    """Reads documents routed through workflows."""

    def __init__(self, db: AsyncSession) -> None:
        super().__init__(db, Document)

    async def get_by_id(self, document_id: str) -> DocumentInfo | None:
        row = await self._get_row(document_id)
        return _orm_to_info(row) if row else None
