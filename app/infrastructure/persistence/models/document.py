"""Document ORM model. The workflow core reads documents; it does not manage their files."""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import ActorStampMixin, TimestampedModel


class Document(TimestampedModel, ActorStampMixin, Base):
    """Document routed through approval workflows. Table: document."""

    __tablename__ = "document"

    title: Mapped[str] = mapped_column(String, nullable=False)
    department: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    file_type: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="draft")
    # Business fields read by deadline formulas and step conditions
    document_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )
