"""DocumentApproval ORM model. One approver's decision slot on one run step; never deleted."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.enums import ApprovalStatus
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import TimestampedModel


class DocumentApproval(TimestampedModel, Base):
    """Approval record. Table: document_approval. Unique (document, step, approver)."""

    __tablename__ = "document_approval"

    document_id: Mapped[str] = mapped_column(
        String, ForeignKey("document.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    workflow_step_id: Mapped[str] = mapped_column(
        String, ForeignKey("workflow_step.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    approver_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=ApprovalStatus.PENDING.value
    )
    comments: Mapped[str | None] = mapped_column(Text, nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    reminders_sent: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    last_reminder_sent: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_escalated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=sa.text("false")
    )
    escalated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    escalated_to: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    warning_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approval_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON, nullable=False, default=dict
    )

    __table_args__ = (
        Index(
            "ux_document_approval_assignment",
            "document_id",
            "workflow_step_id",
            "approver_id",
            unique=True,
        ),
        Index("ix_document_approval_status", "status"),
        Index("ix_document_approval_deadline", "deadline"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name="ck_document_approval_status",
        ),
    )
