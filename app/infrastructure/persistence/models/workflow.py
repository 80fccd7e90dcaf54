"""Workflow ORM models: templates, immutable template versions, runs and step states."""

from datetime import datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.domain.enums import RunStatus, StepStatus
from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import (
    ActorStampMixin,
    IdentifiedModel,
    TimestampedModel,
)


class WorkflowTemplate(TimestampedModel, ActorStampMixin, Base):
    """Template header. Table: workflow_template. The definition lives on its versions."""

    __tablename__ = "workflow_template"

    name: Mapped[str] = mapped_column(String, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    department: Mapped[str] = mapped_column(String, nullable=False, index=True)
    file_types: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sa.text("true")
    )
    current_version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=sa.text("1")
    )


class WorkflowTemplateVersion(IdentifiedModel, ActorStampMixin, Base):
    """Immutable template definition. Table: workflow_template_version."""

    __tablename__ = "workflow_template_version"

    template_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow_template.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    definition: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    change_log: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=sa.func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("template_id", "version", name="uq_template_version"),
        CheckConstraint("version >= 1", name="ck_template_version_positive"),
    )


class WorkflowRun(IdentifiedModel, Base):
    """One document's pass through a pinned template version. Table: workflow_run."""

    __tablename__ = "workflow_run"

    document_id: Mapped[str] = mapped_column(
        String, ForeignKey("document.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    template_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow_template.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    template_version_id: Mapped[str] = mapped_column(
        String,
        ForeignKey("workflow_template_version.id", ondelete="RESTRICT"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=RunStatus.ACTIVE.value, index=True
    )
    initiated_by: Mapped[str | None] = mapped_column(String, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        # At most one ACTIVE run per document
        Index(
            "ux_workflow_run_active_document",
            "document_id",
            unique=True,
            postgresql_where=sa.text("status = 'ACTIVE'"),
        ),
        CheckConstraint(
            "status IN ('ACTIVE', 'COMPLETED', 'REJECTED')", name="ck_workflow_run_status"
        ),
    )


class WorkflowStep(IdentifiedModel, Base):
    """State of one instantiated template step in a run. Table: workflow_step."""

    __tablename__ = "workflow_step"

    run_id: Mapped[str] = mapped_column(
        String, ForeignKey("workflow_run.id", ondelete="CASCADE"), nullable=False, index=True
    )
    step_key: Mapped[str] = mapped_column(String, nullable=False)
    step_type: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(
        String, nullable=False, default=StepStatus.ACTIVE.value
    )
    required_approvals: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default=sa.text("0")
    )
    deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    activated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint("run_id", "step_key", name="uq_workflow_step_run_key"),
        CheckConstraint(
            "status IN ('ACTIVE', 'COMPLETED', 'REJECTED', 'SKIPPED')",
            name="ck_workflow_step_status",
        ),
    )
