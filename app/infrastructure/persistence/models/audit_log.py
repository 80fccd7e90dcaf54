"""Audit log ORM model: one row per workflow state change or failed attempt. Never updated."""

from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, Connection, DateTime, Index, String, Text, event, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, Mapper, mapped_column

from app.infrastructure.persistence.database import Base
from app.shared.enums import AuditStatus
from app.shared.utils.generators import generate_cuid

_STATUSES = ", ".join(f"'{s.value}'" for s in AuditStatus)


class AuditLog(Base):
    """Who did what to which workflow entity, with before/after values.

    user_id is NULL for SYSTEM actions (sweeps). entity_id is NULL when a
    create failed before the entity had an id.
    """

    __tablename__ = "audit_log"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_cuid)
    # Not a foreign key: entries outlive the users they name
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    action: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(32), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    old_values: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    new_values: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default=text("'SUCCESS'"), index=True
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    request_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    entry_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSONB, nullable=False, server_default=text("'{}'::jsonb")
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=text("now()"), nullable=False
    )

    __table_args__ = (
        CheckConstraint(f"status IN ({_STATUSES})", name="ck_audit_log_status"),
        Index("ix_audit_log_entity", "entity_type", "entity_id", "timestamp"),
        Index("ix_audit_log_timestamp", "timestamp"),
    )


@event.listens_for(AuditLog, "before_update")
@event.listens_for(AuditLog, "before_delete")
def _reject_audit_log_changes(
    _mapper: Mapper[Any], _connection: Connection, target: AuditLog
) -> None:
    raise ValueError(f"Audit log entry {target.id} is append-only")
