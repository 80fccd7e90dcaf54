"""Organization ORM models: departments, designations and users (read by the identity directory)."""

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.infrastructure.persistence.database import Base
from app.infrastructure.persistence.models.mixins import TimestampedModel


class Department(TimestampedModel, Base):
    """Department. Table: department. Unique name and code."""

    __tablename__ = "department"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true")
    )


class Designation(TimestampedModel, Base):
    """Job title (e.g. 'Finance Manager'). Table: designation."""

    __tablename__ = "designation"

    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    level: Mapped[int | None] = mapped_column(Integer, nullable=True)


class User(TimestampedModel, Base):
    """User. Table: app_user. Role and department drive step assignment and SLA backups."""

    __tablename__ = "app_user"

    username: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    department_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("department.id", ondelete="SET NULL"), nullable=True, index=True
    )
    designation_id: Mapped[str | None] = mapped_column(
        String, ForeignKey("designation.id", ondelete="SET NULL"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, server_default=text("true")
    )

    department: Mapped[Department | None] = relationship(lazy="joined")

    __table_args__ = (
        UniqueConstraint("username", name="uq_app_user_username"),
        UniqueConstraint("email", name="uq_app_user_email"),
    )
