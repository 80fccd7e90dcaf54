"""DTOs for identity directory and document lookups (read-only collaborators)."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ApproverProfile:
    """Role and department of a user, as used for SLA backup lookup."""

    user_id: str
    role: str | None
    department: str | None


@dataclass(frozen=True)
class DocumentInfo:
    """Document fields the workflow core reads (metadata feeds formulas and conditions)."""

    id: str
    title: str
    department: str | None
    file_type: str | None
    status: str
    metadata: dict[str, Any] = field(default_factory=dict)
