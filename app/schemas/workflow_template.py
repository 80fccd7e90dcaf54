"""Workflow template API schemas.

Template bodies are free-form JSON validated by TemplateValidator (all field
errors are reported at once), so only responses are modelled here.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FieldErrorResponse(BaseModel):
    """One validation error: dotted field path and message."""

    field: str
    message: str


class TemplateValidationResponse(BaseModel):
    """Response for POST /workflow-templates/validate."""

    valid: bool
    errors: list[FieldErrorResponse] = Field(default_factory=list)


class WorkflowTemplateResponse(BaseModel):
    """Workflow template with its current definition."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None
    department: str
    file_types: list[str]
    active: bool
    current_version: int
    created_by: str | None
    created_at: datetime
    updated_at: datetime
    definition: dict[str, Any]


class WorkflowTemplateListResponse(BaseModel):
    """Paginated list of workflow templates."""

    items: list[WorkflowTemplateResponse]
    skip: int
    limit: int


class WorkflowTemplateVersionResponse(BaseModel):
    """One immutable template version."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    template_id: str
    version: int
    definition: dict[str, Any]
    change_log: str | None
    created_by: str | None
    created_at: datetime
