"""Workflow template API: validate, create, version, read and delete templates.

Template bodies are passed through as JSON and validated by
TemplateValidator so every field error comes back in one 400 response.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query, Request, Response

from app.api.v1.dependencies import (
    get_template_service,
    get_template_service_for_write,
    get_template_validator,
)
from app.application.services.template_validator import TemplateValidator
from app.application.use_cases.templates import WorkflowTemplateService
from app.core.limiter import limit_validate, limit_writes
from app.schemas.workflow_template import (
    FieldErrorResponse,
    TemplateValidationResponse,
    WorkflowTemplateListResponse,
    WorkflowTemplateResponse,
    WorkflowTemplateVersionResponse,
)

router = APIRouter()


@router.post("/validate", response_model=TemplateValidationResponse)
@limit_validate
async def validate_template(
    request: Request,
    payload: Annotated[Any, Body()],
    validator: Annotated[TemplateValidator, Depends(get_template_validator)],
):
    """Validate a template definition without saving it; returns every field error."""
    errors = validator.validate_template(payload)
    return TemplateValidationResponse(
        valid=not errors,
        errors=[FieldErrorResponse(**e) for e in errors],
    )


@router.post("", response_model=WorkflowTemplateResponse, status_code=201)
@limit_writes
async def create_template(
    request: Request,
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[WorkflowTemplateService, Depends(get_template_service_for_write)],
    change_log: str | None = Query(None, alias="changeLog", max_length=1000),
):
    """Create a workflow template (version 1)."""
    template = await service.create_template(payload, change_log=change_log)
    return WorkflowTemplateResponse.model_validate(template)


@router.get("", response_model=WorkflowTemplateListResponse)
async def list_templates(
    service: Annotated[WorkflowTemplateService, Depends(get_template_service)],
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    department: str | None = Query(None, description="Filter by department"),
    active: bool | None = Query(None, description="Filter by active flag"),
):
    """List workflow templates with their current definitions."""
    items = await service.list_templates(
        skip=skip, limit=limit, department=department, active=active
    )
    return WorkflowTemplateListResponse(
        items=[WorkflowTemplateResponse.model_validate(t) for t in items],
        skip=skip,
        limit=limit,
    )


@router.get("/{template_id}", response_model=WorkflowTemplateResponse)
async def get_template(
    template_id: str,
    service: Annotated[WorkflowTemplateService, Depends(get_template_service)],
):
    template = await service.get_template(template_id)
    return WorkflowTemplateResponse.model_validate(template)


@router.put("/{template_id}", response_model=WorkflowTemplateResponse)
@limit_writes
async def update_template(
    request: Request,
    template_id: str,
    payload: Annotated[dict[str, Any], Body()],
    service: Annotated[WorkflowTemplateService, Depends(get_template_service_for_write)],
    change_log: str | None = Query(None, alias="changeLog", max_length=1000),
):
    """Save a new version of the template. Runs already started keep their version."""
    template = await service.update_template(template_id, payload, change_log=change_log)
    return WorkflowTemplateResponse.model_validate(template)


@router.delete("/{template_id}", status_code=204)
@limit_writes
async def delete_template(
    request: Request,
    template_id: str,
    service: Annotated[WorkflowTemplateService, Depends(get_template_service_for_write)],
):
    """Delete a template; 409 if any workflow run references it."""
    await service.delete_template(template_id)
    return Response(status_code=204)


@router.get("/{template_id}/versions", response_model=list[WorkflowTemplateVersionResponse])
async def list_template_versions(
    template_id: str,
    service: Annotated[WorkflowTemplateService, Depends(get_template_service)],
):
    """List every version of a template, newest first."""
    versions = await service.list_versions(template_id)
    return [WorkflowTemplateVersionResponse.model_validate(v) for v in versions]
