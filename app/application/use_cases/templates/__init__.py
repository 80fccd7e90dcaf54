"""Workflow template use cases: validate, create, version, delete, query."""

from app.application.use_cases.templates.template_operations import WorkflowTemplateService

__all__ = ["WorkflowTemplateService"]
