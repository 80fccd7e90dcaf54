"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. All routes
use dependencies from app.api.v1.dependencies (no manual repo/service construction).
"""

from fastapi import APIRouter

from app.api.v1.endpoints import (
    approvals,
    audit_log,
    health,
    workflow_runs,
    workflow_templates,
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(
    workflow_templates.router, prefix="/workflow-templates", tags=["workflow-templates"]
)
api_router.include_router(workflow_runs.router, prefix="/workflow-runs", tags=["workflow-runs"])
api_router.include_router(approvals.router, prefix="/approvals", tags=["approvals"])
api_router.include_router(audit_log.router, prefix="/audit-log", tags=["audit-log"])
