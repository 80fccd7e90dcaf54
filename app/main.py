"""FastAPI application for the docflow approval workflow API.

create_app() only wires things together; behaviour lives in the use cases.
Settings are read when the app is built, so tests can adjust the
environment first.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.router import api_router
from app.core.config import Settings, get_settings
from app.core.exception_handlers import register_exception_handlers
from app.core.lifespan import create_lifespan
from app.core.limiter import limiter
from app.middleware import (
    ActorContextMiddleware,
    CorrelationIDMiddleware,
    RequestIDMiddleware,
    TimeoutMiddleware,
)

OPENAPI_TAGS = [
    {"name": "workflow-templates", "description": "Versioned approval templates and their validation."},
    {"name": "workflow-runs", "description": "Start a document on a template and follow its steps."},
    {"name": "approvals", "description": "Decide, escalate and remind on pending approvals."},
    {"name": "audit-log", "description": "Append-only record of workflow state changes."},
    {"name": "health", "description": "Liveness and readiness probes."},
]


def _add_middleware(app: FastAPI, settings: Settings) -> None:
    # Last added runs first: timeout, request id, correlation id, actor, CORS.
    origins = [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(ActorContextMiddleware, header_name=settings.actor_header_name)
    app.add_middleware(CorrelationIDMiddleware, header_name=settings.correlation_id_header)
    app.add_middleware(RequestIDMiddleware, header_name=settings.request_id_header)
    app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.request_timeout_seconds)


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
        openapi_tags=OPENAPI_TAGS,
    )
    app.state.limiter = limiter
    register_exception_handlers(app)
    _add_middleware(app, settings)
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
