"""Pytest configuration and fixtures for docflow.

Unit tests run the application services against the in-memory wiring in
tests.support (no database). API tests use app.main:app through httpx's
ASGITransport, with the composition-root dependencies overridden to the
same in-memory wiring.
"""

from collections.abc import AsyncIterator, Iterator

import pytest
from httpx import ASGITransport, AsyncClient

from app.shared.context import clear_current_user
from tests.support import Docflow, build_docflow


@pytest.fixture(autouse=True)
def _reset_actor() -> Iterator[None]:
    clear_current_user()
    yield
    clear_current_user()


@pytest.fixture
def docflow() -> Docflow:
    """Services over empty in-memory stores, with a small organization."""
    flow = build_docflow()
    flow.identity.add_user("alice", role="manager", department="Finance")
    flow.identity.add_user("bob", role="manager", department="Finance")
    flow.identity.add_user("carol", role="director", department="Finance")
    flow.identity.add_user("dave", role="clerk", department="Finance")
    flow.identity.add_user("erin", role="auditor", department="Audit")
    flow.documents.add("doc1", amount=1200, priority="high", owner="dave")
    return flow


@pytest.fixture
async def client(docflow: Docflow) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the FastAPI app, wired to the in-memory docflow fixture."""
    from app.api.v1 import dependencies as deps
    from app.core.limiter import limiter
    from app.main import app

    overrides = {
        deps.get_template_service: lambda: docflow.template_service,
        deps.get_template_service_for_write: lambda: docflow.template_service,
        deps.get_start_run_use_case: lambda: docflow.start_run,
        deps.get_run_use_case: lambda: docflow.get_run,
        deps.get_approval_service: lambda: docflow.approval_service,
        deps.get_approval_service_for_write: lambda: docflow.approval_service,
        deps.get_audit_log_repo: lambda: docflow.audit_log,
    }
    app.dependency_overrides.update(overrides)
    limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
