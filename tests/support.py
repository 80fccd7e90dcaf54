"""In-memory implementations of the repository and service ports, plus payload builders.

Unit and API tests wire the real application services to these so no
database is needed. The approval store yields to the event loop on reads so
concurrent callers interleave the way they would against Postgres.
"""

import asyncio
from collections.abc import Iterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, replace
from datetime import UTC, datetime, timedelta
from typing import Any

from app.application.dtos.audit_log import AuditLogEntryCreate, AuditLogResult
from app.application.dtos.notification import NotificationEvent
from app.application.dtos.organization import ApproverProfile, DocumentInfo
from app.application.dtos.workflow import (
    WorkflowTemplateResult,
    WorkflowTemplateVersionResult,
)
from app.application.services.audit_trail import AuditTrail
from app.application.services.template_validator import TemplateValidator
from app.application.services.workflow_engine import WorkflowEngine
from app.application.use_cases.approvals import ApprovalService
from app.application.use_cases.sweeps import RunReminderSweepUseCase, RunSlaSweepUseCase
from app.application.use_cases.templates import WorkflowTemplateService
from app.application.use_cases.workflow_runs import (
    GetWorkflowRunUseCase,
    StartWorkflowRunUseCase,
)
from app.domain.entities.approval import DocumentApprovalEntity
from app.domain.entities.workflow_run import StepStateEntity, WorkflowRunEntity
from app.domain.enums import AssignmentKind, RunStatus, StepStatus, StepType
from app.domain.exceptions import (
    DuplicateAssignmentException,
    ResourceNotFoundException,
    StateConflictException,
)
from app.domain.value_objects.core import AssignmentRule, RecipientRule
from app.shared.context import clear_current_user, set_current_user
from app.shared.enums import ActorType

NOW = datetime(2025, 3, 3, 9, 0, tzinfo=UTC)


def _ids(prefix: str) -> Iterator[str]:
    n = 0
    while True:
        n += 1
        yield f"{prefix}{n:04d}"


# ---- In-memory repositories ----


class InMemoryTemplateRepository:
    def __init__(self) -> None:
        self.headers: dict[str, dict[str, Any]] = {}
        self.versions: dict[str, WorkflowTemplateVersionResult] = {}
        self._template_ids = _ids("tpl")
        self._version_ids = _ids("tv")

    def _result(self, template_id: str) -> WorkflowTemplateResult:
        header = self.headers[template_id]
        current = self._current(template_id)
        definition = current.definition
        return WorkflowTemplateResult(
            id=template_id,
            name=definition["name"],
            description=definition.get("description"),
            department=definition["department"],
            file_types=list(definition.get("fileTypes") or []),
            active=definition.get("active", True),
            current_version=header["current_version"],
            created_by=header["created_by"],
            created_at=header["created_at"],
            updated_at=header["updated_at"],
            definition=definition,
        )

    def _current(self, template_id: str) -> WorkflowTemplateVersionResult:
        version = self.headers[template_id]["current_version"]
        return next(
            v
            for v in self.versions.values()
            if v.template_id == template_id and v.version == version
        )

    def _add(self, template_id, version, definition, created_by, change_log):
        version_id = next(self._version_ids)
        self.versions[version_id] = WorkflowTemplateVersionResult(
            id=version_id,
            template_id=template_id,
            version=version,
            definition=definition,
            change_log=change_log,
            created_by=created_by,
            created_at=NOW,
        )

    async def create_template(self, definition, created_by, change_log=None):
        template_id = next(self._template_ids)
        self.headers[template_id] = {
            "current_version": 1,
            "created_by": created_by,
            "created_at": NOW,
            "updated_at": NOW,
        }
        self._add(template_id, 1, definition, created_by, change_log)
        return self._result(template_id)

    async def add_version(self, template_id, definition, created_by, change_log=None):
        if template_id not in self.headers:
            raise ResourceNotFoundException("workflow_template", template_id)
        header = self.headers[template_id]
        header["current_version"] += 1
        header["updated_at"] = NOW
        self._add(template_id, header["current_version"], definition, created_by, change_log)
        return self._result(template_id)

    async def get_by_id(self, template_id):
        if template_id not in self.headers:
            return None
        return self._result(template_id)

    async def list_templates(self, skip=0, limit=100, department=None, active=None):
        items = [self._result(t) for t in self.headers]
        if department is not None:
            items = [t for t in items if t.department == department]
        if active is not None:
            items = [t for t in items if t.active == active]
        return sorted(items, key=lambda t: t.name)[skip : skip + limit]

    async def list_versions(self, template_id):
        versions = [v for v in self.versions.values() if v.template_id == template_id]
        return sorted(versions, key=lambda v: v.version, reverse=True)

    async def get_version(self, version_id):
        return self.versions.get(version_id)

    async def get_current_version(self, template_id):
        if template_id not in self.headers:
            return None
        return self._current(template_id)

    async def delete(self, template_id):
        if self.headers.pop(template_id, None) is None:
            return False
        self.versions = {k: v for k, v in self.versions.items() if v.template_id != template_id}
        return True


class InMemoryRunRepository:
    def __init__(self) -> None:
        self.runs: dict[str, WorkflowRunEntity] = {}
        self.steps: dict[str, StepStateEntity] = {}
        self._run_ids = _ids("run")
        self._step_ids = _ids("st")

    async def create_run(self, document_id, template_id, template_version_id, initiated_by, started_at):
        run = WorkflowRunEntity(
            id=next(self._run_ids),
            document_id=document_id,
            template_id=template_id,
            template_version_id=template_version_id,
            status=RunStatus.ACTIVE,
            initiated_by=initiated_by,
            started_at=started_at,
        )
        self.runs[run.id] = run
        return run

    async def get_run(self, run_id, for_update=False):
        return self.runs.get(run_id)

    async def get_active_run_for_document(self, document_id):
        return next(
            (r for r in self.runs.values() if r.document_id == document_id and r.is_active),
            None,
        )

    async def count_by_template(self, template_id):
        return sum(1 for r in self.runs.values() if r.template_id == template_id)

    async def set_run_status(self, run_id, status, completed_at):
        run = self.runs.get(run_id)
        if run is None:
            raise ResourceNotFoundException("workflow_run", run_id)
        if not run.is_active:
            raise StateConflictException(run_id, run.status.value, "finish")
        self.runs[run_id] = replace(run, status=status, completed_at=completed_at)
        return self.runs[run_id]

    async def create_step_state(
        self, run_id, step_key, step_type, status, required_approvals, deadline, activated_at
    ):
        if any(s.run_id == run_id and s.step_key == step_key for s in self.steps.values()):
            raise AssertionError(f"step {step_key} instantiated twice")
        state = StepStateEntity(
            id=next(self._step_ids),
            run_id=run_id,
            step_key=step_key,
            step_type=step_type,
            status=status,
            required_approvals=required_approvals,
            deadline=deadline,
            activated_at=activated_at,
            completed_at=activated_at if status.is_terminal else None,
        )
        self.steps[state.id] = state
        return state

    async def get_step_state(self, step_state_id, for_update=False):
        return self.steps.get(step_state_id)

    async def list_step_states(self, run_id):
        return [s for s in self.steps.values() if s.run_id == run_id]

    async def latch_step_status(self, step_state_id, status, completed_at):
        state = self.steps[step_state_id]
        if state.status.is_terminal:
            return None
        self.steps[step_state_id] = replace(state, status=status, completed_at=completed_at)
        return self.steps[step_state_id]

    def step_by_key(self, run_id: str, step_key: str) -> StepStateEntity:
        return next(
            s for s in self.steps.values() if s.run_id == run_id and s.step_key == step_key
        )


class InMemoryApprovalRepository:
    """Yields to the event loop on reads so concurrent callers interleave."""

    def __init__(self, runs: InMemoryRunRepository) -> None:
        self.rows: dict[str, DocumentApprovalEntity] = {}
        self._runs = runs
        self._ids = _ids("ap")

    async def create(self, document_id, workflow_step_id, approver_id, deadline, metadata=None):
        for row in self.rows.values():
            if (row.document_id, row.workflow_step_id, row.approver_id) == (
                document_id,
                workflow_step_id,
                approver_id,
            ):
                raise DuplicateAssignmentException(document_id, workflow_step_id, approver_id)
        approval = DocumentApprovalEntity(
            id=next(self._ids),
            document_id=document_id,
            workflow_step_id=workflow_step_id,
            approver_id=approver_id,
            deadline=deadline,
            metadata=dict(metadata or {}),
            created_at=NOW,
            updated_at=NOW,
        )
        self.rows[approval.id] = approval
        return approval

    async def get_by_id(self, approval_id):
        await asyncio.sleep(0)
        return self.rows.get(approval_id)

    async def list_by_step(self, workflow_step_id):
        return [a for a in self.rows.values() if a.workflow_step_id == workflow_step_id]

    async def list_by_steps(self, workflow_step_ids):
        return [a for a in self.rows.values() if a.workflow_step_id in workflow_step_ids]

    async def list_pending_for_user(self, user_id, skip=0, limit=100):
        rows = [
            a
            for a in self.rows.values()
            if a.is_pending
            and (a.approver_id == user_id or (a.is_escalated and a.escalated_to == user_id))
        ]
        return rows[skip : skip + limit]

    async def list_pending(self, after_id=None, limit=200):
        rows = sorted(
            (
                a
                for a in self.rows.values()
                if a.is_pending
                and self._runs.steps[a.workflow_step_id].status is StepStatus.ACTIVE
                and (after_id is None or a.id > after_id)
            ),
            key=lambda a: a.id,
        )
        return rows[:limit]

    async def compare_and_swap(self, before, after):
        current = self.rows.get(before.id)
        if current is None:
            raise ResourceNotFoundException("document_approval", before.id)
        if not current.is_pending:
            raise StateConflictException(before.id, current.status.value, "update")
        self.rows[before.id] = after
        return after

    async def increment_reminders(self, approval_id, sent_at):
        current = self.rows[approval_id]
        if not current.is_pending:
            raise StateConflictException(approval_id, current.status.value, "remind")
        self.rows[approval_id] = replace(
            current,
            reminders_sent=current.reminders_sent + 1,
            last_reminder_sent=sent_at,
            updated_at=sent_at,
        )
        return self.rows[approval_id]


class InMemoryAuditLogRepository:
    def __init__(self) -> None:
        self.entries: list[AuditLogResult] = []
        self._ids = _ids("al")

    async def create(self, entry: AuditLogEntryCreate) -> AuditLogResult:
        result = AuditLogResult(
            id=next(self._ids),
            user_id=entry.user_id,
            action=entry.action.value,
            entity_type=entry.entity_type.value,
            entity_id=entry.entity_id,
            old_values=entry.old_values,
            new_values=entry.new_values,
            status=entry.status.value,
            error_message=entry.error_message,
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            request_id=entry.request_id,
            metadata=dict(entry.metadata),
            timestamp=NOW,
        )
        self.entries.append(result)
        return result

    async def list_entries(
        self, entity_type=None, entity_id=None, user_id=None, status=None, skip=0, limit=100
    ):
        rows = [
            e
            for e in reversed(self.entries)
            if (entity_type is None or e.entity_type == entity_type)
            and (entity_id is None or e.entity_id == entity_id)
            and (user_id is None or e.user_id == user_id)
            and (status is None or e.status == status)
        ]
        return rows[skip : skip + limit]

    def actions(self, entity_id: str | None = None) -> list[tuple[str, str]]:
        return [
            (e.action, e.status)
            for e in self.entries
            if entity_id is None or e.entity_id == entity_id
        ]


class InMemoryDocumentRepository:
    def __init__(self) -> None:
        self.documents: dict[str, DocumentInfo] = {}

    def add(self, document_id: str, file_type: str = "pdf", **metadata: Any) -> DocumentInfo:
        self.documents[document_id] = DocumentInfo(
            id=document_id,
            title=f"Document {document_id}",
            department="Finance",
            file_type=file_type,
            status="submitted",
            metadata=metadata,
        )
        return self.documents[document_id]

    async def get_by_id(self, document_id):
        return self.documents.get(document_id)


# ---- In-memory services ----


class InMemoryIdentityDirectory:
    def __init__(self) -> None:
        self.users: dict[str, ApproverProfile] = {}

    def add_user(self, user_id: str, role: str | None = None, department: str | None = None) -> None:
        self.users[user_id] = ApproverProfile(user_id=user_id, role=role, department=department)

    def _matching(self, kind: str, values: tuple[str, ...]) -> list[str]:
        if kind == "user":
            return [v for v in values if v in self.users]
        if kind == "role":
            return [u for u, p in self.users.items() if p.role in values]
        return [u for u, p in self.users.items() if p.department in values]

    async def resolve_assignees(
        self, rule: AssignmentRule, document: DocumentInfo, initiated_by: str | None = None
    ) -> list[str]:
        if rule.kind is AssignmentKind.DYNAMIC:
            found: list[str] = []
            for key in rule.values:
                if key == "initiator":
                    found.extend([initiated_by] if initiated_by else [])
                    continue
                value = document.metadata.get(key)
                found.extend([value] if isinstance(value, str) else list(value or []))
            return [u for u in dict.fromkeys(found) if u in self.users]
        return list(dict.fromkeys(self._matching(rule.kind.value, rule.values)))

    async def resolve_recipients(self, rule: RecipientRule) -> list[str]:
        return list(dict.fromkeys(self._matching(rule.kind.value, rule.values)))

    async def get_profile(self, user_id: str) -> ApproverProfile | None:
        return self.users.get(user_id)


class RecordingDispatcher:
    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []
        self.actions: list[tuple[str, dict[str, Any], dict[str, Any]]] = []

    async def dispatch(self, event: NotificationEvent) -> None:
        self.events.append(event)

    async def run_action(self, action_type, config, context) -> None:
        self.actions.append((action_type, config, context))

    def names(self) -> list[str]:
        return [e.event for e in self.events]


class NoopTransactionScope:
    @asynccontextmanager
    async def _scope(self):
        yield None

    def savepoint(self):
        return self._scope()


# ---- Wiring ----


@dataclass
class Docflow:
    """Application services wired to in-memory collaborators."""

    templates: InMemoryTemplateRepository
    runs: InMemoryRunRepository
    approvals: InMemoryApprovalRepository
    audit_log: InMemoryAuditLogRepository
    documents: InMemoryDocumentRepository
    identity: InMemoryIdentityDirectory
    dispatcher: RecordingDispatcher
    validator: TemplateValidator
    engine: WorkflowEngine
    approval_service: ApprovalService
    template_service: WorkflowTemplateService
    start_run: StartWorkflowRunUseCase
    get_run: GetWorkflowRunUseCase
    sla_sweep: RunSlaSweepUseCase
    reminder_sweep: RunReminderSweepUseCase

    async def create_template(self, payload: dict[str, Any]) -> str:
        return (await self.template_service.create_template(payload)).id

    async def start(self, document_id: str, template_id: str, now: datetime = NOW):
        return await self.start_run.execute(document_id, template_id, now)

    def pending_for(self, approver_id: str) -> DocumentApprovalEntity:
        return next(
            a for a in self.approvals.rows.values() if a.approver_id == approver_id and a.is_pending
        )


def build_docflow(deadline_unit: str = "hours") -> Docflow:
    templates = InMemoryTemplateRepository()
    runs = InMemoryRunRepository()
    approvals = InMemoryApprovalRepository(runs)
    audit_log = InMemoryAuditLogRepository()
    documents = InMemoryDocumentRepository()
    identity = InMemoryIdentityDirectory()
    dispatcher = RecordingDispatcher()
    validator = TemplateValidator()
    audit = AuditTrail(audit_log)
    engine = WorkflowEngine(
        templates, runs, approvals, documents, identity, dispatcher, audit, deadline_unit
    )
    approval_service = ApprovalService(
        approvals, runs, engine, identity, dispatcher, validator, audit, deadline_unit
    )
    tx = NoopTransactionScope()
    return Docflow(
        templates=templates,
        runs=runs,
        approvals=approvals,
        audit_log=audit_log,
        documents=documents,
        identity=identity,
        dispatcher=dispatcher,
        validator=validator,
        engine=engine,
        approval_service=approval_service,
        template_service=WorkflowTemplateService(templates, runs, validator, audit),
        start_run=StartWorkflowRunUseCase(templates, runs, approvals, engine, audit),
        get_run=GetWorkflowRunUseCase(runs, approvals),
        sla_sweep=RunSlaSweepUseCase(
            approvals, approval_service, identity, tx, audit, deadline_unit, batch_size=2
        ),
        reminder_sweep=RunReminderSweepUseCase(
            approvals, approval_service, tx, timedelta(hours=24), 3, batch_size=2
        ),
    )


def step(step_id: str, **overrides: Any) -> dict[str, Any]:
    """Build a template step payload (approval step assigned to role 'manager')."""
    data: dict[str, Any] = {
        "id": step_id,
        "name": step_id.replace("_", " ").title(),
        "type": StepType.APPROVAL.value,
        "assignTo": {"type": "role", "value": "manager"},
    }
    data.update(overrides)
    return data


def template_payload(*steps: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": "PO Approval",
        "department": "Finance",
        "steps": list(steps) or [step("s1", deadline={"type": "fixed", "value": 48})],
    }
    data.update(overrides)
    return data


def act_as(user_id: str | None) -> None:
    """Set the acting user for the current task (None acts as SYSTEM)."""
    if user_id is None:
        clear_current_user()
    else:
        set_current_user(user_id=user_id, actor_type=ActorType.USER, request_id="req-test")

