"""Workflow engine: instantiates eligible steps and settles steps and runs.

A step becomes eligible once every dependency is COMPLETED; a rejected or
skipped dependency skips it. Participant steps (approval, review, sign,
route) get one PENDING approval per resolved assignee; notify, condition
and action steps finish as soon as they are instantiated. A run settles
when every template step has a terminal state.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.application.dtos.notification import NotificationEvent
from app.application.services.audit_trail import AuditedChange, AuditTrail, audited
from app.application.services.expressions import (
    FormulaError,
    conditions_hold,
    evaluate_formula,
)
from app.domain.entities.workflow import StepDefinition, WorkflowTemplateEntity
from app.domain.entities.workflow_run import settle_run
from app.domain.enums import DependencyGate, RunStatus, StepStatus, StepType
from app.domain.exceptions import (
    DependencyUnsatisfiedException,
    ResourceNotFoundException,
)
from app.domain.value_objects.core import FixedDeadline, NotificationRule
from app.shared.enums import AuditAction, AuditEntityType
from app.shared.telemetry.logging import get_logger
from app.shared.utils.datetime import duration

if TYPE_CHECKING:
    from app.application.dtos.organization import DocumentInfo
    from app.application.interfaces.repositories import (
        IDocumentApprovalRepository,
        IDocumentRepository,
        IWorkflowRunRepository,
        IWorkflowTemplateRepository,
    )
    from app.application.interfaces.services import (
        IIdentityDirectory,
        INotificationDispatcher,
    )
    from app.domain.entities.approval import DocumentApprovalEntity
    from app.domain.entities.workflow_run import StepStateEntity, WorkflowRunEntity

logger = get_logger(__name__)

STEP_CREATED = "step_created"
STEP_COMPLETED = "step_completed"
STEP_REJECTED = "step_rejected"
WORKFLOW_COMPLETED = "workflow_completed"
WORKFLOW_REJECTED = "workflow_rejected"


class WorkflowEngine:
    """Advances workflow runs: step instantiation, step evaluation, run settlement."""

    def __init__(
        self,
        template_repo: IWorkflowTemplateRepository,
        run_repo: IWorkflowRunRepository,
        approval_repo: IDocumentApprovalRepository,
        document_repo: IDocumentRepository,
        identity: IIdentityDirectory,
        dispatcher: INotificationDispatcher,
        audit: AuditTrail,
        deadline_unit: str = "hours",
    ) -> None:
        self._template_repo = template_repo
        self._run_repo = run_repo
        self._approval_repo = approval_repo
        self._document_repo = document_repo
        self._identity = identity
        self._dispatcher = dispatcher
        self._audit = audit
        self._deadline_unit = deadline_unit

    async def load_template(self, run: WorkflowRunEntity) -> WorkflowTemplateEntity:
        """Return the template version the run is pinned to."""
        version = await self._template_repo.get_version(run.template_version_id)
        if version is None:
            raise ResourceNotFoundException("workflow_template_version", run.template_version_id)
        return WorkflowTemplateEntity.from_definition(
            run.template_id, version.definition, version.version, version.id
        )

    async def load_document(self, document_id: str) -> DocumentInfo:
        document = await self._document_repo.get_by_id(document_id)
        if document is None:
            raise ResourceNotFoundException("document", document_id)
        return document

    async def ensure_dependencies_met(self, state: StepStateEntity) -> None:
        """Raise DependencyUnsatisfiedException if any dependency of the step is not terminal."""
        run = await self._run_repo.get_run(state.run_id)
        if run is None:
            raise ResourceNotFoundException("workflow_run", state.run_id)
        template = await self.load_template(run)
        statuses = {s.step_key: s.status for s in await self._run_repo.list_step_states(run.id)}
        pending = template.pending_dependencies(state.step_key, statuses)
        if pending:
            raise DependencyUnsatisfiedException(state.step_key, pending)

    async def instantiate_step(
        self, run: WorkflowRunEntity, step_key: str, now: datetime
    ) -> StepStateEntity:
        """Instantiate one step explicitly.

        Raises:
            DependencyUnsatisfiedException: If a dependency is not yet terminal.
        """
        template = await self.load_template(run)
        existing = {s.step_key: s for s in await self._run_repo.list_step_states(run.id)}
        if step_key in existing:
            return existing[step_key]
        statuses = {key: s.status for key, s in existing.items()}
        gate = template.gate(step_key, statuses)
        if gate is DependencyGate.WAITING:
            raise DependencyUnsatisfiedException(
                step_key, template.pending_dependencies(step_key, statuses)
            )
        document = await self.load_document(run.document_id)
        return await self._instantiate(run, template.step(step_key), gate, document, now)

    async def advance(
        self,
        run: WorkflowRunEntity,
        now: datetime,
        template: WorkflowTemplateEntity | None = None,
        document: DocumentInfo | None = None,
    ) -> list[StepStateEntity]:
        """Instantiate every step whose dependencies are settled, then settle the run.

        Holds a row lock on the run so concurrent step completions do not
        instantiate the same dependent twice.

        Returns:
            All step states of the run after advancing.
        """
        locked = await self._run_repo.get_run(run.id, for_update=True)
        if locked is None:
            raise ResourceNotFoundException("workflow_run", run.id)
        template = template or await self.load_template(locked)
        states = {s.step_key: s for s in await self._run_repo.list_step_states(locked.id)}
        if not locked.is_active:
            return list(states.values())
        document = document or await self.load_document(locked.document_id)

        statuses = {key: s.status for key, s in states.items()}
        progressed = True
        while progressed:
            progressed = False
            for step in template.steps:
                if step.id in states:
                    continue
                gate = template.gate(step.id, statuses)
                if gate is DependencyGate.WAITING:
                    continue
                state = await self._instantiate(locked, step, gate, document, now)
                states[step.id] = state
                statuses[step.id] = state.status
                progressed = True

        await self._settle(locked, template, list(states.values()), now)
        return list(states.values())

    async def on_decision(
        self, approval: DocumentApprovalEntity, now: datetime
    ) -> StepStateEntity:
        """Evaluate the approval's step after a decision and advance the run if it settled.

        The step row is locked while its siblings are read, so concurrent
        decisions on the same step are evaluated one at a time. A terminal
        step latches: later sibling decisions do not change it.
        """
        state = await self._run_repo.get_step_state(approval.workflow_step_id, for_update=True)
        if state is None:
            raise ResourceNotFoundException("workflow_step", approval.workflow_step_id)
        siblings = await self._approval_repo.list_by_step(state.id)
        outcome = state.outcome(a.status for a in siblings)
        if outcome is None:
            return state
        latched = await self._run_repo.latch_step_status(state.id, outcome, now)
        if latched is None:
            return state
        logger.info(
            "Step %s of run %s is %s", latched.step_key, latched.run_id, latched.status.value
        )

        run = await self._run_repo.get_run(latched.run_id)
        if run is None:
            raise ResourceNotFoundException("workflow_run", latched.run_id)
        template = await self.load_template(run)
        document = await self.load_document(run.document_id)
        event = STEP_COMPLETED if outcome is StepStatus.COMPLETED else STEP_REJECTED
        await self._notify_step(run, template.step(latched.step_key), event, document)
        await self.advance(run, now, template, document)
        return latched

    def compute_deadline(
        self, step: StepDefinition, document: DocumentInfo, now: datetime
    ) -> datetime | None:
        """Return the absolute deadline for a step activated at now, or None."""
        rule = step.deadline
        if rule is None:
            return None
        if isinstance(rule, FixedDeadline):
            amount = rule.value
        else:
            try:
                amount = evaluate_formula(rule.formula, document.metadata)
            except FormulaError as e:
                logger.warning(
                    "Deadline formula of step %s failed for document %s: %s",
                    step.id,
                    document.id,
                    e,
                )
                return None
        return now + duration(amount, self._deadline_unit)

    async def _instantiate(
        self,
        run: WorkflowRunEntity,
        step: StepDefinition,
        gate: DependencyGate,
        document: DocumentInfo,
        now: datetime,
    ) -> StepStateEntity:
        if gate is DependencyGate.BLOCKED:
            logger.info("Skipping step %s of run %s: a dependency did not complete", step.id, run.id)
            return await self._create_state(run, step, StepStatus.SKIPPED, now)

        if not conditions_hold(step.conditions, document.metadata):
            logger.info("Skipping step %s of run %s: conditions not met", step.id, run.id)
            return await self._create_state(run, step, StepStatus.SKIPPED, now)

        if step.type is StepType.NOTIFY:
            state = await self._create_state(run, step, StepStatus.COMPLETED, now)
            for rule in step.notifications:
                await self._dispatch_rule(rule, self._context(run, step, document))
            return state

        if step.type is StepType.ACTION:
            state = await self._create_state(run, step, StepStatus.COMPLETED, now)
            for action in step.actions:
                await self._dispatcher.run_action(
                    action.type, dict(action.config), self._context(run, step, document)
                )
            await self._notify_step(run, step, STEP_COMPLETED, document)
            return state

        if step.type is StepType.CONDITION:
            state = await self._create_state(run, step, StepStatus.COMPLETED, now)
            await self._notify_step(run, step, STEP_COMPLETED, document)
            return state

        assignees = await self._identity.resolve_assignees(
            step.assign_to, document, run.initiated_by
        )
        if not assignees:
            logger.warning(
                "No assignees resolved for step %s of run %s; rejecting step", step.id, run.id
            )
            state = await self._create_state(run, step, StepStatus.REJECTED, now)
            await self._notify_step(run, step, STEP_REJECTED, document)
            return state

        deadline = self.compute_deadline(step, document, now)
        state = await self._create_state(
            run,
            step,
            StepStatus.ACTIVE,
            now,
            required_approvals=step.required_count(len(assignees)),
            deadline=deadline,
        )
        for approver_id in assignees:
            await self._assign(
                document_id=document.id,
                workflow_step_id=state.id,
                approver_id=approver_id,
                deadline=deadline,
                metadata={"runId": run.id, "stepKey": step.id, "stepType": step.type.value},
            )
        logger.info(
            "Step %s of run %s assigned to %d approver(s)", step.id, run.id, len(assignees)
        )
        await self._notify_step(run, step, STEP_CREATED, document, deadline=deadline)
        return state

    async def _create_state(
        self,
        run: WorkflowRunEntity,
        step: StepDefinition,
        status: StepStatus,
        now: datetime,
        required_approvals: int = 0,
        deadline: datetime | None = None,
    ) -> StepStateEntity:
        return await self._run_repo.create_step_state(
            run_id=run.id,
            step_key=step.id,
            step_type=step.type,
            status=status,
            required_approvals=required_approvals,
            deadline=deadline,
            activated_at=now,
        )

    async def _settle(
        self,
        run: WorkflowRunEntity,
        template: WorkflowTemplateEntity,
        states: list[StepStateEntity],
        now: datetime,
    ) -> None:
        status = settle_run((s.status for s in states), len(template.steps))
        if status is RunStatus.ACTIVE:
            return
        await self._finish_run(run_id=run.id, status=status, now=now)
        logger.info("Workflow run %s finished: %s", run.id, status.value)
        event = WORKFLOW_COMPLETED if status is RunStatus.COMPLETED else WORKFLOW_REJECTED
        context = {"documentId": run.document_id, "runId": run.id, "status": status.value}
        if run.initiated_by:
            await self._dispatcher.dispatch(
                NotificationEvent(event, event, (run.initiated_by,), context)
            )
        for step in template.steps:
            for rule in step.notifications_for(event):
                await self._dispatch_rule(rule, context)

    @audited(AuditEntityType.DOCUMENT_APPROVAL, AuditAction.CREATE)
    async def _assign(
        self,
        document_id: str,
        workflow_step_id: str,
        approver_id: str,
        deadline: datetime | None,
        metadata: dict[str, Any],
    ) -> AuditedChange:
        created = await self._approval_repo.create(
            document_id=document_id,
            workflow_step_id=workflow_step_id,
            approver_id=approver_id,
            deadline=deadline,
            metadata=metadata,
        )
        return AuditedChange(created.id, None, created, metadata=dict(metadata))

    @audited(AuditEntityType.WORKFLOW_RUN, AuditAction.UPDATE, id_param="run_id")
    async def _finish_run(self, run_id: str, status: RunStatus, now: datetime) -> AuditedChange:
        before = await self._run_repo.get_run(run_id)
        after = await self._run_repo.set_run_status(run_id, status, now)
        return AuditedChange(run_id, before, after)

    def _context(
        self, run: WorkflowRunEntity, step: StepDefinition, document: DocumentInfo
    ) -> dict[str, Any]:
        return {
            "documentId": document.id,
            "documentTitle": document.title,
            "runId": run.id,
            "stepId": step.id,
            "stepName": step.name,
        }

    async def _notify_step(
        self,
        run: WorkflowRunEntity,
        step: StepDefinition,
        event: str,
        document: DocumentInfo,
        deadline: datetime | None = None,
    ) -> None:
        context = self._context(run, step, document)
        if deadline is not None:
            context["deadline"] = deadline.isoformat()
        for rule in step.notifications_for(event):
            await self._dispatch_rule(rule, context)

    async def _dispatch_rule(self, rule: NotificationRule, context: dict[str, Any]) -> None:
        recipients = await self._identity.resolve_recipients(rule.recipients)
        await self._dispatcher.dispatch(
            NotificationEvent(rule.event, rule.template, tuple(recipients), context)
        )
