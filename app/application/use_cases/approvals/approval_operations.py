"""Approval operations: participant decisions, escalation, reminders and SLA warnings.

Every transition goes through the pure DocumentApprovalEntity methods, is
persisted with a compare-and-swap on PENDING status, and is audited once
by @audited. Notifications are dispatched after the transition succeeds.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import datetime
from typing import TYPE_CHECKING, Any

from app.application.dtos.notification import NotificationEvent
from app.application.services.audit_trail import AuditedChange, AuditTrail, audited
from app.domain.enums import ParticipantAction
from app.domain.exceptions import (
    AuthorizationException,
    ResourceNotFoundException,
    StateConflictException,
    ValidationException,
)
from app.shared.context import get_actor_context
from app.shared.enums import AuditAction, AuditEntityType
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import add_span_attributes, traced
from app.shared.utils.datetime import duration, utc_now

if TYPE_CHECKING:
    from app.application.interfaces.repositories import (
        IDocumentApprovalRepository,
        IWorkflowRunRepository,
    )
    from app.application.interfaces.services import (
        IIdentityDirectory,
        INotificationDispatcher,
    )
    from app.application.services.template_validator import TemplateValidator
    from app.application.services.workflow_engine import WorkflowEngine
    from app.domain.entities.approval import DocumentApprovalEntity
    from app.domain.entities.workflow_run import StepStateEntity
    from app.domain.value_objects.core import SlaPolicy

logger = get_logger(__name__)

APPROVAL_ESCALATED = "approval_escalated"
APPROVAL_REMINDER = "approval_reminder"
SLA_WARNING = "sla_warning"


def _decision_audit_action(arguments: Mapping[str, Any]) -> AuditAction:
    if ParticipantAction(arguments["action"]) is ParticipantAction.REJECT:
        return AuditAction.REJECT
    return AuditAction.APPROVE


def _participants(approval: DocumentApprovalEntity) -> tuple[str, ...]:
    """Approver plus escalation target, without duplicates."""
    if approval.is_escalated and approval.escalated_to and approval.escalated_to != approval.approver_id:
        return (approval.approver_id, approval.escalated_to)
    return (approval.approver_id,)


class ApprovalService:
    """State transitions on DocumentApproval records."""

    def __init__(
        self,
        approval_repo: IDocumentApprovalRepository,
        run_repo: IWorkflowRunRepository,
        engine: WorkflowEngine,
        identity: IIdentityDirectory,
        dispatcher: INotificationDispatcher,
        validator: TemplateValidator,
        audit: AuditTrail,
        deadline_unit: str = "hours",
    ) -> None:
        self._approval_repo = approval_repo
        self._run_repo = run_repo
        self._engine = engine
        self._identity = identity
        self._dispatcher = dispatcher
        self._validator = validator
        self._audit = audit
        self._deadline_unit = deadline_unit

    async def get(self, approval_id: str) -> DocumentApprovalEntity:
        approval = await self._approval_repo.get_by_id(approval_id)
        if approval is None:
            raise ResourceNotFoundException("document_approval", approval_id)
        return approval

    async def list_for_user(
        self, user_id: str, skip: int = 0, limit: int = 100
    ) -> list[DocumentApprovalEntity]:
        """Return PENDING approvals the user may act on (own or escalated to them)."""
        return await self._approval_repo.list_pending_for_user(user_id, skip=skip, limit=limit)

    async def _step_state(self, approval: DocumentApprovalEntity) -> StepStateEntity:
        state = await self._run_repo.get_step_state(approval.workflow_step_id)
        if state is None:
            raise ResourceNotFoundException("workflow_step", approval.workflow_step_id)
        return state

    async def sla_policy_for(self, approval: DocumentApprovalEntity) -> SlaPolicy:
        """Return the SLA policy of the template version the approval's run is pinned to."""
        state = await self._step_state(approval)
        run = await self._run_repo.get_run(state.run_id)
        if run is None:
            raise ResourceNotFoundException("workflow_run", state.run_id)
        template = await self._engine.load_template(run)
        return template.sla

    # Participant decisions

    @traced("approvals.act")
    async def act(
        self,
        approval_id: str,
        payload: dict[str, Any],
        now: datetime | None = None,
    ) -> DocumentApprovalEntity:
        """Validate a workflow action payload and apply it to a pending approval.

        After the decision the step is evaluated and, once it settles, the
        run advances to dependent steps.

        Raises:
            ValidationException: If the payload is invalid.
            AuthorizationException: If the actor is not the approver or escalation target.
            StateConflictException: If the approval is no longer PENDING.
            DependencyUnsatisfiedException: If the step's dependencies are not terminal.
        """
        payload = self._validator.check_action(payload)
        action = ParticipantAction(payload["action"])
        now = now or utc_now()
        add_span_attributes(approval_id=approval_id, action=action.value)
        decided = await self._decide(
            approval_id=approval_id,
            action=action,
            comments=payload.get("remarks"),
            form_data=payload.get("formData"),
            now=now,
        )
        await self._engine.on_decision(decided, now)
        return decided

    async def approve(
        self, approval_id: str, comments: str | None = None, now: datetime | None = None
    ) -> DocumentApprovalEntity:
        payload: dict[str, Any] = {"action": ParticipantAction.APPROVE.value}
        if comments:
            payload["remarks"] = comments
        return await self.act(approval_id, payload, now)

    async def reject(
        self, approval_id: str, comments: str | None = None, now: datetime | None = None
    ) -> DocumentApprovalEntity:
        payload: dict[str, Any] = {"action": ParticipantAction.REJECT.value}
        if comments:
            payload["remarks"] = comments
        return await self.act(approval_id, payload, now)

    @audited(AuditEntityType.DOCUMENT_APPROVAL, _decision_audit_action, id_param="approval_id")
    async def _decide(
        self,
        approval_id: str,
        action: ParticipantAction,
        comments: str | None,
        form_data: dict[str, Any] | None,
        now: datetime,
    ) -> AuditedChange:
        before = await self.get(approval_id)
        actor = get_actor_context()
        if not before.may_be_decided_by(actor.user_id):
            raise AuthorizationException("document_approval", action.value)
        state = await self._step_state(before)
        await self._engine.ensure_dependencies_met(state)
        after = before.decide(action, comments, now)
        if form_data:
            after = replace(after, metadata={**after.metadata, "formData": form_data})
        saved = await self._approval_repo.compare_and_swap(before, after)
        logger.info(
            "Approval %s %s by %s", approval_id, saved.status.value, actor.user_id
        )
        return AuditedChange(
            approval_id,
            before,
            saved,
            metadata={"action": action.value, "stepKey": state.step_key},
        )

    # Escalation

    @traced("approvals.escalate")
    async def escalate(
        self, approval_id: str, to: str, now: datetime | None = None
    ) -> DocumentApprovalEntity:
        """Hand a pending approval to another user once it is overdue or inside the warning window.

        Repeating the escalation with the same target changes nothing and
        writes no audit entry.

        Raises:
            AuthorizationException: If a user other than approver or target escalates.
            StateConflictException: If the approval is no longer PENDING.
            ValidationException: If not yet escalatable or the target is unknown.
        """
        now = now or utc_now()
        before = await self.get(approval_id)
        escalated = await self._escalate(approval_id=approval_id, to=to, now=now)
        if not (before.is_escalated and before.escalated_to == to):
            await self._dispatcher.dispatch(
                NotificationEvent(
                    APPROVAL_ESCALATED,
                    APPROVAL_ESCALATED,
                    _participants(escalated),
                    {
                        "approvalId": escalated.id,
                        "documentId": escalated.document_id,
                        "escalatedTo": to,
                    },
                )
            )
        return escalated

    @audited(AuditEntityType.DOCUMENT_APPROVAL, AuditAction.ESCALATE, id_param="approval_id")
    async def _escalate(self, approval_id: str, to: str, now: datetime) -> AuditedChange:
        before = await self.get(approval_id)
        actor = get_actor_context()
        if not actor.is_system and not before.may_be_decided_by(actor.user_id):
            raise AuthorizationException("document_approval", "escalate")
        if not before.is_pending:
            raise StateConflictException(approval_id, before.status.value, "escalate")
        if before.is_escalated and before.escalated_to == to:
            return AuditedChange(approval_id, before, before)

        policy = await self.sla_policy_for(before)
        remaining = before.time_remaining(now)
        if remaining is None or remaining >= duration(policy.warning_threshold, self._deadline_unit):
            raise ValidationException(
                "Approval can be escalated only after its deadline has passed "
                "or within the SLA warning threshold",
                field="deadline",
            )
        if await self._identity.get_profile(to) is None:
            raise ValidationException(f"Unknown escalation target: {to}", field="to")

        after = before.escalate(to, now)
        saved = await self._approval_repo.compare_and_swap(before, after)
        logger.info("Approval %s escalated to %s", approval_id, to)
        return AuditedChange(approval_id, before, saved)

    # Reminders and SLA warnings

    @traced("approvals.remind")
    async def remind(
        self, approval_id: str, now: datetime | None = None
    ) -> DocumentApprovalEntity:
        """Send a reminder for a pending approval; remindersSent is incremented atomically.

        Raises:
            StateConflictException: If the approval is no longer PENDING.
        """
        now = now or utc_now()
        reminded = await self._remind(approval_id=approval_id, now=now)
        await self._dispatcher.dispatch(
            NotificationEvent(
                APPROVAL_REMINDER,
                APPROVAL_REMINDER,
                _participants(reminded),
                {
                    "approvalId": reminded.id,
                    "documentId": reminded.document_id,
                    "remindersSent": reminded.reminders_sent,
                    "deadline": reminded.deadline.isoformat() if reminded.deadline else None,
                },
            )
        )
        return reminded

    @audited(AuditEntityType.DOCUMENT_APPROVAL, AuditAction.REMIND, id_param="approval_id")
    async def _remind(self, approval_id: str, now: datetime) -> AuditedChange:
        before = await self.get(approval_id)
        before.remind(now)
        saved = await self._approval_repo.increment_reminders(approval_id, now)
        return AuditedChange(approval_id, before, saved)

    async def warn(self, approval_id: str, now: datetime | None = None) -> DocumentApprovalEntity:
        """Record and send the SLA warning for a pending approval (at most once)."""
        now = now or utc_now()
        before = await self.get(approval_id)
        warned = await self._warn(approval_id=approval_id, now=now)
        if before.warning_sent_at is None and warned.warning_sent_at is not None:
            await self._dispatcher.dispatch(
                NotificationEvent(
                    SLA_WARNING,
                    SLA_WARNING,
                    _participants(warned),
                    {
                        "approvalId": warned.id,
                        "documentId": warned.document_id,
                        "deadline": warned.deadline.isoformat() if warned.deadline else None,
                    },
                )
            )
        return warned

    @audited(AuditEntityType.DOCUMENT_APPROVAL, AuditAction.WARN, id_param="approval_id")
    async def _warn(self, approval_id: str, now: datetime) -> AuditedChange:
        before = await self.get(approval_id)
        after = before.mark_warned(now)
        if after is before:
            return AuditedChange(approval_id, before, before)
        saved = await self._approval_repo.compare_and_swap(before, after)
        return AuditedChange(approval_id, before, saved)
