"""Reminder and SLA sweeps over pending approvals.

Both sweeps page through PENDING approvals by id and handle each one inside
its own savepoint, so one failing approval is logged and skipped without
undoing the others. Running a sweep twice for the same instant is harmless:
warnings are sent once, escalation to the same backup is a no-op, and
reminders respect the interval and the maximum.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from app.application.dtos.sweep import SweepResult
from app.application.services.sla_policy import evaluate_sla
from app.domain.enums import SlaDecisionKind
from app.domain.exceptions import EscalationConfigException, StateConflictException
from app.shared.enums import AuditAction, AuditEntityType, AuditStatus
from app.shared.telemetry.logging import get_logger
from app.shared.telemetry.tracing import traced
from app.shared.utils.datetime import utc_now

if TYPE_CHECKING:
    from app.application.interfaces.repositories import IDocumentApprovalRepository
    from app.application.interfaces.services import IIdentityDirectory, ITransactionScope
    from app.application.services.audit_trail import AuditTrail
    from app.application.use_cases.approvals import ApprovalService
    from app.domain.entities.approval import DocumentApprovalEntity

logger = get_logger(__name__)

# Approvals fetched per page
SWEEP_BATCH_SIZE = 200


async def _sweep_pending(
    approval_repo: IDocumentApprovalRepository,
    tx: ITransactionScope,
    result: SweepResult,
    handle: Callable[[DocumentApprovalEntity], Awaitable[None]],
    batch_size: int,
) -> SweepResult:
    after_id: str | None = None
    while True:
        batch = await approval_repo.list_pending(after_id=after_id, limit=batch_size)
        if not batch:
            break
        for approval in batch:
            result.scanned += 1
            try:
                async with tx.savepoint():
                    await handle(approval)
            except StateConflictException as e:
                # Decided between listing and handling
                logger.info("Sweep %s skipped approval %s: %s", result.sweep, approval.id, e.message)
            except Exception:
                logger.exception("Sweep %s failed for approval %s", result.sweep, approval.id)
                result.failures.append(approval.id)
        after_id = batch[-1].id
        if len(batch) < batch_size:
            break
    logger.info(
        "Sweep %s done: scanned=%d reminded=%d warned=%d escalated=%d missing_backup=%d failures=%d",
        result.sweep,
        result.scanned,
        result.reminded,
        result.warned,
        result.escalated,
        result.missing_backup,
        len(result.failures),
    )
    return result


class RunSlaSweepUseCase:
    """Applies each pending approval's SLA policy: warn once, escalate to a backup when overdue."""

    def __init__(
        self,
        approval_repo: IDocumentApprovalRepository,
        approvals: ApprovalService,
        identity: IIdentityDirectory,
        tx: ITransactionScope,
        audit: AuditTrail,
        deadline_unit: str = "hours",
        batch_size: int = SWEEP_BATCH_SIZE,
    ) -> None:
        self._approval_repo = approval_repo
        self._approvals = approvals
        self._identity = identity
        self._tx = tx
        self._audit = audit
        self._deadline_unit = deadline_unit
        self._batch_size = batch_size

    @traced("sweeps.sla")
    async def run(self, now: datetime | None = None) -> SweepResult:
        """Run the SLA sweep at now (default: current UTC time).

        Returns:
            Counts of warnings, escalations and missing backups, plus failed approval ids.
        """
        now = now or utc_now()
        result = SweepResult(sweep="sla")

        async def handle(approval: DocumentApprovalEntity) -> None:
            policy = await self._approvals.sla_policy_for(approval)
            profile = await self._identity.get_profile(approval.approver_id)
            decision = evaluate_sla(approval, policy, profile, now, self._deadline_unit)
            if decision.kind is SlaDecisionKind.WARN:
                await self._approvals.warn(approval.id, now)
                result.warned += 1
            elif decision.kind is SlaDecisionKind.ESCALATE:
                await self._approvals.escalate(approval.id, decision.escalate_to, now)
                result.escalated += 1
            elif decision.kind is SlaDecisionKind.MISSING_BACKUP:
                await self._report_missing_backup(approval, list(decision.lookup_keys))
                result.missing_backup += 1

        return await _sweep_pending(
            self._approval_repo, self._tx, result, handle, self._batch_size
        )

    async def _report_missing_backup(
        self, approval: DocumentApprovalEntity, lookup_keys: list[str]
    ) -> None:
        exc = EscalationConfigException(approval.id, lookup_keys)
        logger.warning("%s (looked up %s)", exc.message, lookup_keys or "no keys")
        await self._audit.record(
            AuditAction.ESCALATE,
            AuditEntityType.DOCUMENT_APPROVAL,
            approval.id,
            status=AuditStatus.WARNING,
            error_message=exc.message,
            metadata={"error_code": exc.error_code, **exc.details},
        )


class RunReminderSweepUseCase:
    """Reminds pending approvers at most max_reminders times, at least interval apart."""

    def __init__(
        self,
        approval_repo: IDocumentApprovalRepository,
        approvals: ApprovalService,
        tx: ITransactionScope,
        reminder_interval: timedelta = timedelta(hours=24),
        max_reminders: int = 3,
        batch_size: int = SWEEP_BATCH_SIZE,
    ) -> None:
        self._approval_repo = approval_repo
        self._approvals = approvals
        self._tx = tx
        self._reminder_interval = reminder_interval
        self._max_reminders = max_reminders
        self._batch_size = batch_size

    @traced("sweeps.reminders")
    async def run(self, now: datetime | None = None) -> SweepResult:
        """Run the reminder sweep at now (default: current UTC time)."""
        now = now or utc_now()
        result = SweepResult(sweep="reminder")

        async def handle(approval: DocumentApprovalEntity) -> None:
            if not approval.reminder_due(now, self._reminder_interval, self._max_reminders):
                return
            await self._approvals.remind(approval.id, now)
            result.reminded += 1

        return await _sweep_pending(
            self._approval_repo, self._tx, result, handle, self._batch_size
        )
