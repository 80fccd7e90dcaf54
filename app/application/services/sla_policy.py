"""Pure SLA evaluator: decides what the SLA sweep should do with one approval.

No I/O: the caller supplies the approval, the template's SLA policy, the
approver's profile and the current time, and applies the decision.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from app.application.dtos.organization import ApproverProfile
from app.domain.entities.approval import DocumentApprovalEntity
from app.domain.enums import SlaDecisionKind
from app.domain.value_objects.core import SlaPolicy
from app.shared.utils.datetime import duration


@dataclass(frozen=True)
class SlaDecision:
    """Outcome of evaluate_sla. escalate_to is set only for ESCALATE."""

    kind: SlaDecisionKind
    escalate_to: str | None = None
    lookup_keys: tuple[str, ...] = ()


NO_ACTION = SlaDecision(SlaDecisionKind.NONE)


def find_backup(
    policy: SlaPolicy, approver_id: str, profile: ApproverProfile | None
) -> tuple[str | None, tuple[str, ...]]:
    """Return the first backup for the approver's role, then department, that is not the approver.

    Returns:
        (backup user id or None, keys that were looked up).
    """
    keys = tuple(k for k in (profile.role, profile.department) if k) if profile else ()
    for key in keys:
        for candidate in policy.backups_for(key):
            if candidate != approver_id:
                return candidate, keys
    return None, keys


def evaluate_sla(
    approval: DocumentApprovalEntity,
    policy: SlaPolicy,
    profile: ApproverProfile | None,
    now: datetime,
    unit: str = "hours",
) -> SlaDecision:
    """Decide NONE, WARN, ESCALATE(to) or MISSING_BACKUP for one approval.

    - Only PENDING approvals with a deadline are considered.
    - Once the deadline has elapsed and auto_reassign is on, escalate to the
      first backup (role, then department) other than the approver; if there
      is none, MISSING_BACKUP. An approval already escalated is left alone.
    - Otherwise warn once when the time remaining drops below the threshold.
    """
    if not approval.is_pending or approval.deadline is None:
        return NO_ACTION

    if policy.auto_reassign and approval.is_overdue(now):
        if approval.is_escalated:
            return NO_ACTION
        backup, keys = find_backup(policy, approval.approver_id, profile)
        if backup is None:
            return SlaDecision(SlaDecisionKind.MISSING_BACKUP, lookup_keys=keys)
        return SlaDecision(SlaDecisionKind.ESCALATE, escalate_to=backup, lookup_keys=keys)

    remaining = approval.time_remaining(now)
    if (
        approval.warning_sent_at is None
        and remaining is not None
        and remaining < duration(policy.warning_threshold, unit)
    ):
        return SlaDecision(SlaDecisionKind.WARN)
    return NO_ACTION
