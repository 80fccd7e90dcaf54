"""DocumentApproval domain entity.

One approver's decision slot on one step of a document's workflow run.
Transitions are pure: each returns a new snapshot and raises
StateConflictException when the record is no longer PENDING. Persisting
the transition is guarded separately by a compare-and-swap on status.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any

from app.domain.enums import ApprovalStatus, ParticipantAction
from app.domain.exceptions import StateConflictException, ValidationException
from app.shared.utils.datetime import ensure_utc


@dataclass(frozen=True)
class DocumentApprovalEntity:
    """Immutable snapshot of a DocumentApproval record."""

    id: str
    document_id: str
    workflow_step_id: str
    approver_id: str
    status: ApprovalStatus = ApprovalStatus.PENDING
    comments: str | None = None
    approved_at: datetime | None = None
    deadline: datetime | None = None
    reminders_sent: int = 0
    last_reminder_sent: datetime | None = None
    is_escalated: bool = False
    escalated_at: datetime | None = None
    escalated_to: str | None = None
    warning_sent_at: datetime | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status is ApprovalStatus.PENDING

    def _require_pending(self, attempted: str) -> None:
        if not self.is_pending:
            raise StateConflictException(self.id, self.status.value, attempted)

    def may_be_decided_by(self, user_id: str | None) -> bool:
        """Return whether user_id is the approver or the escalation target."""
        if not user_id:
            return False
        return user_id == self.approver_id or (
            self.is_escalated and user_id == self.escalated_to
        )

    def is_overdue(self, now: datetime) -> bool:
        """Return whether the deadline has elapsed at now. No deadline is never overdue."""
        return self.deadline is not None and ensure_utc(now) >= ensure_utc(self.deadline)

    def time_remaining(self, now: datetime) -> timedelta | None:
        """Return time left until the deadline (negative once overdue), or None."""
        if self.deadline is None:
            return None
        return ensure_utc(self.deadline) - ensure_utc(now)

    def approve(self, comments: str | None, now: datetime) -> "DocumentApprovalEntity":
        self._require_pending("approve")
        return replace(
            self,
            status=ApprovalStatus.APPROVED,
            comments=comments,
            approved_at=now,
            updated_at=now,
        )

    def reject(self, comments: str | None, now: datetime) -> "DocumentApprovalEntity":
        self._require_pending("reject")
        return replace(
            self,
            status=ApprovalStatus.REJECTED,
            comments=comments,
            approved_at=now,
            updated_at=now,
        )

    def decide(
        self, action: ParticipantAction, comments: str | None, now: datetime
    ) -> "DocumentApprovalEntity":
        """Apply a participant action: reject, or an affirmative decision."""
        if action.is_affirmative:
            return self.approve(comments, now)
        return self.reject(comments, now)

    def escalate(self, to: str, now: datetime) -> "DocumentApprovalEntity":
        """Hand the approval to another user. Status stays PENDING.

        Returns self unchanged when already escalated to the same target.

        Raises:
            StateConflictException: If not PENDING.
            ValidationException: If the target is empty or is the approver.
        """
        self._require_pending("escalate")
        if not to:
            raise ValidationException("Escalation target is required", field="to")
        if to == self.approver_id:
            raise ValidationException(
                "Cannot escalate an approval to its own approver", field="to"
            )
        if self.is_escalated and self.escalated_to == to:
            return self
        return replace(
            self,
            is_escalated=True,
            escalated_at=now,
            escalated_to=to,
            updated_at=now,
        )

    def remind(self, now: datetime) -> "DocumentApprovalEntity":
        self._require_pending("remind")
        return replace(
            self,
            reminders_sent=self.reminders_sent + 1,
            last_reminder_sent=now,
            updated_at=now,
        )

    def mark_warned(self, now: datetime) -> "DocumentApprovalEntity":
        """Record that the SLA warning was sent. Sent at most once."""
        self._require_pending("warn")
        if self.warning_sent_at is not None:
            return self
        return replace(self, warning_sent_at=now, updated_at=now)

    def reminder_due(
        self, now: datetime, interval: timedelta, max_reminders: int
    ) -> bool:
        """Return whether a reminder sweep should remind this approval at now."""
        if not self.is_pending or self.reminders_sent >= max_reminders:
            return False
        if self.last_reminder_sent is None:
            return True
        return ensure_utc(now) - ensure_utc(self.last_reminder_sent) >= interval
