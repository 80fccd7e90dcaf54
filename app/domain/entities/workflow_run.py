"""Workflow run domain entities.

A run is one document's pass through a pinned template version. Each
template step that becomes eligible gets a step state; step state status
latches once terminal.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from app.domain.enums import ApprovalStatus, RunStatus, StepStatus, StepType


@dataclass(frozen=True)
class WorkflowRunEntity:
    """Immutable snapshot of a workflow run."""

    id: str
    document_id: str
    template_id: str
    template_version_id: str
    status: RunStatus
    initiated_by: str | None
    started_at: datetime
    completed_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is RunStatus.ACTIVE


@dataclass(frozen=True)
class StepStateEntity:
    """Immutable snapshot of one instantiated step of a run."""

    id: str
    run_id: str
    step_key: str
    step_type: StepType
    status: StepStatus
    required_approvals: int
    deadline: datetime | None
    activated_at: datetime
    completed_at: datetime | None = None

    def outcome(self, decisions: Iterable[ApprovalStatus]) -> StepStatus | None:
        """Return the terminal status the sibling decisions imply, or None.

        Only an ACTIVE step has an outcome; a terminal step latches. Any
        REJECTED sibling rejects the step; otherwise the step completes once
        required_approvals siblings are APPROVED, in whatever order.
        """
        if self.status.is_terminal:
            return None
        decisions = list(decisions)
        if ApprovalStatus.REJECTED in decisions:
            return StepStatus.REJECTED
        approved = sum(1 for d in decisions if d is ApprovalStatus.APPROVED)
        if approved >= self.required_approvals:
            return StepStatus.COMPLETED
        return None


def settle_run(statuses: Iterable[StepStatus], total_steps: int) -> RunStatus:
    """Return the run status implied by its step statuses.

    A run stays ACTIVE until every template step has a terminal state; it
    is then REJECTED if any step was rejected, else COMPLETED.
    """
    statuses = list(statuses)
    if len(statuses) < total_steps or not all(s.is_terminal for s in statuses):
        return RunStatus.ACTIVE
    if StepStatus.REJECTED in statuses:
        return RunStatus.REJECTED
    return RunStatus.COMPLETED
