"""Tests for domain entities, value objects and exceptions."""

from datetime import UTC, datetime, timedelta

import pytest

from app.domain.entities.approval import DocumentApprovalEntity
from app.domain.entities.workflow import StepDefinition, WorkflowTemplateEntity
from app.domain.entities.workflow_run import StepStateEntity, settle_run
from app.domain.enums import (
    ApprovalStatus,
    DependencyGate,
    ParticipantAction,
    RunStatus,
    StepStatus,
    StepType,
)
from app.domain.exceptions import (
    DependencyUnsatisfiedException,
    DocflowException,
    EscalationConfigException,
    StateConflictException,
    ValidationException,
)
from app.domain.value_objects.core import (
    AssignmentRule,
    DynamicDeadline,
    FixedDeadline,
    SlaPolicy,
    deadline_from_dict,
)
from tests.support import step, template_payload

NOW = datetime(2025, 3, 3, 9, 0, tzinfo=UTC)


def _approval(**overrides) -> DocumentApprovalEntity:
    data = {
        "id": "ap1",
        "document_id": "doc1",
        "workflow_step_id": "st1",
        "approver_id": "alice",
        "deadline": NOW + timedelta(hours=48),
    }
    data.update(overrides)
    return DocumentApprovalEntity(**data)


class TestDocumentApproval:
    """Tests for DocumentApprovalEntity transitions."""

    def test_approve(self) -> None:
        approved = _approval().approve("fine", NOW)
        assert approved.status is ApprovalStatus.APPROVED
        assert approved.comments == "fine"
        assert approved.approved_at == NOW

    def test_decide_maps_affirmative_actions_to_approved(self) -> None:
        for action in (ParticipantAction.REVIEW, ParticipantAction.SIGN, ParticipantAction.COMPLETE):
            assert _approval().decide(action, None, NOW).status is ApprovalStatus.APPROVED
        assert _approval().decide(ParticipantAction.REJECT, None, NOW).status is ApprovalStatus.REJECTED

    def test_terminal_approval_cannot_change(self) -> None:
        rejected = _approval().reject("no", NOW)
        with pytest.raises(StateConflictException):
            rejected.approve(None, NOW)
        with pytest.raises(StateConflictException):
            rejected.remind(NOW)
        with pytest.raises(StateConflictException):
            rejected.escalate("carol", NOW)

    def test_escalate(self) -> None:
        escalated = _approval().escalate("carol", NOW)
        assert escalated.status is ApprovalStatus.PENDING
        assert escalated.is_escalated
        assert escalated.escalated_to == "carol"
        assert escalated.escalated_at == NOW

    def test_escalate_to_same_target_is_unchanged(self) -> None:
        escalated = _approval().escalate("carol", NOW)
        assert escalated.escalate("carol", NOW + timedelta(hours=1)) is escalated

    def test_escalate_to_approver_or_nobody(self) -> None:
        with pytest.raises(ValidationException):
            _approval().escalate("alice", NOW)
        with pytest.raises(ValidationException):
            _approval().escalate("", NOW)

    def test_may_be_decided_by(self) -> None:
        approval = _approval()
        assert approval.may_be_decided_by("alice")
        assert not approval.may_be_decided_by("carol")
        assert not approval.may_be_decided_by(None)
        escalated = approval.escalate("carol", NOW)
        assert escalated.may_be_decided_by("carol")
        assert escalated.may_be_decided_by("alice")

    def test_remind_and_reminder_due(self) -> None:
        interval = timedelta(hours=24)
        approval = _approval()
        assert approval.reminder_due(NOW, interval, 3)
        reminded = approval.remind(NOW)
        assert reminded.reminders_sent == 1
        assert reminded.last_reminder_sent == NOW
        assert not reminded.reminder_due(NOW + timedelta(hours=1), interval, 3)
        assert reminded.reminder_due(NOW + interval, interval, 3)
        assert not reminded.reminder_due(NOW + interval, interval, 1)

    def test_mark_warned_once(self) -> None:
        warned = _approval().mark_warned(NOW)
        assert warned.warning_sent_at == NOW
        assert warned.mark_warned(NOW + timedelta(hours=1)) is warned

    def test_deadline_helpers(self) -> None:
        approval = _approval()
        assert approval.time_remaining(NOW) == timedelta(hours=48)
        assert not approval.is_overdue(NOW)
        assert approval.is_overdue(NOW + timedelta(hours=48))
        no_deadline = _approval(deadline=None)
        assert no_deadline.time_remaining(NOW) is None
        assert not no_deadline.is_overdue(NOW + timedelta(days=365))


class TestStepOutcome:
    """Tests for StepStateEntity.outcome and settle_run."""

    def _state(self, required: int, status: StepStatus = StepStatus.ACTIVE) -> StepStateEntity:
        return StepStateEntity(
            id="st1",
            run_id="run1",
            step_key="s1",
            step_type=StepType.APPROVAL,
            status=status,
            required_approvals=required,
            deadline=None,
            activated_at=NOW,
        )

    def test_completes_after_required_approvals_in_any_order(self) -> None:
        state = self._state(required=2)
        A, P = ApprovalStatus.APPROVED, ApprovalStatus.PENDING
        assert state.outcome([A, P, P]) is None
        assert state.outcome([P, A, A]) is StepStatus.COMPLETED
        assert state.outcome([A, A, A]) is StepStatus.COMPLETED

    def test_any_rejection_rejects(self) -> None:
        state = self._state(required=1)
        assert state.outcome([ApprovalStatus.APPROVED, ApprovalStatus.REJECTED]) is StepStatus.REJECTED

    def test_terminal_step_latches(self) -> None:
        state = self._state(required=1, status=StepStatus.COMPLETED)
        assert state.outcome([ApprovalStatus.REJECTED]) is None

    def test_settle_run(self) -> None:
        C, R, S, A = StepStatus.COMPLETED, StepStatus.REJECTED, StepStatus.SKIPPED, StepStatus.ACTIVE
        assert settle_run([C], 2) is RunStatus.ACTIVE
        assert settle_run([C, A], 2) is RunStatus.ACTIVE
        assert settle_run([C, S], 2) is RunStatus.COMPLETED
        assert settle_run([R, S], 2) is RunStatus.REJECTED


class TestWorkflowTemplate:
    """Tests for WorkflowTemplateEntity and StepDefinition."""

    def _template(self) -> WorkflowTemplateEntity:
        payload = template_payload(
            step("s1"),
            step("s2"),
            step("s3", dependencies=["s1", "s2"]),
        )
        return WorkflowTemplateEntity.from_definition("tpl1", payload)

    def test_gate(self) -> None:
        template = self._template()
        C, A, R = StepStatus.COMPLETED, StepStatus.ACTIVE, StepStatus.REJECTED
        assert template.gate("s1", {}) is DependencyGate.READY
        assert template.gate("s3", {"s1": C}) is DependencyGate.WAITING
        assert template.gate("s3", {"s1": C, "s2": A}) is DependencyGate.WAITING
        assert template.gate("s3", {"s1": C, "s2": C}) is DependencyGate.READY
        assert template.gate("s3", {"s1": A, "s2": R}) is DependencyGate.BLOCKED
        assert template.gate("s3", {"s1": StepStatus.SKIPPED}) is DependencyGate.BLOCKED

    def test_pending_dependencies(self) -> None:
        template = self._template()
        assert template.pending_dependencies("s3", {"s1": StepStatus.COMPLETED}) == ["s2"]
        assert template.pending_dependencies("s3", {"s1": StepStatus.ACTIVE, "s2": StepStatus.REJECTED}) == ["s1"]

    def test_unknown_dependency_rejected(self) -> None:
        with pytest.raises(ValidationException):
            WorkflowTemplateEntity.from_definition(
                "tpl1", template_payload(step("s1", dependencies=["nope"]))
            )

    def test_definition_round_trip_keeps_sla(self) -> None:
        payload = template_payload(
            sla={"warningThreshold": 4, "autoReassign": True, "backupAssignees": {"manager": ["carol"]}}
        )
        template = WorkflowTemplateEntity.from_definition("tpl1", payload, version=3, version_id="tv3")
        assert template.sla.backups_for("manager") == ("carol",)
        assert template.version == 3
        assert template.to_definition()["sla"]["backupAssignees"] == {"manager": ["carol"]}

    def test_required_count(self) -> None:
        sequential = StepDefinition.from_dict(step("s1"))
        parallel = StepDefinition.from_dict(step("s1", parallel=True, requiredApprovals=2))
        assert sequential.required_count(3) == 3
        assert parallel.required_count(3) == 2
        assert parallel.required_count(1) == 1


class TestValueObjects:
    """Tests for assignment, deadline and SLA value objects."""

    def test_assignment_rule_values(self) -> None:
        assert AssignmentRule.from_dict({"type": "role", "value": "manager"}).values == ("manager",)
        rule = AssignmentRule.from_dict({"type": "user", "value": ["alice", "bob"]})
        assert rule.values == ("alice", "bob")
        assert rule.to_dict() == {"type": "user", "value": ["alice", "bob"]}

    def test_assignment_rule_rejects_empty(self) -> None:
        with pytest.raises(ValueError):
            AssignmentRule.from_dict({"type": "user", "value": []})
        with pytest.raises(ValueError):
            AssignmentRule.from_dict({"type": "team", "value": "x"})

    def test_deadline_variants(self) -> None:
        assert deadline_from_dict({"type": "fixed", "value": 4, "formula": "x"}) == FixedDeadline(4)
        assert deadline_from_dict({"type": "dynamic", "formula": "x * 2", "value": 1}) == DynamicDeadline("x * 2")
        with pytest.raises(ValueError):
            deadline_from_dict({"type": "fixed"})
        with pytest.raises(ValueError):
            FixedDeadline(-1)

    def test_sla_policy_threshold(self) -> None:
        assert SlaPolicy().warning_threshold == 2
        with pytest.raises(ValueError):
            SlaPolicy(warning_threshold=0)


class TestExceptions:
    """Tests for domain exception payloads."""

    def test_base_exception_default_code(self) -> None:
        exc = DocflowException("Something failed")
        assert exc.error_code == "DocflowException"
        assert exc.to_dict() == {"error": "DocflowException", "message": "Something failed", "details": {}}

    def test_validation_exception_single_field(self) -> None:
        exc = ValidationException("is required", field="to")
        assert exc.error_code == "VALIDATION_ERROR"
        assert exc.to_dict() == {"errors": [{"field": "to", "message": "is required"}]}

    def test_state_conflict(self) -> None:
        exc = StateConflictException("ap1", "APPROVED", "approve")
        assert exc.error_code == "STATE_CONFLICT"
        assert exc.details == {"approval_id": "ap1", "current_status": "APPROVED", "attempted": "approve"}

    def test_dependency_unsatisfied(self) -> None:
        exc = DependencyUnsatisfiedException("s3", ["s1", "s2"])
        assert exc.message == "Step s3 has unsatisfied dependencies: s1, s2"

    def test_escalation_config(self) -> None:
        exc = EscalationConfigException("ap1", ["manager"])
        assert exc.error_code == "ESCALATION_CONFIG_ERROR"
        assert exc.details["lookup_keys"] == ["manager"]
