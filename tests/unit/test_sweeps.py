"""Tests for the SLA and reminder sweeps."""

from datetime import timedelta

import pytest

from app.domain.exceptions import StateConflictException
from tests.support import NOW, Docflow, act_as, step, template_payload

HOUR = timedelta(hours=1)


async def start(docflow: Docflow, payload: dict) -> None:
    act_as("dave")
    template_id = await docflow.create_template(payload)
    await docflow.start("doc1", template_id)
    act_as(None)


def with_sla(**sla) -> dict:
    return template_payload(sla={"autoReassign": True, **sla})


class TestSlaSweep:
    """Tests for RunSlaSweepUseCase."""

    async def test_nothing_to_do_early(self, docflow: Docflow) -> None:
        await start(docflow, with_sla(backupAssignees={"manager": ["carol"]}))
        result = await docflow.sla_sweep.run(NOW)
        assert (result.scanned, result.warned, result.escalated) == (2, 0, 0)

    async def test_warns_once_inside_threshold(self, docflow: Docflow) -> None:
        await start(docflow, with_sla(backupAssignees={"manager": ["carol"]}))

        first = await docflow.sla_sweep.run(NOW + 47 * HOUR)
        again = await docflow.sla_sweep.run(NOW + 47 * HOUR)

        assert first.warned == 2
        assert again.warned == 0
        assert docflow.dispatcher.names().count("sla_warning") == 2
        assert all(a.warning_sent_at == NOW + 47 * HOUR for a in docflow.approvals.rows.values())

    async def test_escalates_overdue_approvals_to_backup(self, docflow: Docflow) -> None:
        await start(docflow, with_sla(backupAssignees={"manager": ["carol"]}))

        first = await docflow.sla_sweep.run(NOW + 49 * HOUR)
        again = await docflow.sla_sweep.run(NOW + 50 * HOUR)

        assert first.escalated == 2
        assert again.escalated == 0
        assert first.failures == []
        for approval in docflow.approvals.rows.values():
            assert approval.is_escalated
            assert approval.escalated_to == "carol"
        escalations = [e for e in docflow.audit_log.entries if e.action == "ESCALATE"]
        assert len(escalations) == 2
        assert all(e.user_id is None for e in escalations)

    async def test_missing_backup_is_reported_each_sweep(self, docflow: Docflow) -> None:
        await start(docflow, with_sla())

        first = await docflow.sla_sweep.run(NOW + 49 * HOUR)
        again = await docflow.sla_sweep.run(NOW + 50 * HOUR)

        assert (first.missing_backup, again.missing_backup) == (2, 2)
        assert first.escalated == 0
        assert not any(a.is_escalated for a in docflow.approvals.rows.values())
        warnings = [e for e in docflow.audit_log.entries if e.status == "WARNING"]
        assert len(warnings) == 4
        assert warnings[0].action == "ESCALATE"
        assert warnings[0].entity_type == "DOCUMENT_APPROVAL"
        assert warnings[0].metadata["error_code"] == "ESCALATION_CONFIG_ERROR"
        assert warnings[0].metadata["lookup_keys"] == ["manager", "Finance"]

    async def test_overdue_without_auto_reassign_only_warns(self, docflow: Docflow) -> None:
        await start(docflow, template_payload())
        result = await docflow.sla_sweep.run(NOW + 49 * HOUR)
        assert (result.warned, result.escalated, result.missing_backup) == (2, 0, 0)


class TestReminderSweep:
    """Tests for RunReminderSweepUseCase (24h interval, at most 3 reminders)."""

    async def test_interval_and_maximum(self, docflow: Docflow) -> None:
        await start(docflow, template_payload())
        reminded = [
            (await docflow.reminder_sweep.run(NOW + offset * HOUR)).reminded
            for offset in (0, 1, 24, 30, 48, 72, 96)
        ]
        assert reminded == [2, 0, 2, 0, 2, 0, 0]
        assert all(a.reminders_sent == 3 for a in docflow.approvals.rows.values())

    async def test_pages_through_every_pending_approval(self, docflow: Docflow) -> None:
        await start(
            docflow,
            template_payload(step("s1", assignTo={"type": "user", "value": ["alice", "bob", "carol"]})),
        )
        result = await docflow.reminder_sweep.run(NOW)
        assert (result.scanned, result.reminded) == (3, 3)

    async def test_decided_approvals_are_not_scanned(self, docflow: Docflow) -> None:
        await start(docflow, template_payload())
        act_as("alice")
        await docflow.approval_service.approve(docflow.pending_for("alice").id, now=NOW)
        act_as(None)
        result = await docflow.reminder_sweep.run(NOW)
        assert (result.scanned, result.reminded) == (1, 1)

    async def test_one_failure_does_not_stop_the_sweep(
        self, docflow: Docflow, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        await start(docflow, template_payload())
        broken_id = docflow.pending_for("alice").id
        remind = docflow.approval_service.remind

        async def flaky_remind(approval_id, now=None):
            if approval_id == broken_id:
                raise RuntimeError("mail relay down")
            return await remind(approval_id, now)

        monkeypatch.setattr(docflow.approval_service, "remind", flaky_remind)
        result = await docflow.reminder_sweep.run(NOW)

        assert result.failures == [broken_id]
        assert result.reminded == 1
        assert docflow.pending_for("bob").reminders_sent == 1

    async def test_state_conflict_is_skipped_not_failed(
        self, docflow: Docflow, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        await start(docflow, template_payload())

        async def decided_meanwhile(approval_id, now=None):
            raise StateConflictException(approval_id, "APPROVED", "remind")

        monkeypatch.setattr(docflow.approval_service, "remind", decided_meanwhile)
        result = await docflow.reminder_sweep.run(NOW)

        assert (result.scanned, result.reminded, result.failures) == (2, 0, [])


async def test_settled_step_leftovers_are_not_swept(docflow: Docflow) -> None:
    """A parallel 2-of-3 step latches; carol's untouched approval gets no reminder or escalation."""
    payload = template_payload(
        step(
            "s1",
            assignTo={"type": "user", "value": ["alice", "bob", "carol"]},
            parallel=True,
            requiredApprovals=2,
            deadline={"type": "fixed", "value": 48},
        ),
        sla={"autoReassign": True, "backupAssignees": {"director": ["erin"]}},
    )
    await start(docflow, payload)
    for user in ("alice", "bob"):
        act_as(user)
        await docflow.approval_service.approve(docflow.pending_for(user).id, now=NOW)
    act_as(None)
    leftover = docflow.pending_for("carol")
    docflow.dispatcher.events.clear()

    reminders = await docflow.reminder_sweep.run(NOW + 25 * HOUR)
    sla = await docflow.sla_sweep.run(NOW + 49 * HOUR)

    assert (reminders.scanned, reminders.reminded) == (0, 0)
    assert (sla.scanned, sla.warned, sla.escalated) == (0, 0, 0)
    assert docflow.approvals.rows[leftover.id].reminders_sent == 0
    assert not docflow.approvals.rows[leftover.id].is_escalated
    assert docflow.dispatcher.names() == []
