"""Approval use cases: decisions, escalation, reminders, SLA warnings."""

from app.application.use_cases.approvals.approval_operations import ApprovalService

__all__ = ["ApprovalService"]
