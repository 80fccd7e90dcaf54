"""Periodic sweeps over pending approvals (SLA policy, reminders)."""

from app.application.use_cases.sweeps.run_sweeps import (
    RunReminderSweepUseCase,
    RunSlaSweepUseCase,
)

__all__ = ["RunReminderSweepUseCase", "RunSlaSweepUseCase"]
