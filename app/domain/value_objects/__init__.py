"""Domain value objects and shared value types."""

from app.domain.value_objects.core import (
    AssignmentRule,
    DeadlineRule,
    DynamicDeadline,
    FixedDeadline,
    NotificationRule,
    RecipientRule,
    SlaPolicy,
    StepActionConfig,
    StepCondition,
    deadline_from_dict,
)

__all__ = [
    "AssignmentRule",
    "RecipientRule",
    "DeadlineRule",
    "FixedDeadline",
    "DynamicDeadline",
    "deadline_from_dict",
    "StepCondition",
    "StepActionConfig",
    "NotificationRule",
    "SlaPolicy",
]
