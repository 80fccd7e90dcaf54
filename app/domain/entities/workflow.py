"""Workflow template domain entities.

A workflow template is an ordered set of steps with assignment rules,
deadlines, dependencies and an SLA policy. Templates are versioned: the
entity carries the version a run was pinned to.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from app.domain.enums import DependencyGate, StepStatus, StepType
from app.domain.exceptions import ValidationException
from app.domain.value_objects.core import (
    AssignmentRule,
    DeadlineRule,
    NotificationRule,
    SlaPolicy,
    StepActionConfig,
    StepCondition,
    deadline_from_dict,
)


@dataclass(frozen=True)
class StepDefinition:
    """One step of a workflow template."""

    id: str
    name: str
    type: StepType
    assign_to: AssignmentRule
    description: str | None = None
    deadline: DeadlineRule | None = None
    dependencies: tuple[str, ...] = ()
    parallel: bool = False
    required_approvals: int | None = None
    conditions: tuple[StepCondition, ...] = ()
    actions: tuple[StepActionConfig, ...] = ()
    form_config: dict[str, Any] | None = None
    notifications: tuple[NotificationRule, ...] = ()

    def required_count(self, assignee_count: int) -> int:
        """Return how many APPROVED decisions complete this step.

        Parallel steps need required_approvals (capped at the number of
        assignees); sequential steps need every assignee.
        """
        if self.parallel and self.required_approvals:
            return min(self.required_approvals, assignee_count)
        return assignee_count

    def notifications_for(self, event: str) -> list[NotificationRule]:
        """Return notification rules registered for the given step event."""
        return [n for n in self.notifications if n.event == event]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StepDefinition":
        deadline = data.get("deadline")
        required = data.get("requiredApprovals")
        return cls(
            id=data["id"],
            name=data["name"],
            type=StepType(data["type"]),
            assign_to=AssignmentRule.from_dict(data["assignTo"]),
            description=data.get("description"),
            deadline=deadline_from_dict(deadline) if deadline else None,
            dependencies=tuple(data.get("dependencies") or ()),
            parallel=bool(data.get("parallel", False)),
            # JSON Schema "integer" also admits integral floats such as 2.0
            required_approvals=int(required) if required is not None else None,
            conditions=tuple(StepCondition.from_dict(c) for c in data.get("conditions") or ()),
            actions=tuple(StepActionConfig.from_dict(a) for a in data.get("actions") or ()),
            form_config=data.get("formConfig"),
            notifications=tuple(
                NotificationRule.from_dict(n) for n in data.get("notifications") or ()
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "assignTo": self.assign_to.to_dict(),
            "dependencies": list(self.dependencies),
            "parallel": self.parallel,
        }
        if self.description is not None:
            data["description"] = self.description
        if self.deadline is not None:
            data["deadline"] = self.deadline.to_dict()
        if self.required_approvals is not None:
            data["requiredApprovals"] = self.required_approvals
        if self.conditions:
            data["conditions"] = [c.to_dict() for c in self.conditions]
        if self.actions:
            data["actions"] = [a.to_dict() for a in self.actions]
        if self.form_config is not None:
            data["formConfig"] = self.form_config
        if self.notifications:
            data["notifications"] = [n.to_dict() for n in self.notifications]
        return data


@dataclass
class WorkflowTemplateEntity:
    """Domain entity for a workflow template at a specific version.

    Validation runs on construction: at least one step, unique step ids and
    dependencies that reference steps of the same template.
    """

    id: str
    name: str
    department: str
    steps: tuple[StepDefinition, ...]
    description: str | None = None
    file_types: tuple[str, ...] = ()
    sla: SlaPolicy = field(default_factory=SlaPolicy)
    active: bool = True
    version: int = 1
    version_id: str | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Validate template business rules. Raises ValidationException if invalid."""
        if not self.steps:
            raise ValidationException("Template must have at least one step", field="steps")
        keys = [s.id for s in self.steps]
        if len(set(keys)) != len(keys):
            raise ValidationException("Step ids must be unique", field="steps")
        known = set(keys)
        for index, step in enumerate(self.steps):
            for dep in step.dependencies:
                if dep not in known:
                    raise ValidationException(
                        f"Unknown dependency '{dep}'",
                        field=f"steps[{index}].dependencies",
                    )

    def step(self, step_key: str) -> StepDefinition:
        """Return the step with the given id.

        Raises:
            KeyError: If no step has that id.
        """
        for s in self.steps:
            if s.id == step_key:
                return s
        raise KeyError(step_key)

    def gate(self, step_key: str, statuses: Mapping[str, StepStatus]) -> DependencyGate:
        """Return whether a step may be instantiated given its dependencies' statuses.

        BLOCKED when any dependency was rejected or skipped, READY when all
        are COMPLETED, otherwise WAITING (missing or still ACTIVE).
        """
        deps = self.step(step_key).dependencies
        dep_statuses = [statuses.get(d) for d in deps]
        if any(s in (StepStatus.REJECTED, StepStatus.SKIPPED) for s in dep_statuses):
            return DependencyGate.BLOCKED
        if all(s is StepStatus.COMPLETED for s in dep_statuses):
            return DependencyGate.READY
        return DependencyGate.WAITING

    def pending_dependencies(
        self, step_key: str, statuses: Mapping[str, StepStatus]
    ) -> list[str]:
        """Return dependency ids of step_key that are not yet terminal."""
        return [
            d
            for d in self.step(step_key).dependencies
            if statuses.get(d) is None or not statuses[d].is_terminal
        ]

    @classmethod
    def from_definition(
        cls,
        template_id: str,
        definition: dict[str, Any],
        version: int = 1,
        version_id: str | None = None,
    ) -> "WorkflowTemplateEntity":
        """Build an entity from a validated template definition payload."""
        return cls(
            id=template_id,
            name=definition["name"],
            department=definition["department"],
            description=definition.get("description"),
            file_types=tuple(definition.get("fileTypes") or ()),
            steps=tuple(StepDefinition.from_dict(s) for s in definition["steps"]),
            sla=SlaPolicy.from_dict(definition.get("sla")),
            active=definition.get("active", True),
            version=version,
            version_id=version_id,
        )

    def to_definition(self) -> dict[str, Any]:
        """Return the canonical definition payload stored on a template version."""
        data: dict[str, Any] = {
            "name": self.name,
            "department": self.department,
            "fileTypes": list(self.file_types),
            "steps": [s.to_dict() for s in self.steps],
            "sla": self.sla.to_dict(),
            "active": self.active,
        }
        if self.description is not None:
            data["description"] = self.description
        return data
