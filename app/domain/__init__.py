"""Domain layer: entities, value objects, enums, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from app.domain.entities import (
    DocumentApprovalEntity,
    StepDefinition,
    StepStateEntity,
    WorkflowRunEntity,
    WorkflowTemplateEntity,
)
from app.domain.enums import ApprovalStatus, RunStatus, StepStatus, StepType
from app.domain.exceptions import (
    AuthorizationException,
    DependencyUnsatisfiedException,
    DocflowException,
    DuplicateAssignmentException,
    EscalationConfigException,
    ResourceNotFoundException,
    StateConflictException,
    TemplateInUseException,
    ValidationException,
)
from app.domain.value_objects import (
    AssignmentRule,
    DynamicDeadline,
    FixedDeadline,
    SlaPolicy,
)

__all__ = [
    # Entities
    "DocumentApprovalEntity",
    "StepDefinition",
    "StepStateEntity",
    "WorkflowRunEntity",
    "WorkflowTemplateEntity",
    # Enums
    "ApprovalStatus",
    "RunStatus",
    "StepStatus",
    "StepType",
    # Exceptions
    "AuthorizationException",
    "DependencyUnsatisfiedException",
    "DocflowException",
    "DuplicateAssignmentException",
    "EscalationConfigException",
    "ResourceNotFoundException",
    "StateConflictException",
    "TemplateInUseException",
    "ValidationException",
    # Value objects
    "AssignmentRule",
    "DynamicDeadline",
    "FixedDeadline",
    "SlaPolicy",
]
