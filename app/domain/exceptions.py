"""Domain exceptions for the docflow application.

Defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns. Presentation
layer maps them to HTTP responses in exception handlers.
"""

from typing import Any


class DocflowException(Exception):
    """Base exception for all docflow application errors.

    All custom exceptions should inherit from this class to allow
    consistent error handling and logging. Presentation layer maps
    these to HTTP responses using message, error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, resource_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON body used by the HTTP exception handler."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(DocflowException):
    """Raised when a payload fails validation.

    Carries every violation found as a list of {field, message} pairs so a
    caller can render all problems at once.
    """

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[dict[str, str]] | None = None,
    ) -> None:
        """Initialize with message and either a single field or an error list.

        Args:
            message: Description of the validation failure.
            field: Optional field that failed validation (single-error form).
            errors: Optional list of {"field", "message"} dicts.
        """
        if errors is None:
            errors = [{"field": field, "message": message}] if field else []
        self.errors = errors
        details: dict[str, Any] = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)

    def to_dict(self) -> dict[str, Any]:
        return {"errors": self.errors}


class StateConflictException(DocflowException):
    """Raised when a transition is attempted on a record that is no longer PENDING."""

    def __init__(self, approval_id: str, current_status: str, attempted: str) -> None:
        """Initialize with the approval, its current status, and the attempted transition.

        Args:
            approval_id: DocumentApproval id.
            current_status: Status found on the record.
            attempted: Transition name (e.g. 'approve').
        """
        super().__init__(
            f"Cannot {attempted} approval {approval_id}: status is {current_status}",
            "STATE_CONFLICT",
            {
                "approval_id": approval_id,
                "current_status": current_status,
                "attempted": attempted,
            },
        )


class DependencyUnsatisfiedException(DocflowException):
    """Raised when a step is instantiated or acted on before its dependencies are terminal."""

    def __init__(self, step_key: str, pending_dependencies: list[str]) -> None:
        """Initialize with the step and the dependencies that are not yet terminal.

        Args:
            step_key: Template step id.
            pending_dependencies: Dependency step ids that are not yet complete.
        """
        super().__init__(
            f"Step {step_key} has unsatisfied dependencies: {', '.join(pending_dependencies)}",
            "DEPENDENCY_UNSATISFIED",
            {"step_id": step_key, "pending_dependencies": pending_dependencies},
        )


class EscalationConfigException(DocflowException):
    """Raised when auto-reassignment is requested but no backup assignee resolves."""

    def __init__(self, approval_id: str, lookup_keys: list[str]) -> None:
        """Initialize with the approval and the backup keys that were tried.

        Args:
            approval_id: DocumentApproval id.
            lookup_keys: Role/department keys looked up in backupAssignees.
        """
        super().__init__(
            f"No backup assignee configured for approval {approval_id}",
            "ESCALATION_CONFIG_ERROR",
            {"approval_id": approval_id, "lookup_keys": lookup_keys},
        )


class AuthorizationException(DocflowException):
    """Raised when the acting user may not act on the resource."""

    def __init__(
        self,
        resource: str | None = None,
        action: str | None = None,
        message: str = "Permission denied",
    ) -> None:
        """Initialize with optional resource, action, and message.

        Args:
            resource: Optional resource type (e.g. 'document_approval').
            action: Optional action that was attempted (e.g. 'approve').
            message: Human-readable message; default used when resource/action omitted.
        """
        if resource and action:
            message = f"Permission denied: {action} on {resource}"
        details: dict[str, Any] = {}
        if resource:
            details["resource"] = resource
        if action:
            details["action"] = action
        super().__init__(message, "PERMISSION_DENIED", details)


class ResourceNotFoundException(DocflowException):
    """Raised when a requested resource is not found."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        """Initialize with resource type and id.

        Args:
            resource_type: Type of resource (e.g. 'workflow_template').
            resource_id: The ID that was not found.
        """
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class TemplateInUseException(DocflowException):
    """Raised when deleting a template that workflow runs still reference."""

    def __init__(self, template_id: str, run_count: int) -> None:
        super().__init__(
            f"Workflow template {template_id} is referenced by {run_count} run(s)",
            "TEMPLATE_IN_USE",
            {"template_id": template_id, "run_count": run_count},
        )


class DuplicateAssignmentException(DocflowException):
    """Raised when an approval already exists for (document, step, approver)."""

    def __init__(self, document_id: str, step_id: str, approver_id: str) -> None:
        super().__init__(
            "Approval already assigned for this document, step and approver",
            "DUPLICATE_ASSIGNMENT",
            {
                "document_id": document_id,
                "workflow_step_id": step_id,
                "approver_id": approver_id,
            },
        )


class SqlNotConfiguredException(DocflowException):
    """Raised when an operation requires Postgres but DATABASE_URL is not configured."""

    def __init__(self) -> None:
        super().__init__(
            message="This operation requires a SQL database that is not configured.",
            error_code="SERVICE_UNAVAILABLE",
        )


class RunAlreadyActiveException(DocflowException):
    """Raised when starting a workflow on a document that already has an ACTIVE run."""

    def __init__(self, document_id: str, run_id: str) -> None:
        super().__init__(
            f"Document {document_id} already has an active workflow run",
            "RUN_ALREADY_ACTIVE",
            {"document_id": document_id, "run_id": run_id},
        )
