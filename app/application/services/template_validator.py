"""Validates workflow template and workflow action payloads.

Structural rules are a JSON Schema (Draft 2020-12) checked with jsonschema's
iter_errors so every violation is reported, not just the first. Cross-field
rules (unique step ids, dependency references and cycles, condition and
parallel-approval requirements, formula syntax) run in a second pass over
the same payload. Errors are {field, message} pairs with paths rendered as
steps[0].deadline.value.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from jsonschema import Draft202012Validator
from jsonschema.exceptions import ValidationError as SchemaError

from app.application.services.expressions import FormulaError, check_formula
from app.domain.entities.workflow import WorkflowTemplateEntity
from app.domain.enums import (
    AssignmentKind,
    ConditionOperator,
    DeadlineKind,
    ParticipantAction,
    RecipientKind,
    StepType,
)
from app.domain.exceptions import ValidationException

FieldError = dict[str, str]

_NON_EMPTY_STRING: dict[str, Any] = {"type": "string", "minLength": 1}
_STRING_LIST: dict[str, Any] = {"type": "array", "items": _NON_EMPTY_STRING}

# A value is a non-empty string or a non-empty list of non-empty strings.
_VALUE_SHAPE: dict[str, Any] = {
    "anyOf": [
        _NON_EMPTY_STRING,
        {"type": "array", "minItems": 1, "items": _NON_EMPTY_STRING},
    ]
}
_VALUE_SHAPE_MESSAGE = "must be a non-empty string or a non-empty list of strings"


def _rule_schema(kinds: list[str]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {"type": {"enum": kinds}, "value": _VALUE_SHAPE},
        "required": ["type", "value"],
        "additionalProperties": False,
    }


_DEADLINE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "type": {"enum": DeadlineKind.values()},
        "value": {},
        "formula": {},
    },
    "required": ["type"],
    "additionalProperties": False,
    # The variant named by type decides which sibling is required; the other is ignored.
    "allOf": [
        {
            "if": {"properties": {"type": {"const": "fixed"}}, "required": ["type"]},
            "then": {
                "properties": {"value": {"type": "number", "minimum": 0}},
                "required": ["value"],
            },
        },
        {
            "if": {"properties": {"type": {"const": "dynamic"}}, "required": ["type"]},
            "then": {
                "properties": {"formula": _NON_EMPTY_STRING},
                "required": ["formula"],
            },
        },
    ],
}

_STEP_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": _NON_EMPTY_STRING,
        "name": _NON_EMPTY_STRING,
        "type": {"enum": StepType.values()},
        "description": {"type": "string"},
        "assignTo": _rule_schema(AssignmentKind.values()),
        "deadline": _DEADLINE_SCHEMA,
        "dependencies": _STRING_LIST,
        "parallel": {"type": "boolean"},
        "requiredApprovals": {"type": "integer", "minimum": 1},
        "conditions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "field": _NON_EMPTY_STRING,
                    "operator": {"enum": ConditionOperator.values()},
                    "value": {},
                },
                "required": ["field", "operator", "value"],
                "additionalProperties": False,
            },
        },
        "actions": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {"type": _NON_EMPTY_STRING, "config": {"type": "object"}},
                "required": ["type"],
                "additionalProperties": False,
            },
        },
        "formConfig": {"type": "object"},
        "notifications": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "event": _NON_EMPTY_STRING,
                    "template": _NON_EMPTY_STRING,
                    "recipients": _rule_schema(RecipientKind.values()),
                },
                "required": ["event", "template", "recipients"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["id", "name", "type", "assignTo"],
    "additionalProperties": False,
}

WORKFLOW_TEMPLATE_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "name": _NON_EMPTY_STRING,
        "description": {"type": "string"},
        "department": _NON_EMPTY_STRING,
        "fileTypes": _STRING_LIST,
        "steps": {"type": "array", "minItems": 1, "items": _STEP_SCHEMA},
        "sla": {
            "type": "object",
            "properties": {
                "warningThreshold": {"type": "integer", "minimum": 1},
                "autoReassign": {"type": "boolean"},
                "backupAssignees": {
                    "type": "object",
                    "additionalProperties": _STRING_LIST,
                },
            },
            "additionalProperties": False,
        },
        "active": {"type": "boolean"},
    },
    "required": ["name", "department", "steps"],
    "additionalProperties": False,
}

WORKFLOW_ACTION_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "action": {"enum": ParticipantAction.values()},
        "remarks": {"type": "string"},
        "formData": {"type": "object"},
    },
    "required": ["action"],
    "additionalProperties": False,
}

_template_validator = Draft202012Validator(WORKFLOW_TEMPLATE_SCHEMA)
_action_validator = Draft202012Validator(WORKFLOW_ACTION_SCHEMA)

_TYPE_NAMES = {
    "string": "a string",
    "number": "a number",
    "integer": "an integer",
    "boolean": "a boolean",
    "array": "a list",
    "object": "an object",
}


def render_path(parts: Iterable[str | int]) -> str:
    """Render a JSON path as steps[0].deadline.value."""
    rendered = ""
    for part in parts:
        if isinstance(part, int):
            rendered += f"[{part}]"
        else:
            rendered += f".{part}" if rendered else part
    return rendered


def _message_for(error: SchemaError) -> str:
    validator = error.validator
    if validator == "type":
        return f"must be {_TYPE_NAMES.get(str(error.validator_value), error.validator_value)}"
    if validator == "minLength":
        return "must not be empty"
    if validator == "minItems":
        return f"must contain at least {error.validator_value} item(s)"
    if validator == "minimum":
        return f"must be greater than or equal to {error.validator_value}"
    if validator == "enum":
        return "must be one of: " + ", ".join(str(v) for v in error.validator_value)
    if validator == "anyOf":
        return _VALUE_SHAPE_MESSAGE
    return error.message


def _schema_errors(validator: Draft202012Validator, payload: Any) -> list[FieldError]:
    errors: list[FieldError] = []
    seen_required: set[tuple[tuple[Any, ...], tuple[Any, ...]]] = set()
    for error in validator.iter_errors(payload):
        path = list(error.absolute_path)
        if error.validator == "required":
            # jsonschema reports each missing property separately; emit one per name.
            key = (tuple(path), tuple(error.absolute_schema_path))
            if key in seen_required:
                continue
            seen_required.add(key)
            for name in error.validator_value:
                if isinstance(error.instance, dict) and name not in error.instance:
                    errors.append({"field": render_path([*path, name]), "message": "is required"})
        elif error.validator == "additionalProperties" and isinstance(error.instance, dict):
            allowed = error.schema.get("properties", {})
            for name in error.instance:
                if name not in allowed:
                    errors.append({"field": render_path([*path, name]), "message": "is not allowed"})
        else:
            errors.append({"field": render_path(path), "message": _message_for(error)})
    return sorted(errors, key=lambda e: e["field"])


def _find_cycles(graph: dict[str, list[str]]) -> list[list[str]]:
    """Return dependency cycles (each as a closed path a -> ... -> a), one per cycle."""
    cycles: list[list[str]] = []
    state: dict[str, int] = {}
    stack: list[str] = []

    def visit(node: str) -> None:
        state[node] = 1
        stack.append(node)
        for dep in graph.get(node, []):
            if dep not in graph:
                continue
            if state.get(dep) == 1:
                cycles.append([*stack[stack.index(dep):], dep])
            elif dep not in state:
                visit(dep)
        stack.pop()
        state[node] = 2

    for node in graph:
        if node not in state:
            visit(node)
    return cycles


def _semantic_errors(payload: Any) -> list[FieldError]:
    """Cross-field rules that JSON Schema cannot express."""
    if not isinstance(payload, dict) or not isinstance(payload.get("steps"), list):
        return []
    steps: Sequence[Any] = payload["steps"]
    errors: list[FieldError] = []
    index_by_id: dict[str, int] = {}
    graph: dict[str, list[str]] = {}

    for i, step in enumerate(steps):
        if not isinstance(step, dict) or not isinstance(step.get("id"), str):
            continue
        step_id = step["id"]
        if step_id in index_by_id:
            errors.append({"field": f"steps[{i}].id", "message": f'duplicate step id "{step_id}"'})
            continue
        index_by_id[step_id] = i

    for i, step in enumerate(steps):
        if not isinstance(step, dict):
            continue
        step_id = step.get("id")
        deps = step.get("dependencies")
        if isinstance(deps, list):
            for j, dep in enumerate(deps):
                if not isinstance(dep, str):
                    continue
                if dep == step_id:
                    errors.append(
                        {"field": f"steps[{i}].dependencies[{j}]", "message": "step cannot depend on itself"}
                    )
                elif dep not in index_by_id:
                    errors.append(
                        {"field": f"steps[{i}].dependencies[{j}]", "message": f'references unknown step "{dep}"'}
                    )
            if isinstance(step_id, str) and index_by_id.get(step_id) == i:
                graph[step_id] = [d for d in deps if isinstance(d, str) and d != step_id]

        if step.get("type") == StepType.CONDITION.value and not step.get("conditions"):
            errors.append(
                {"field": f"steps[{i}].conditions", "message": "condition steps require at least one condition"}
            )

        if (
            step.get("type") == StepType.APPROVAL.value
            and step.get("parallel") is True
            and "requiredApprovals" not in step
        ):
            errors.append(
                {"field": f"steps[{i}].requiredApprovals", "message": "is required when parallel is true"}
            )

        assign_to = step.get("assignTo")
        required = step.get("requiredApprovals")
        if (
            isinstance(assign_to, dict)
            and assign_to.get("type") == AssignmentKind.USER.value
            and isinstance(assign_to.get("value"), list)
            and isinstance(required, (int, float))
            and not isinstance(required, bool)
            and required > len(assign_to["value"])
        ):
            errors.append(
                {
                    "field": f"steps[{i}].requiredApprovals",
                    "message": "cannot exceed the number of assigned users",
                }
            )

        deadline = step.get("deadline")
        if (
            isinstance(deadline, dict)
            and deadline.get("type") == DeadlineKind.DYNAMIC.value
            and isinstance(deadline.get("formula"), str)
            and deadline["formula"]
        ):
            try:
                check_formula(deadline["formula"])
            except FormulaError as e:
                errors.append({"field": f"steps[{i}].deadline.formula", "message": str(e)})

    for cycle in _find_cycles(graph):
        first = index_by_id[cycle[0]]
        errors.append(
            {"field": f"steps[{first}].dependencies", "message": "dependency cycle: " + " -> ".join(cycle)}
        )
    return errors


class TemplateValidator:
    """Validates template and action payloads; collects every error."""

    def validate_template(self, payload: Any) -> list[FieldError]:
        """Return all field errors for a template payload (empty when valid)."""
        return _schema_errors(_template_validator, payload) + _semantic_errors(payload)

    def validate_action(self, payload: Any) -> list[FieldError]:
        """Return all field errors for a workflow action payload (empty when valid)."""
        return _schema_errors(_action_validator, payload)

    def normalize_template(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Validate and return the canonical definition stored on a template version.

        Raises:
            ValidationException: With every field error when the payload is invalid.
        """
        errors = self.validate_template(payload)
        if errors:
            raise ValidationException("Invalid workflow template", errors=errors)
        return WorkflowTemplateEntity.from_definition("draft", payload).to_definition()

    def check_action(self, payload: dict[str, Any]) -> dict[str, Any]:
        """Validate a workflow action and return it unchanged.

        Raises:
            ValidationException: With every field error when the payload is invalid.
        """
        errors = self.validate_action(payload)
        if errors:
            raise ValidationException("Invalid workflow action", errors=errors)
        return payload
