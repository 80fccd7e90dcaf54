"""Tests for TemplateValidator (JSON schema plus cross-field rules)."""

import pytest

from app.application.services.template_validator import TemplateValidator, render_path
from app.domain.exceptions import ValidationException
from tests.support import step, template_payload

validator = TemplateValidator()


def _fields(errors: list[dict[str, str]]) -> list[str]:
    return [e["field"] for e in errors]


def test_po_approval_template_is_valid() -> None:
    """A single approval step with role assignment and a fixed deadline has no errors."""
    payload = {
        "name": "PO Approval",
        "department": "Finance",
        "steps": [
            {
                "id": "s1",
                "name": "Manager Review",
                "type": "approval",
                "assignTo": {"type": "role", "value": "manager"},
                "deadline": {"type": "fixed", "value": 48},
            }
        ],
    }
    assert validator.validate_template(payload) == []


def test_fixed_deadline_without_value_reports_one_error() -> None:
    payload = template_payload(step("s1", deadline={"type": "fixed"}))
    assert validator.validate_template(payload) == [
        {"field": "steps[0].deadline.value", "message": "is required"}
    ]


def test_dynamic_deadline_ignores_value_and_requires_formula() -> None:
    payload = template_payload(step("s1", deadline={"type": "dynamic", "value": 3}))
    assert validator.validate_template(payload) == [
        {"field": "steps[0].deadline.formula", "message": "is required"}
    ]


def test_fixed_deadline_ignores_formula() -> None:
    payload = template_payload(
        step("s1", deadline={"type": "fixed", "value": 4, "formula": "not a formula +"})
    )
    assert validator.validate_template(payload) == []


def test_negative_fixed_deadline() -> None:
    payload = template_payload(step("s1", deadline={"type": "fixed", "value": -1}))
    assert validator.validate_template(payload) == [
        {"field": "steps[0].deadline.value", "message": "must be greater than or equal to 0"}
    ]


def test_missing_top_level_fields_are_all_reported() -> None:
    errors = validator.validate_template({"description": "no name"})
    assert _fields(errors) == ["department", "name", "steps"]
    assert all(e["message"] == "is required" for e in errors)


def test_empty_steps() -> None:
    errors = validator.validate_template(template_payload(steps=[]))
    assert errors == [{"field": "steps", "message": "must contain at least 1 item(s)"}]


def test_non_object_payload() -> None:
    assert validator.validate_template(["not", "a", "template"]) == [
        {"field": "", "message": "must be an object"}
    ]


def test_unknown_properties_are_not_allowed() -> None:
    payload = template_payload(step("s1", colour="red"), owner="me")
    errors = validator.validate_template(payload)
    assert {"field": "owner", "message": "is not allowed"} in errors
    assert {"field": "steps[0].colour", "message": "is not allowed"} in errors


def test_unknown_step_type() -> None:
    errors = validator.validate_template(template_payload(step("s1", type="vote")))
    assert _fields(errors) == ["steps[0].type"]
    assert errors[0]["message"].startswith("must be one of: approval, review")


def test_assignment_value_shape() -> None:
    errors = validator.validate_template(
        template_payload(step("s1", assignTo={"type": "user", "value": []}))
    )
    assert errors == [
        {
            "field": "steps[0].assignTo.value",
            "message": "must be a non-empty string or a non-empty list of strings",
        }
    ]


def test_errors_from_several_steps_are_collected() -> None:
    payload = template_payload(
        step("s1", deadline={"type": "fixed"}),
        step("s2", assignTo={"type": "team", "value": "x"}),
        step("s3", requiredApprovals=0),
    )
    assert _fields(validator.validate_template(payload)) == [
        "steps[0].deadline.value",
        "steps[1].assignTo.type",
        "steps[2].requiredApprovals",
    ]


def test_duplicate_step_ids() -> None:
    errors = validator.validate_template(template_payload(step("s1"), step("s1")))
    assert errors == [{"field": "steps[1].id", "message": 'duplicate step id "s1"'}]


def test_unknown_dependency() -> None:
    errors = validator.validate_template(
        template_payload(step("s1"), step("s2", dependencies=["s9"]))
    )
    assert errors == [
        {"field": "steps[1].dependencies[0]", "message": 'references unknown step "s9"'}
    ]


def test_self_dependency() -> None:
    errors = validator.validate_template(template_payload(step("s1", dependencies=["s1"])))
    assert errors == [
        {"field": "steps[0].dependencies[0]", "message": "step cannot depend on itself"}
    ]


def test_dependency_cycle() -> None:
    payload = template_payload(
        step("a", dependencies=["b"]),
        step("b", dependencies=["a"]),
        step("c", dependencies=["a"]),
    )
    assert validator.validate_template(payload) == [
        {"field": "steps[0].dependencies", "message": "dependency cycle: a -> b -> a"}
    ]


def test_condition_step_requires_conditions() -> None:
    errors = validator.validate_template(template_payload(step("s1", type="condition")))
    assert errors == [
        {"field": "steps[0].conditions", "message": "condition steps require at least one condition"}
    ]


def test_parallel_approval_requires_required_approvals() -> None:
    errors = validator.validate_template(template_payload(step("s1", parallel=True)))
    assert errors == [
        {"field": "steps[0].requiredApprovals", "message": "is required when parallel is true"}
    ]


def test_required_approvals_cannot_exceed_assigned_users() -> None:
    payload = template_payload(
        step(
            "s1",
            assignTo={"type": "user", "value": ["alice", "bob"]},
            parallel=True,
            requiredApprovals=3,
        )
    )
    assert validator.validate_template(payload) == [
        {
            "field": "steps[0].requiredApprovals",
            "message": "cannot exceed the number of assigned users",
        }
    ]


def test_integral_float_required_approvals_is_stored_as_int() -> None:
    users = {"type": "user", "value": ["alice", "bob"]}
    definition = validator.normalize_template(
        template_payload(step("s1", assignTo=users, parallel=True, requiredApprovals=2.0))
    )
    required = definition["steps"][0]["requiredApprovals"]
    assert required == 2
    assert type(required) is int

    too_many = template_payload(step("s1", assignTo=users, parallel=True, requiredApprovals=3.0))
    assert _fields(validator.validate_template(too_many)) == ["steps[0].requiredApprovals"]
    fractional = template_payload(step("s1", assignTo=users, parallel=True, requiredApprovals=1.5))
    assert _fields(validator.validate_template(fractional)) == ["steps[0].requiredApprovals"]


def test_formula_syntax_is_checked() -> None:
    payload = template_payload(step("s1", deadline={"type": "dynamic", "formula": "amount +"}))
    errors = validator.validate_template(payload)
    assert _fields(errors) == ["steps[0].deadline.formula"]
    assert errors[0]["message"].startswith("Invalid formula syntax")


def test_formula_rejects_function_calls() -> None:
    payload = template_payload(
        step("s1", deadline={"type": "dynamic", "formula": "__import__('os').getpid()"})
    )
    assert _fields(validator.validate_template(payload)) == ["steps[0].deadline.formula"]


def test_normalize_template_fills_defaults() -> None:
    definition = validator.normalize_template(template_payload())
    assert definition["fileTypes"] == []
    assert definition["active"] is True
    assert definition["sla"] == {
        "warningThreshold": 2,
        "autoReassign": False,
        "backupAssignees": {},
    }
    assert definition["steps"][0]["dependencies"] == []
    assert definition["steps"][0]["parallel"] is False
    assert definition["steps"][0]["deadline"] == {"type": "fixed", "value": 48}


def test_normalize_template_raises_with_every_error() -> None:
    with pytest.raises(ValidationException) as exc_info:
        validator.normalize_template(template_payload(step("s1"), step("s1"), name=""))
    assert _fields(exc_info.value.errors) == ["name", "steps[1].id"]
    assert exc_info.value.to_dict() == {"errors": exc_info.value.errors}


class TestActionValidation:
    """Tests for workflow action payloads."""

    @pytest.mark.parametrize("action", ["approve", "reject", "review", "sign", "complete"])
    def test_known_actions(self, action: str) -> None:
        assert validator.validate_action({"action": action}) == []

    def test_remarks_and_form_data(self) -> None:
        payload = {"action": "approve", "remarks": "ok", "formData": {"po": "123"}}
        assert validator.check_action(payload) is payload

    def test_missing_action(self) -> None:
        assert validator.validate_action({"remarks": "hi"}) == [
            {"field": "action", "message": "is required"}
        ]

    def test_unknown_action_and_extra_key(self) -> None:
        errors = validator.validate_action({"action": "maybe", "extra": 1})
        assert _fields(errors) == ["action", "extra"]

    def test_check_action_raises(self) -> None:
        with pytest.raises(ValidationException) as exc_info:
            validator.check_action({"action": "approve", "formData": "x"})
        assert exc_info.value.errors == [{"field": "formData", "message": "must be an object"}]


def test_render_path() -> None:
    assert render_path(["steps", 0, "deadline", "value"]) == "steps[0].deadline.value"
    assert render_path([]) == ""
