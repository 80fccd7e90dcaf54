"""Tests for deadline formulas and step conditions over document metadata."""

import pytest

from app.application.services.expressions import (
    FormulaError,
    check_formula,
    conditions_hold,
    evaluate_condition,
    evaluate_formula,
)
from app.domain.value_objects.core import StepCondition

METADATA = {
    "amount": 1200,
    "priority": "high",
    "pages": "12",
    "tags": ["urgent", "capex"],
    "vendor": {"country": "UG"},
}


class TestEvaluateFormula:
    """Tests for evaluate_formula."""

    def test_arithmetic_over_fields(self) -> None:
        assert evaluate_formula("amount / 100", METADATA) == 12.0
        assert evaluate_formula("(amount / 100 + 4) * 2", METADATA) == 32.0

    def test_numeric_strings_are_converted(self) -> None:
        assert evaluate_formula("pages * 2", METADATA) == 24.0

    def test_constant_only(self) -> None:
        assert evaluate_formula("48", {}) == 48.0

    def test_unknown_field(self) -> None:
        with pytest.raises(FormulaError, match="not found"):
            evaluate_formula("missing * 2", METADATA)

    def test_non_numeric_field(self) -> None:
        with pytest.raises(FormulaError, match="not numeric"):
            evaluate_formula("priority + 1", METADATA)

    def test_division_by_zero(self) -> None:
        with pytest.raises(FormulaError, match="Division by zero"):
            evaluate_formula("amount / 0", METADATA)

    def test_negative_result(self) -> None:
        with pytest.raises(FormulaError, match="negative"):
            evaluate_formula("24 - amount", METADATA)

    def test_huge_exponent(self) -> None:
        with pytest.raises(FormulaError, match="Exponent too large"):
            evaluate_formula("2 ** 1000", {})

    def test_string_constant_rejected(self) -> None:
        with pytest.raises(FormulaError):
            evaluate_formula("'48'", {})


class TestCheckFormula:
    """Tests for check_formula (shape only, no evaluation)."""

    def test_accepts_arithmetic(self) -> None:
        check_formula("amount / 100 + -base % 7 ** 2")

    @pytest.mark.parametrize(
        "formula",
        ["amount +", "open('x')", "amount.real", "[1, 2]", "amount if amount else 1", "a < b"],
    )
    def test_rejects_non_arithmetic(self, formula: str) -> None:
        with pytest.raises(FormulaError):
            check_formula(formula)


def _condition(field: str, operator: str, value: object = None) -> StepCondition:
    return StepCondition.from_dict({"field": field, "operator": operator, "value": value})


class TestEvaluateCondition:
    """Tests for evaluate_condition."""

    @pytest.mark.parametrize(
        ("field", "operator", "value", "expected"),
        [
            ("amount", "eq", 1200, True),
            ("amount", "ne", 1200, False),
            ("amount", "gt", 1000, True),
            ("amount", "gte", 1200, True),
            ("amount", "lt", 1000, False),
            ("amount", "lte", 1200, True),
            ("priority", "in", ["high", "critical"], True),
            ("priority", "not_in", ["high"], False),
            ("tags", "contains", "capex", True),
            ("priority", "contains", "ig", True),
            ("vendor.country", "eq", "UG", True),
            ("amount", "exists", True, True),
            ("missing", "exists", False, True),
        ],
    )
    def test_operators(self, field: str, operator: str, value: object, expected: bool) -> None:
        assert evaluate_condition(_condition(field, operator, value), METADATA) is expected

    def test_missing_field_only_satisfies_negations(self) -> None:
        assert evaluate_condition(_condition("missing", "ne", 1), METADATA) is True
        assert evaluate_condition(_condition("missing", "not_in", [1]), METADATA) is True
        assert evaluate_condition(_condition("missing", "eq", None), METADATA) is False
        assert evaluate_condition(_condition("missing", "exists"), METADATA) is False

    def test_incompatible_types_are_false(self) -> None:
        assert evaluate_condition(_condition("priority", "gt", 5), METADATA) is False

    def test_conditions_hold_requires_all(self) -> None:
        conditions = (_condition("amount", "gt", 1000), _condition("priority", "eq", "low"))
        assert conditions_hold(conditions, METADATA) is False
        assert conditions_hold(conditions[:1], METADATA) is True
        assert conditions_hold((), METADATA) is True
