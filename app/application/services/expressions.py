"""Safe evaluation of deadline formulas and step conditions over document metadata.

Formulas are arithmetic expressions (numbers, metadata field names, + - * / %
** and parentheses) parsed with ast and walked node by node; nothing is
passed to eval(). Conditions compare one metadata field with a literal.
"""

from __future__ import annotations

import ast
import operator as ops
from collections.abc import Callable, Mapping
from typing import Any

from app.domain.enums import ConditionOperator
from app.domain.value_objects.core import StepCondition
from app.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

_BINARY_OPERATORS: dict[type[ast.operator], Callable[[Any, Any], Any]] = {
    ast.Add: ops.add,
    ast.Sub: ops.sub,
    ast.Mult: ops.mul,
    ast.Div: ops.truediv,
    ast.Mod: ops.mod,
    ast.Pow: ops.pow,
}
_UNARY_OPERATORS: dict[type[ast.unaryop], Callable[[Any], Any]] = {
    ast.UAdd: ops.pos,
    ast.USub: ops.neg,
}

# Guard against huge exponents blowing up evaluation time.
_MAX_EXPONENT = 100


class FormulaError(ValueError):
    """Raised when a formula cannot be parsed or evaluated."""


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise FormulaError(f"Field '{name}' is not numeric") from e
    return value


def _walk(node: ast.AST, variables: Mapping[str, Any] | None) -> float:
    """Evaluate one node. With variables=None only the shape is checked."""
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise FormulaError("Only numeric constants are allowed")
        return node.value
    if isinstance(node, ast.Name):
        if variables is None:
            return 1
        if node.id not in variables:
            raise FormulaError(f"Field '{node.id}' not found in document metadata")
        return _number(variables[node.id], node.id)
    if isinstance(node, ast.BinOp):
        op = _BINARY_OPERATORS.get(type(node.op))
        if op is None:
            raise FormulaError(f"Unsupported operator: {type(node.op).__name__}")
        left = _walk(node.left, variables)
        right = _walk(node.right, variables)
        if variables is None:
            return 1
        if isinstance(node.op, ast.Pow) and abs(right) > _MAX_EXPONENT:
            raise FormulaError("Exponent too large")
        try:
            return op(left, right)
        except ZeroDivisionError as e:
            raise FormulaError("Division by zero") from e
    if isinstance(node, ast.UnaryOp):
        op = _UNARY_OPERATORS.get(type(node.op))
        if op is None:
            raise FormulaError(f"Unsupported operator: {type(node.op).__name__}")
        return op(_walk(node.operand, variables))
    raise FormulaError(f"Unsupported expression: {type(node).__name__}")


def _parse(formula: str) -> ast.Expression:
    try:
        return ast.parse(formula, mode="eval")
    except SyntaxError as e:
        raise FormulaError(f"Invalid formula syntax: {e.msg}") from e


def check_formula(formula: str) -> None:
    """Check that a formula only uses allowed syntax, without evaluating it.

    Raises:
        FormulaError: If the formula is not a supported arithmetic expression.
    """
    _walk(_parse(formula).body, None)


def evaluate_formula(formula: str, variables: Mapping[str, Any]) -> float:
    """Evaluate an arithmetic formula over metadata fields.

    Returns:
        The numeric result.

    Raises:
        FormulaError: On bad syntax, unknown or non-numeric fields, or division by zero.
    """
    result = _walk(_parse(formula).body, variables)
    if result < 0:
        raise FormulaError("Formula evaluated to a negative duration")
    return float(result)


def _lookup(data: Mapping[str, Any], path: str) -> tuple[bool, Any]:
    """Resolve a dotted path. Returns (found, value)."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return False, None
        current = current[part]
    return True, current


_COMPARISONS: dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: ops.eq,
    ConditionOperator.NOT_EQUALS: ops.ne,
    ConditionOperator.GREATER_THAN: ops.gt,
    ConditionOperator.GREATER_EQUAL: ops.ge,
    ConditionOperator.LESS_THAN: ops.lt,
    ConditionOperator.LESS_EQUAL: ops.le,
    ConditionOperator.IN: lambda actual, expected: actual in (expected or ()),
    ConditionOperator.NOT_IN: lambda actual, expected: actual not in (expected or ()),
    ConditionOperator.CONTAINS: lambda actual, expected: expected in actual,
}


def evaluate_condition(condition: StepCondition, data: Mapping[str, Any]) -> bool:
    """Return whether a single condition holds for the given metadata.

    A missing field satisfies only ne, not_in and exists(false). Comparisons
    between incompatible types evaluate to False.
    """
    found, actual = _lookup(data, condition.field)
    expected = condition.value
    operator = condition.operator

    if operator is ConditionOperator.EXISTS:
        return found == (True if expected is None else bool(expected))
    if not found:
        return operator in (ConditionOperator.NOT_EQUALS, ConditionOperator.NOT_IN)
    try:
        return bool(_COMPARISONS[operator](actual, expected))
    except TypeError:
        logger.debug(
            "Condition on %s (%s) compared incompatible types", condition.field, operator.value
        )
        return False


def conditions_hold(conditions: tuple[StepCondition, ...], data: Mapping[str, Any]) -> bool:
    """Return whether every condition holds (an empty tuple always holds)."""
    return all(evaluate_condition(c, data) for c in conditions)
