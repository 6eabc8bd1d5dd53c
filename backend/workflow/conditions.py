"""Condition step evaluation.

A condition step carries an ordered list of tests:

    {"conditions": [
        {"field_name": "creator_status", "operator": "equals",
         "expected_value": "Interested", "next_step_id": "<later step id>"},
        {"field_name": "step-3.tokens_used", "operator": "greater_than",
         "expected_value": 500, "next_step_id": "<later step id>"}
    ]}

Field names resolve against variables first, then step outputs
(``<step id>.<key>`` or ``steps.<step id>.<key>``). The first test that
matches decides the branch; no match means "continue with the next step".
"""

from dataclasses import dataclass
from typing import Any, Optional

from core.constants import ConditionOperator
from core.exceptions import MalformedConditionError
from workflow.context import ExecutionContext

_MISSING = object()


@dataclass
class ConditionMatch:
    """The first condition that evaluated true."""

    index: int
    field_name: str
    operator: str
    actual_value: Any
    next_step_id: Optional[str]


def _walk(value: Any, parts: list[str]) -> Any:
    for part in parts:
        if isinstance(value, dict) and part in value:
            value = value[part]
        elif isinstance(value, list) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            return _MISSING
    return value


def resolve_field(field_name: str, context: ExecutionContext) -> Any:
    """Resolve a condition field against the context. Missing -> None."""
    if field_name in context.variables:
        return context.variables[field_name]

    parts = field_name.split(".")
    if parts[0] == "steps" and len(parts) > 1:
        parts = parts[1:]
    if parts[0] in context.step_outputs:
        value = _walk(context.step_outputs[parts[0]], parts[1:])
        if value is not _MISSING:
            return value

    value = _walk(context.variables, field_name.split("."))
    return None if value is _MISSING else value


def _to_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise MalformedConditionError(f"Field '{field_name}' is not numeric: {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise MalformedConditionError(
            f"Field '{field_name}' cannot be compared numerically: {value!r}"
        )


def _compare(operator: ConditionOperator, actual: Any, expected: Any, field_name: str) -> bool:
    """Numeric test; an unresolved field is a non-match, not an error."""
    threshold = _to_number(expected, "expected_value")
    if actual is None:
        return False
    value = _to_number(actual, field_name)
    if operator == ConditionOperator.GREATER_THAN:
        return value > threshold
    return value < threshold


def _equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    if actual is None or expected is None:
        return False
    return str(actual) == str(expected)


def _contains(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    if isinstance(actual, str):
        return str(expected) in actual
    if isinstance(actual, (list, tuple, set, dict)):
        return expected in actual
    return str(expected) in str(actual)


def _exists(actual: Any) -> bool:
    return actual is not None and actual != ""


class ConditionEvaluator:
    """Evaluates a condition step's test list against an execution context."""

    def validate(self, conditions: Any) -> list[dict]:
        """Check the shape of a condition list; raise MalformedConditionError."""
        if not isinstance(conditions, list) or not conditions:
            raise MalformedConditionError("Condition step requires a non-empty 'conditions' list")
        for index, condition in enumerate(conditions):
            if not isinstance(condition, dict):
                raise MalformedConditionError(f"Condition #{index} must be an object")
            if not condition.get("field_name"):
                raise MalformedConditionError(f"Condition #{index} is missing 'field_name'")
            operator = condition.get("operator")
            try:
                ConditionOperator(operator)
            except ValueError:
                raise MalformedConditionError(
                    f"Condition #{index} has unknown operator: {operator!r}"
                )
        return conditions

    def test(self, condition: dict, context: ExecutionContext) -> tuple[bool, Any]:
        """Evaluate a single condition. Returns (matched, actual value)."""
        field_name = condition["field_name"]
        operator = ConditionOperator(condition["operator"])
        expected = condition.get("expected_value")
        actual = resolve_field(field_name, context)

        if operator == ConditionOperator.EQUALS:
            return _equals(actual, expected), actual
        if operator == ConditionOperator.NOT_EQUALS:
            return not _equals(actual, expected), actual
        if operator == ConditionOperator.CONTAINS:
            return _contains(actual, expected), actual
        if operator == ConditionOperator.NOT_CONTAINS:
            return not _contains(actual, expected), actual
        if operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
            return _compare(operator, actual, expected, field_name), actual
        if operator == ConditionOperator.EXISTS:
            return _exists(actual), actual
        return not _exists(actual), actual

    def evaluate(self, conditions: Any, context: ExecutionContext) -> Optional[ConditionMatch]:
        """Return the first matching condition, or None when nothing matches."""
        for index, condition in enumerate(self.validate(conditions)):
            matched, actual = self.test(condition, context)
            if matched:
                return ConditionMatch(
                    index=index,
                    field_name=condition["field_name"],
                    operator=condition["operator"],
                    actual_value=actual,
                    next_step_id=condition.get("next_step_id"),
                )
        return None
