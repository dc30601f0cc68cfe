"""
mission_control.validators.numeric - NUMERIC Strategy

Compares a number against a threshold. The number is the explicit value when
one is given, otherwise the first signed decimal found in the output.
"""

import re
from typing import Optional

from ..errors import ValidationError
from ..models import NumericCriteria, NumericOperator, Scalar, ValidationResult, ValidationStrategy, is_number
from .base import BaseValidator

# Tolerance for == and != so float noise does not flip the outcome
EPSILON = 1e-4

_NUMBER_PATTERN = re.compile(r"-?\d+\.?\d*")

_NEGATIONS = {
    NumericOperator.GREATER_THAN: "<=",
    NumericOperator.LESS_THAN: ">=",
    NumericOperator.GREATER_EQUAL: "<",
    NumericOperator.LESS_EQUAL: ">",
    NumericOperator.EQUAL: "!=",
    NumericOperator.NOT_EQUAL: "==",
}


def extract_number(text: str) -> Optional[float]:
    """Return the leftmost signed decimal in text, or None."""
    match = _NUMBER_PATTERN.search(text)
    return float(match.group(0)) if match else None


def compare(actual: float, operator: NumericOperator, threshold: float) -> bool:
    """Apply operator to (actual, threshold)."""
    if operator is NumericOperator.GREATER_THAN:
        return actual > threshold
    if operator is NumericOperator.LESS_THAN:
        return actual < threshold
    if operator is NumericOperator.GREATER_EQUAL:
        return actual >= threshold
    if operator is NumericOperator.LESS_EQUAL:
        return actual <= threshold
    if operator is NumericOperator.EQUAL:
        return abs(actual - threshold) < EPSILON
    if operator is NumericOperator.NOT_EQUAL:
        return abs(actual - threshold) >= EPSILON
    raise ValidationError(f"Unknown operator: {operator}")


class NumericValidator(BaseValidator[NumericCriteria]):
    """Handler for NumericCriteria."""

    strategy = ValidationStrategy.NUMERIC

    def validate(self, output: str, value: Optional[Scalar] = None) -> ValidationResult:
        actual = value if is_number(value) else extract_number(output)

        if actual is None:
            return self._create_result(
                False,
                "Failed to extract numeric value from output",
                None,
                self.criteria.threshold,
            )

        operator = self.criteria.operator
        threshold = self.criteria.threshold
        passed = compare(actual, operator, threshold)

        if passed:
            message = f"Validation passed: {actual} {operator.value} {threshold}"
        else:
            message = f"Validation failed: {actual} {_NEGATIONS[operator]} {threshold}"

        return self._create_result(passed, message, actual, threshold)

    def generate_feedback(self, result: ValidationResult) -> str:
        metric = self.criteria.metric_name or "Value"

        if result.passed:
            return f"Goal achieved! {metric}: {result.actual_value}"

        target = f"Target: {metric} {self.criteria.operator.value} {self.criteria.threshold}."
        if not is_number(result.actual_value):
            return (
                f"{target} Current: unknown. "
                f"No number could be read from the output; report the metric explicitly."
            )

        gap = abs(result.actual_value - self.criteria.threshold)
        return (
            f"{target} Current: {result.actual_value}. Gap: {gap:.2f}. "
            f"Suggestion: Review parameters affecting this metric."
        )
