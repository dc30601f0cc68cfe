"""
mission_control.validators.base - Validator Protocol and Base Class

All validators implement the Validator protocol:
    - validate(): Evaluate an attempt's output/value against the criteria
    - generate_feedback(): Turn a ValidationResult into actionable guidance

An explicit value always takes precedence over anything parsed from output.
"""

from typing import Generic, Optional, Protocol, TypeVar, runtime_checkable

from ..models import Scalar, ValidationResult, ValidationStrategy

C = TypeVar("C")


@runtime_checkable
class Validator(Protocol):
    """Protocol every validation strategy handler satisfies."""

    strategy: ValidationStrategy

    def validate(self, output: str, value: Optional[Scalar] = None) -> ValidationResult:
        """
        Validate the output/value against the criteria.

        Args:
            output: Raw output from the verification step
            value: Explicit value; overrides anything parsed from output

        Returns:
            ValidationResult with pass/fail status and message
        """
        ...

    def generate_feedback(self, result: ValidationResult) -> str:
        """
        Generate a feedback message for a validation result.

        Args:
            result: Result previously returned by validate()

        Returns:
            Human-readable guidance
        """
        ...


class BaseValidator(Generic[C]):
    """
    Base class holding the criteria and the result factory.

    Subclasses set `strategy` and implement validate()/generate_feedback().
    """

    strategy: ValidationStrategy

    def __init__(self, criteria: C):
        self.criteria = criteria

    def validate(self, output: str, value: Optional[Scalar] = None) -> ValidationResult:
        raise NotImplementedError

    def generate_feedback(self, result: ValidationResult) -> str:
        raise NotImplementedError

    def _create_result(
        self,
        passed: bool,
        message: str,
        actual_value: Optional[Scalar] = None,
        expected_value: Optional[Scalar] = None,
    ) -> ValidationResult:
        return ValidationResult(
            passed=passed,
            message=message,
            actual_value=actual_value,
            expected_value=expected_value,
        )
