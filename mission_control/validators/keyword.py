"""
mission_control.validators.keyword - KEYWORD Strategy

Substring test on the output. must_contain=True passes when the keyword is
present, must_contain=False passes when it is absent. Matching is
case-sensitive unless case_sensitive=False.
"""

from typing import Optional

from ..models import KeywordCriteria, Scalar, ValidationResult, ValidationStrategy
from .base import BaseValidator


class KeywordValidator(BaseValidator[KeywordCriteria]):
    """Handler for KeywordCriteria. The explicit value is not used."""

    strategy = ValidationStrategy.KEYWORD

    def validate(self, output: str, value: Optional[Scalar] = None) -> ValidationResult:
        keyword = self.criteria.keyword
        if self.criteria.case_sensitive:
            contains = keyword in output
        else:
            contains = keyword.lower() in output.lower()

        must_contain = self.criteria.must_contain
        passed = contains if must_contain else not contains

        if passed:
            if must_contain:
                message = f'Output contains required keyword: "{keyword}"'
            else:
                message = f'Output correctly excludes keyword: "{keyword}"'
        else:
            if must_contain:
                message = f'Output missing required keyword: "{keyword}"'
            else:
                message = f'Output unexpectedly contains keyword: "{keyword}"'

        return self._create_result(
            passed,
            message,
            "found" if contains else "not found",
            keyword,
        )

    def generate_feedback(self, result: ValidationResult) -> str:
        if result.passed:
            return "Keyword validation succeeded."

        keyword = self.criteria.keyword
        if self.criteria.must_contain:
            return (
                f'Output does not contain the required keyword "{keyword}". '
                f"Please verify the process completed successfully and check execution logs."
            )
        return (
            f'Output contains the forbidden keyword "{keyword}". '
            f"This indicates an error or unexpected behavior. Please review the output."
        )
