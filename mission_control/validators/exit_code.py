"""
mission_control.validators.exit_code - EXIT_CODE Strategy

Passes when the process exit code equals the expected code. The code comes
from the explicit value, or is read from output text such as
"exit code: 1", "returned: 0", "status: 2" or a bare integer.
"""

import re
from typing import Optional

from ..models import ExitCodeCriteria, Scalar, ValidationResult, ValidationStrategy, is_number
from .base import BaseValidator

_EXIT_CODE_PATTERNS = [
    re.compile(r"exit\s*code[:\s]+(-?\d+)", re.IGNORECASE),
    re.compile(r"returned[:\s]+(-?\d+)", re.IGNORECASE),
    re.compile(r"status[:\s]+(-?\d+)", re.IGNORECASE),
]
_BARE_INTEGER = re.compile(r"-?\d+")


def extract_exit_code(text: str) -> Optional[int]:
    """Find an exit code in text using the known patterns, in priority order."""
    for pattern in _EXIT_CODE_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))

    if _BARE_INTEGER.fullmatch(text):
        return int(text)

    return None


class ExitCodeValidator(BaseValidator[ExitCodeCriteria]):
    """Handler for ExitCodeCriteria."""

    strategy = ValidationStrategy.EXIT_CODE

    def validate(self, output: str, value: Optional[Scalar] = None) -> ValidationResult:
        expected = self.criteria.expected_code
        actual = value if is_number(value) else extract_exit_code(output)

        if actual is None:
            return self._create_result(
                False,
                "Failed to extract exit code from output",
                None,
                expected,
            )

        passed = actual == expected
        if passed:
            message = f"Command succeeded with exit code {actual}"
        else:
            message = f"Command failed with exit code {actual} (expected {expected})"

        return self._create_result(passed, message, actual, expected)

    def generate_feedback(self, result: ValidationResult) -> str:
        if result.passed:
            return f"Command executed successfully (exit code = {result.actual_value})."

        command = self.criteria.command or "command"
        return (
            f"Execution failed (exit code = {result.actual_value}, expected {result.expected_value}). "
            f"The {command} returned an error. Please review error logs and fix the underlying issues."
        )
