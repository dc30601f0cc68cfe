"""
Tests for the validation strategy handlers.

These tests validate:
- Numeric extraction, comparison and epsilon handling
- Exit code parsing from common output formats
- Keyword presence/absence with case handling
- Registry dispatch through get_validator()
"""

import pytest


class TestNumericValidator:
    """Tests for NumericValidator."""

    def _validator(self, operator, threshold, metric_name=None):
        from mission_control.models import NumericCriteria
        from mission_control.validators import NumericValidator
        return NumericValidator(NumericCriteria(operator, threshold, metric_name))

    def test_explicit_value_passes(self):
        """Test explicit value is compared against the threshold."""
        from mission_control.models import NumericOperator

        result = self._validator(NumericOperator.GREATER_THAN, 100).validate("", 150)

        assert result.passed is True
        assert result.actual_value == 150
        assert result.expected_value == 100
        assert result.message == "Validation passed: 150 > 100"

    def test_failure_message_uses_negated_operator(self):
        """Test failure message shows the negated comparison."""
        from mission_control.models import NumericOperator

        result = self._validator(NumericOperator.GREATER_THAN, 100).validate("", 50)

        assert result.passed is False
        assert result.message == "Validation failed: 50 <= 100"

    def test_value_takes_precedence_over_output(self):
        """Test explicit value wins over a number in the output."""
        from mission_control.models import NumericOperator

        result = self._validator(NumericOperator.LESS_THAN, 10).validate("score: 99", 5)

        assert result.passed is True
        assert result.actual_value == 5

    def test_extracts_first_number_from_output(self):
        """Test leftmost signed decimal is parsed from output."""
        from mission_control.models import NumericOperator

        result = self._validator(NumericOperator.LESS_THAN, 0).validate(
            "Temperature delta -3.25 after 12 runs"
        )

        assert result.passed is True
        assert result.actual_value == -3.25

    def test_non_numeric_value_falls_back_to_output(self):
        """Test a string value is ignored in favour of the output."""
        from mission_control.models import NumericOperator

        result = self._validator(NumericOperator.GREATER_EQUAL, 7).validate("score 7", "high")

        assert result.passed is True
        assert result.actual_value == 7.0

    def test_bool_value_is_not_a_number(self):
        """Test True is not treated as 1."""
        from mission_control.models import NumericOperator

        result = self._validator(NumericOperator.EQUAL, 1).validate("nothing here", True)

        assert result.passed is False
        assert result.actual_value is None

    def test_extraction_failure(self):
        """Test output without a number fails with a clear message."""
        from mission_control.models import NumericOperator

        result = self._validator(NumericOperator.GREATER_THAN, 100).validate("no digits")

        assert result.passed is False
        assert result.actual_value is None
        assert result.expected_value == 100
        assert result.message == "Failed to extract numeric value from output"

    def test_equal_within_epsilon(self):
        """Test EQUAL passes for values within 1e-4."""
        from mission_control.models import NumericOperator

        validator = self._validator(NumericOperator.EQUAL, 100)

        assert validator.validate("", 100.00001).passed is True
        assert validator.validate("", 101).passed is False

    def test_not_equal_within_epsilon(self):
        """Test NOT_EQUAL treats near-equal values as equal."""
        from mission_control.models import NumericOperator

        validator = self._validator(NumericOperator.NOT_EQUAL, 100)

        assert validator.validate("", 100.00001).passed is False
        assert validator.validate("", 100.5).passed is True

    @pytest.mark.parametrize("operator,actual,expected", [
        (">", 101, True),
        (">", 100, False),
        ("<", 99, True),
        ("<", 100, False),
        (">=", 100, True),
        (">=", 99.9, False),
        ("<=", 100, True),
        ("<=", 100.1, False),
    ])
    def test_ordering_operators(self, operator, actual, expected):
        """Test ordering operators at and around the threshold."""
        from mission_control.models import NumericOperator

        result = self._validator(NumericOperator(operator), 100).validate("", actual)

        assert result.passed is expected

    def test_feedback_reports_gap(self):
        """Test failure feedback includes target, current value and gap."""
        from mission_control.models import NumericOperator

        validator = self._validator(NumericOperator.GREATER_EQUAL, 2.0, metric_name="sharpe_ratio")
        feedback = validator.generate_feedback(validator.validate("", 1.25))

        assert "Target: sharpe_ratio >= 2.0." in feedback
        assert "Current: 1.25." in feedback
        assert "Gap: 0.75." in feedback

    def test_feedback_unknown_gap_on_extraction_failure(self):
        """Test feedback does not invent a gap when nothing was parsed."""
        from mission_control.models import NumericOperator

        validator = self._validator(NumericOperator.GREATER_THAN, 100)
        feedback = validator.generate_feedback(validator.validate("nothing"))

        assert "Current: unknown" in feedback
        assert "Gap" not in feedback

    def test_feedback_on_success(self):
        """Test success feedback names the metric."""
        from mission_control.models import NumericOperator

        validator = self._validator(NumericOperator.GREATER_THAN, 1, metric_name="accuracy")
        feedback = validator.generate_feedback(validator.validate("", 2))

        assert feedback == "Goal achieved! accuracy: 2"


class TestExitCodeValidator:
    """Tests for ExitCodeValidator."""

    def _validator(self, expected_code=0, command=None):
        from mission_control.models import ExitCodeCriteria
        from mission_control.validators import ExitCodeValidator
        return ExitCodeValidator(ExitCodeCriteria(expected_code, command))

    @pytest.mark.parametrize("output,code", [
        ("Process finished with exit code: 1", 1),
        ("EXIT CODE 3", 3),
        ("command returned: 0", 0),
        ("Status: 2", 2),
        ("exit code: -1", -1),
        ("0", 0),
        ("-9", -9),
    ])
    def test_extracts_code_from_output(self, output, code):
        """Test known output formats yield the exit code."""
        result = self._validator(expected_code=code).validate(output)

        assert result.passed is True
        assert result.actual_value == code

    def test_mismatch_fails(self):
        """Test a different exit code fails with both codes in the message."""
        result = self._validator(expected_code=0).validate("exit code: 1")

        assert result.passed is False
        assert result.message == "Command failed with exit code 1 (expected 0)"

    def test_value_takes_precedence(self):
        """Test explicit value overrides the parsed output."""
        result = self._validator(expected_code=0).validate("exit code: 1", 0)

        assert result.passed is True
        assert result.actual_value == 0

    def test_unparseable_output(self):
        """Test output without an exit code fails extraction."""
        result = self._validator().validate("all good, probably")

        assert result.passed is False
        assert result.actual_value is None
        assert result.expected_value == 0
        assert result.message == "Failed to extract exit code from output"

    def test_feedback_mentions_command(self):
        """Test failure feedback names the configured command."""
        validator = self._validator(expected_code=0, command="pytest")
        feedback = validator.generate_feedback(validator.validate("", 2))

        assert "exit code = 2, expected 0" in feedback
        assert "The pytest returned an error" in feedback


class TestKeywordValidator:
    """Tests for KeywordValidator."""

    def _validator(self, keyword, must_contain=True, case_sensitive=True):
        from mission_control.models import KeywordCriteria
        from mission_control.validators import KeywordValidator
        return KeywordValidator(KeywordCriteria(keyword, must_contain, case_sensitive))

    def test_must_contain_found(self):
        """Test required keyword present passes."""
        result = self._validator("SUCCESS").validate("Build SUCCESS in 3s")

        assert result.passed is True
        assert result.actual_value == "found"
        assert result.expected_value == "SUCCESS"

    def test_must_contain_missing(self):
        """Test required keyword absent fails."""
        result = self._validator("SUCCESS").validate("Build FAILED")

        assert result.passed is False
        assert result.actual_value == "not found"

    def test_must_not_contain(self):
        """Test forbidden keyword passes only when absent."""
        validator = self._validator("ERROR", must_contain=False)

        assert validator.validate("clean run").passed is True
        assert validator.validate("ERROR: boom").passed is False

    @pytest.mark.parametrize("output", ["WARNING: low disk", "Warning: low disk", "warning: low disk"])
    def test_case_insensitive_matches_all_casings(self, output):
        """Test case-insensitive mode matches every casing."""
        result = self._validator("warning", case_sensitive=False).validate(output)

        assert result.passed is True

    def test_case_sensitive_by_default(self):
        """Test default criteria match case-sensitively."""
        from mission_control.models import KeywordCriteria
        from mission_control.validators import KeywordValidator

        validator = KeywordValidator(KeywordCriteria(keyword="warning"))

        assert validator.validate("WARNING: low disk").passed is False
        assert validator.validate("warning: low disk").passed is True

    def test_empty_keyword_is_always_contained(self):
        """Test an empty keyword counts as present."""
        result = self._validator("").validate("anything")

        assert result.passed is True
        assert result.actual_value == "found"

    def test_feedback(self):
        """Test feedback for missing and forbidden keywords."""
        required = self._validator("DONE")
        forbidden = self._validator("Traceback", must_contain=False)

        assert 'required keyword "DONE"' in required.generate_feedback(required.validate("..."))
        assert 'forbidden keyword "Traceback"' in forbidden.generate_feedback(
            forbidden.validate("Traceback (most recent call last)")
        )


class TestValidatorRegistry:
    """Tests for get_validator() dispatch."""

    def test_dispatch_per_strategy(self):
        """Test each criteria type maps to its handler."""
        from mission_control.models import (
            ExitCodeCriteria, KeywordCriteria, NumericCriteria, NumericOperator,
        )
        from mission_control.validators import (
            ExitCodeValidator, KeywordValidator, NumericValidator, Validator, get_validator,
        )

        numeric = get_validator(NumericCriteria(NumericOperator.EQUAL, 1))
        exit_code = get_validator(ExitCodeCriteria(0))
        keyword = get_validator(KeywordCriteria("ok"))

        assert isinstance(numeric, NumericValidator)
        assert isinstance(exit_code, ExitCodeValidator)
        assert isinstance(keyword, KeywordValidator)
        assert all(isinstance(v, Validator) for v in (numeric, exit_code, keyword))

    def test_registry_covers_every_strategy(self):
        """Test every ValidationStrategy has a registered handler."""
        from mission_control.models import ValidationStrategy
        from mission_control.validators import VALIDATORS

        assert set(VALIDATORS) == set(ValidationStrategy)
