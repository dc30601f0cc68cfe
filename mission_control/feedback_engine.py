"""
mission_control.feedback_engine - Attempt Feedback Generation

This module provides the FeedbackEngine class, which turns validation
results into guidance for the caller:
- Per-attempt feedback (validator-specific message with a pass/fail banner)
- Progress summaries with near-limit and stagnation warnings
"""

import logging
from typing import List, Sequence

from .models import AnyCriteria, ValidationResult
from .validators import get_validator

logger = logging.getLogger(__name__)

# Warn when this many attempts or fewer remain
NEAR_LIMIT_ATTEMPTS = 3

# Number of identical trailing messages that count as a repeated pattern
STAGNATION_WINDOW = 3


class FeedbackEngine:
    """Composes human-readable feedback for submitted attempts."""

    def generate_feedback(
        self,
        criteria: AnyCriteria,
        result: ValidationResult,
        attempt_number: int,
    ) -> str:
        """
        Generate feedback for a single attempt.

        Args:
            criteria: Criteria the attempt was validated against
            result: The validation result
            attempt_number: 1-indexed attempt number

        Returns:
            Feedback text
        """
        specific = get_validator(criteria).generate_feedback(result)

        if result.passed:
            return f"✓ Attempt {attempt_number} succeeded!\n{specific}"

        return (
            f"✗ Attempt {attempt_number} failed.\n"
            f"{specific}\n"
            f"\nPlease review and make necessary adjustments before the next attempt."
        )

    def generate_progress_summary(
        self,
        current_attempt: int,
        max_attempts: int,
        recent_results: Sequence[ValidationResult],
    ) -> str:
        """
        Summarize progress through the attempt budget.

        Args:
            current_attempt: Attempts used so far
            max_attempts: Attempt budget
            recent_results: Validation results in attempt order

        Returns:
            Multi-line progress summary
        """
        remaining = max_attempts - current_attempt
        progress_pct = (current_attempt / max_attempts) * 100

        summary = f"Progress: Attempt {current_attempt}/{max_attempts} ({progress_pct:.1f}%)"

        if remaining <= NEAR_LIMIT_ATTEMPTS:
            summary += f"\n⚠️  Warning: Only {remaining} attempts remaining!"

        if len(recent_results) >= STAGNATION_WINDOW:
            if self.detect_repeated_pattern(list(recent_results)[-STAGNATION_WINDOW:]):
                logger.debug("Repeated failure pattern detected")
                summary += "\n⚠️  Detected repeated failure pattern. Consider changing approach."

        return summary

    @staticmethod
    def detect_repeated_pattern(results: List[ValidationResult]) -> bool:
        """True when every result carries the same message."""
        if len(results) < 2:
            return False
        first = results[0].message
        return all(r.message == first for r in results)
