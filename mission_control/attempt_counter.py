"""
mission_control.attempt_counter - Bounded Retry Counter

This module provides the AttemptCounter class, which enforces a mission's
attempt budget and signals when the budget is nearly used up.

Restoring a counter for a mission that already has recorded attempts goes
through AttemptCounter.restore_at(), which sets the count directly. Those
attempts were warned about when they happened, so restoring emits nothing.
"""

import logging
from typing import Callable, Optional

from .errors import MaxAttemptsExceededError

logger = logging.getLogger(__name__)

DEFAULT_WARN_THRESHOLD = 3


class AttemptCounter:
    """
    Counts attempts against a fixed maximum.

    Usage:
        counter = AttemptCounter(max_attempts=10)
        counter.increment()   # -> 1

        # Resume a mission that already used 8 attempts
        counter = AttemptCounter.restore_at(8, max_attempts=10)
        counter.increment()   # -> 9, warns once (1 remaining)
    """

    def __init__(
        self,
        max_attempts: int,
        warn_threshold: int = DEFAULT_WARN_THRESHOLD,
        on_warning: Optional[Callable[[int], None]] = None,
        label: str = "mission",
    ):
        """
        Initialize the counter at zero.

        Args:
            max_attempts: Maximum number of attempts allowed (>= 1)
            warn_threshold: Warn when remaining attempts fall to this or below
            on_warning: Optional callback receiving the remaining count on each warning
            label: Name used in error messages (usually the mission id)
        """
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")

        self.max_attempts = max_attempts
        self.warn_threshold = warn_threshold
        self.on_warning = on_warning
        self.label = label
        self._current_attempt = 0

    @classmethod
    def restore_at(
        cls,
        current_attempt: int,
        max_attempts: int,
        warn_threshold: int = DEFAULT_WARN_THRESHOLD,
        on_warning: Optional[Callable[[int], None]] = None,
        label: str = "mission",
    ) -> 'AttemptCounter':
        """
        Create a counter positioned at an already-known attempt count.

        Runs in constant time and emits no warnings.

        Args:
            current_attempt: Attempts already recorded (0..max_attempts)
            max_attempts: Maximum number of attempts allowed

        Returns:
            AttemptCounter whose next increment() yields current_attempt + 1

        Raises:
            ValueError: If current_attempt is negative
            MaxAttemptsExceededError: If current_attempt exceeds max_attempts
        """
        if current_attempt < 0:
            raise ValueError(f"current_attempt cannot be negative, got {current_attempt}")
        if current_attempt > max_attempts:
            raise MaxAttemptsExceededError(label, max_attempts)

        counter = cls(
            max_attempts,
            warn_threshold=warn_threshold,
            on_warning=on_warning,
            label=label,
        )
        counter._current_attempt = current_attempt
        return counter

    @property
    def current_attempt(self) -> int:
        """Get the current attempt number."""
        return self._current_attempt

    @property
    def remaining_attempts(self) -> int:
        """Get attempts left before the budget is exhausted."""
        return max(0, self.max_attempts - self._current_attempt)

    @property
    def progress_percentage(self) -> float:
        """Get the share of the budget used, 0-100."""
        return (self._current_attempt / self.max_attempts) * 100

    def increment(self) -> int:
        """
        Record one more attempt.

        Returns:
            The new attempt number

        Raises:
            MaxAttemptsExceededError: If the new count exceeds max_attempts.
                The counter keeps the overshoot; callers must treat this as terminal.
        """
        self._current_attempt += 1

        if self._current_attempt > self.max_attempts:
            raise MaxAttemptsExceededError(self.label, self.max_attempts)

        remaining = self.remaining_attempts
        if 0 < remaining <= self.warn_threshold:
            logger.warning(f"Approaching attempt limit for {self.label}: {remaining} attempts remaining")
            if self.on_warning is not None:
                self.on_warning(remaining)

        return self._current_attempt

    def has_attempts_remaining(self) -> bool:
        """Check if another increment() can succeed."""
        return self._current_attempt < self.max_attempts

    def is_nearing_limit(self) -> bool:
        """Check if the warning threshold has been reached."""
        return self.remaining_attempts <= self.warn_threshold

    def reset(self) -> None:
        """Reset the counter to zero."""
        self._current_attempt = 0
