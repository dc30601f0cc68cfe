"""
mission_control.orchestrator - Mission Use Cases

This module provides the MissionOrchestrator class, which implements the
operations exposed to the transport layer:

    define_mission()        Validate criteria, create and start a mission
    submit_attempt()        Validate one attempt and advance the mission
    get_status()            Report progress and attempt history
    abort_mission()         Stop an in-progress mission
    list_missions()         Summaries, optionally filtered by state
    cleanup_old_missions()  Retention sweep
    shutdown()              Final flush of the persistent store

Operations on the same mission id are serialized with a per-mission lock;
operations on different missions run independently.
"""

import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .attempt_counter import AttemptCounter
from .config import StateConfig, load_state_config
from .errors import MaxAttemptsExceededError, MissionNotInProgressError
from .feedback_engine import FeedbackEngine
from .mission_definer import CriteriaInput, MissionDefiner
from .models import (
    Attempt,
    Checkpoint,
    Mission,
    MissionState,
    Scalar,
    ValidationResult,
    truncate_output,
)
from .state_manager import StateManager
from .validators import get_validator

logger = logging.getLogger(__name__)

MAX_ATTEMPTS_MESSAGE = "Maximum attempts exceeded"
DEFAULT_ABORT_REASON = "Manually aborted"


# =============================================================================
# Results
# =============================================================================

@dataclass
class SubmitResult:
    """
    Outcome of submit_attempt().

    `final` is True when the mission reached a terminal state or has no
    attempts left, so the caller should stop retrying.
    """
    success: bool
    passed: bool
    final: bool
    message: str
    attempts_used: int
    remaining_attempts: int
    feedback: Optional[str] = None
    progress_summary: Optional[str] = None
    validation_result: Optional[ValidationResult] = None
    max_attempts: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "passed": self.passed,
            "final": self.final,
            "message": self.message,
            "attempts_used": self.attempts_used,
            "remaining_attempts": self.remaining_attempts,
            "max_attempts": self.max_attempts,
            "feedback": self.feedback,
            "progress_summary": self.progress_summary,
            "validation_result": (
                self.validation_result.to_dict() if self.validation_result else None
            ),
            "error": self.error,
        }


@dataclass
class MissionStatus:
    """Point-in-time view of a mission for get_status()/list_missions()."""
    mission_id: str
    goal: str
    state: MissionState
    current_attempt: int
    max_attempts: int
    attempts_remaining: int
    progress_percentage: float
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    success: Optional[bool] = None
    error_message: Optional[str] = None
    last_result: Optional[ValidationResult] = None
    attempts: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_mission(cls, mission: Mission) -> 'MissionStatus':
        return cls(
            mission_id=mission.id,
            goal=mission.config.goal,
            state=mission.state,
            current_attempt=mission.current_attempt,
            max_attempts=mission.max_attempts,
            attempts_remaining=max(0, mission.max_attempts - mission.current_attempt),
            progress_percentage=(mission.current_attempt / mission.max_attempts) * 100,
            created_at=mission.created_at,
            updated_at=mission.updated_at,
            completed_at=mission.completed_at,
            success=mission.success,
            error_message=mission.error_message,
            last_result=mission.last_result,
            attempts=[
                {
                    "attempt_number": a.attempt_number,
                    "timestamp": a.timestamp.isoformat(),
                    "passed": a.validation_result.passed,
                    "message": a.validation_result.message,
                }
                for a in mission.attempts
            ],
        )

    def to_dict(self) -> dict:
        return {
            "mission_id": self.mission_id,
            "goal": self.goal,
            "state": self.state.value,
            "current_attempt": self.current_attempt,
            "max_attempts": self.max_attempts,
            "attempts_remaining": self.attempts_remaining,
            "progress_percentage": self.progress_percentage,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "success": self.success,
            "error_message": self.error_message,
            "last_result": self.last_result.to_dict() if self.last_result else None,
            "attempts": list(self.attempts),
        }


@dataclass
class AbortResult:
    """Confirmation returned by abort_mission()."""
    mission_id: str
    state: MissionState
    reason: str
    attempts_used: int
    message: str

    def to_dict(self) -> dict:
        return {
            "success": True,
            "mission_id": self.mission_id,
            "state": self.state.value,
            "reason": self.reason,
            "attempts_used": self.attempts_used,
            "message": self.message,
        }


# =============================================================================
# Orchestrator
# =============================================================================

class MissionOrchestrator:
    """
    Drives missions through define, submit, status and abort.

    Usage:
        orchestrator = MissionOrchestrator.from_config()
        mission_id = orchestrator.define_mission(
            "Make the test suite pass",
            {"strategy": "EXIT_CODE", "expected_code": 0},
            max_attempts=3,
        )
        result = orchestrator.submit_attempt(mission_id, "exit code: 1")
        if result.final:
            ...
        orchestrator.shutdown()
    """

    def __init__(
        self,
        store: StateManager,
        feedback_engine: Optional[FeedbackEngine] = None,
        definer: Optional[MissionDefiner] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Persistent store owning all missions
            feedback_engine: Feedback composer (default FeedbackEngine())
            definer: Mission factory (default MissionDefiner())
        """
        self.store = store
        self.feedback_engine = feedback_engine or FeedbackEngine()
        self.definer = definer or MissionDefiner()

        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(cls, config: Optional[StateConfig] = None) -> 'MissionOrchestrator':
        """Create an orchestrator over a store built from config (YAML + env by default)."""
        return cls(StateManager.create(config or load_state_config()))

    def _mission_lock(self, mission_id: str, create: bool = False) -> threading.Lock:
        """Return the per-mission lock; only new definitions may add one."""
        with self._locks_guard:
            lock = self._locks.get(mission_id)
            if lock is None:
                if not create:
                    # Raises MissionNotFoundError for unknown ids
                    self.store.get_mission(mission_id)
                lock = threading.Lock()
                self._locks[mission_id] = lock
            return lock

    # =========================================================================
    # Define
    # =========================================================================

    def define_mission(
        self,
        goal: str,
        criteria: CriteriaInput,
        max_attempts: Optional[int] = None,
        enable_checkpoints: bool = False,
        checkpoint_frequency: int = 5,
        attempt_timeout: Optional[float] = None,
        mission_id: Optional[str] = None,
    ) -> str:
        """
        Define a mission and start accepting attempts for it.

        Returns:
            The new mission id

        Raises:
            InvalidCriteriaError: If the criteria or limits are invalid
            MissionExistsError: If mission_id is already in use
        """
        mission = self.definer.define_mission(
            goal=goal,
            criteria=criteria,
            max_attempts=max_attempts,
            enable_checkpoints=enable_checkpoints,
            checkpoint_frequency=checkpoint_frequency,
            attempt_timeout=attempt_timeout,
            mission_id=mission_id,
        )
        mission.transition_to(MissionState.IN_PROGRESS)

        with self._mission_lock(mission.id, create=True):
            self.store.add_mission(mission)

        logger.info(
            f"Mission defined: {mission.id} "
            f"(strategy={mission.criteria.strategy.value}, max_attempts={mission.max_attempts})"
        )
        return mission.id

    # =========================================================================
    # Submit
    # =========================================================================

    def submit_attempt(
        self,
        mission_id: str,
        output: str,
        value: Optional[Scalar] = None,
        duration: Optional[float] = None,
    ) -> SubmitResult:
        """
        Validate an attempt and record it against the mission.

        Exhausting the attempt budget is reported in the result (mission
        FAILED, success=False, final=True) rather than raised.

        Args:
            mission_id: Target mission
            output: Raw output of the attempt
            value: Explicit value for validation (overrides parsing output)
            duration: Optional attempt duration in seconds

        Returns:
            SubmitResult

        Raises:
            MissionNotFoundError: If the mission does not exist
            MissionNotInProgressError: If the mission is not IN_PROGRESS
        """
        with self._mission_lock(mission_id):
            mission = self.store.get_mission(mission_id)
            if mission.state != MissionState.IN_PROGRESS:
                raise MissionNotInProgressError(mission_id, mission.state.value)

            try:
                counter = AttemptCounter.restore_at(
                    mission.current_attempt,
                    mission.max_attempts,
                    label=mission_id,
                )
                attempt_number = counter.increment()
            except MaxAttemptsExceededError as e:
                logger.warning(str(e))
                return self._fail_exhausted(mission)

            # Validate the full output; only the stored copy is truncated
            result = get_validator(mission.criteria).validate(output, value)

            attempt = Attempt(
                attempt_number=attempt_number,
                output=truncate_output(output),
                validation_result=result,
                value=value,
                duration=duration,
            )

            with self.store.lock:
                mission.attempts.append(attempt)
                mission.current_attempt = attempt_number
                if result.passed:
                    mission.transition_to(MissionState.COMPLETED)
                    mission.success = True
                self.store.update_mission(mission)
                self._maybe_checkpoint(mission, attempt)

            feedback = self.feedback_engine.generate_feedback(
                mission.criteria, result, attempt_number
            )
            progress_summary = self.feedback_engine.generate_progress_summary(
                mission.current_attempt,
                mission.max_attempts,
                [a.validation_result for a in mission.attempts],
            )

            final = mission.is_terminal or not counter.has_attempts_remaining()
            if result.passed:
                message = "Mission completed successfully!"
                logger.info(f"Mission {mission_id} completed on attempt {attempt_number}")
            elif final:
                message = "Attempt failed validation. No attempts remaining."
            else:
                message = "Attempt failed validation. Please try again."

            return SubmitResult(
                success=True,
                passed=result.passed,
                final=final,
                message=message,
                attempts_used=attempt_number,
                remaining_attempts=counter.remaining_attempts,
                max_attempts=mission.max_attempts,
                feedback=feedback,
                progress_summary=progress_summary,
                validation_result=result,
            )

    def _fail_exhausted(self, mission: Mission) -> SubmitResult:
        with self.store.lock:
            mission.transition_to(MissionState.FAILED)
            mission.success = False
            mission.error_message = MAX_ATTEMPTS_MESSAGE
            self.store.update_mission(mission)

        logger.info(f"Mission {mission.id} failed: {MAX_ATTEMPTS_MESSAGE}")
        return SubmitResult(
            success=False,
            passed=False,
            final=True,
            message=f"Mission failed: {MAX_ATTEMPTS_MESSAGE}",
            attempts_used=mission.current_attempt,
            remaining_attempts=0,
            max_attempts=mission.max_attempts,
            error=MAX_ATTEMPTS_MESSAGE,
        )

    def _maybe_checkpoint(self, mission: Mission, attempt: Attempt) -> None:
        config = mission.config
        if not config.enable_checkpoints:
            return
        if attempt.attempt_number % config.checkpoint_frequency != 0:
            return

        checkpoint = Checkpoint(
            id=str(uuid.uuid4()),
            mission_id=mission.id,
            mission_snapshot=Mission.from_dict(mission.to_dict()),
            attempt_number=attempt.attempt_number,
            metadata={
                "state": mission.state.value,
                "passed": attempt.validation_result.passed,
            },
        )
        self.store.add_checkpoint(checkpoint)
        logger.debug(f"Checkpoint {checkpoint.id} stored for mission {mission.id} at attempt {attempt.attempt_number}")

    # =========================================================================
    # Status / abort / listing
    # =========================================================================

    def get_status(self, mission_id: str) -> MissionStatus:
        """
        Get a mission's status.

        Raises:
            MissionNotFoundError: If the mission does not exist
        """
        with self._mission_lock(mission_id):
            mission = self.store.get_mission(mission_id)
            with self.store.lock:
                return MissionStatus.from_mission(mission)

    def abort_mission(self, mission_id: str, reason: Optional[str] = None) -> AbortResult:
        """
        Abort an in-progress mission.

        Args:
            mission_id: Target mission
            reason: Recorded as the mission's error message (default "Manually aborted")

        Returns:
            AbortResult confirmation

        Raises:
            MissionNotFoundError: If the mission does not exist
            MissionNotInProgressError: If the mission is not IN_PROGRESS
        """
        reason = reason or DEFAULT_ABORT_REASON

        with self._mission_lock(mission_id):
            mission = self.store.get_mission(mission_id)
            if mission.state != MissionState.IN_PROGRESS:
                raise MissionNotInProgressError(mission_id, mission.state.value)

            with self.store.lock:
                mission.transition_to(MissionState.ABORTED)
                mission.success = False
                mission.error_message = reason
                self.store.update_mission(mission)

        logger.info(f"Mission {mission_id} aborted: {reason}")
        return AbortResult(
            mission_id=mission_id,
            state=MissionState.ABORTED,
            reason=reason,
            attempts_used=mission.current_attempt,
            message=f"Mission {mission_id} aborted",
        )

    def list_missions(self, state: Optional[MissionState] = None) -> List[MissionStatus]:
        """List mission summaries, optionally only those in `state`."""
        if state is None:
            missions = self.store.get_all_missions()
        else:
            missions = self.store.get_missions_by_state(state)
        with self.store.lock:
            return [MissionStatus.from_mission(m) for m in missions]

    def cleanup_old_missions(self, now: Optional[datetime] = None) -> int:
        """Run the store's retention sweep and forget locks of deleted missions."""
        deleted = self.store.cleanup_old_missions(now)
        if deleted:
            with self._locks_guard:
                for mission_id in list(self._locks):
                    if not self.store.has_mission(mission_id):
                        del self._locks[mission_id]
        return deleted

    def shutdown(self) -> None:
        """Flush and stop the persistent store."""
        self.store.shutdown()
