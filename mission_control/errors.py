"""
mission_control.errors - Error Classes

All errors raised by the mission control core derive from OrchestratorError.
Each error carries a stable machine-readable code plus a recovery hint so the
transport layer can report failures without inspecting message text.

Error Categories:
    - Lookup: MissionNotFoundError, MissionExistsError
    - Definition: InvalidCriteriaError, ValidationError
    - Lifecycle: MissionNotInProgressError, InvalidStateTransitionError,
      MaxAttemptsExceededError
    - Persistence: StatePersistenceError, StateCorruptedError,
      StateDirectoryError
"""

from typing import Optional


class OrchestratorError(Exception):
    """
    Base class for mission control errors.

    Attributes:
        message: Human-readable error message
        code: Stable error code (e.g., 'MISSION_NOT_FOUND')
        is_recoverable: Whether retrying the same call can succeed
        recovery_hint: Suggested action to recover
    """
    def __init__(
        self,
        message: str,
        code: str,
        is_recoverable: bool = False,
        recovery_hint: str = ""
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.is_recoverable = is_recoverable
        self.recovery_hint = recovery_hint

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "recoverable": self.is_recoverable,
            "recovery_hint": self.recovery_hint,
        }


# =============================================================================
# Lookup errors
# =============================================================================

class MissionNotFoundError(OrchestratorError):
    """Raised when a mission id is not present in the store."""
    def __init__(
        self,
        mission_id: str,
        available_missions: Optional[int] = None,
        suggestion: str = ""
    ):
        message = f"Mission not found: {mission_id}"
        if available_missions is not None:
            message += f". Available missions: {available_missions}"
        if suggestion:
            message += f". {suggestion}"
        super().__init__(
            message=message,
            code="MISSION_NOT_FOUND",
            recovery_hint=suggestion or "List missions to find a valid id",
        )
        self.mission_id = mission_id


class MissionExistsError(OrchestratorError):
    """Raised when adding a mission whose id is already stored."""
    def __init__(self, mission_id: str, existing_state: Optional[str] = None):
        message = f"Mission already exists: {mission_id}"
        if existing_state:
            message += f". Current state: {existing_state}"
        super().__init__(
            message=message,
            code="MISSION_EXISTS",
            recovery_hint="Delete the existing mission or use a new id",
        )
        self.mission_id = mission_id


# =============================================================================
# Definition errors
# =============================================================================

class InvalidCriteriaError(OrchestratorError):
    """
    Malformed validation configuration at definition time.

    The mission is never created when this is raised.
    """
    def __init__(self, reason: str):
        super().__init__(
            message=f"Invalid validation criteria: {reason}",
            code="INVALID_CRITERIA",
            recovery_hint="Fix the criteria fields and define the mission again",
        )
        self.reason = reason


class ValidationError(OrchestratorError):
    """Raised when a validator cannot evaluate its criteria (e.g. unknown operator)."""
    def __init__(self, reason: str):
        super().__init__(
            message=f"Validation failed: {reason}",
            code="VALIDATION_ERROR",
        )
        self.reason = reason


# =============================================================================
# Lifecycle errors
# =============================================================================

class MissionNotInProgressError(OrchestratorError):
    """Raised when submit/abort targets a mission that is not IN_PROGRESS."""
    def __init__(self, mission_id: str, current_state: str):
        super().__init__(
            message=f"Mission is not in progress (current state: {current_state})",
            code="MISSION_NOT_IN_PROGRESS",
            recovery_hint="Define a new mission to continue working on this goal",
        )
        self.mission_id = mission_id
        self.current_state = current_state


class InvalidStateTransitionError(OrchestratorError):
    """Raised when a mission is asked to move along an edge the state machine forbids."""
    def __init__(self, mission_id: str, from_state: str, to_state: str):
        super().__init__(
            message=f"Invalid state transition for mission {mission_id}: {from_state} -> {to_state}",
            code="INVALID_STATE_TRANSITION",
        )
        self.mission_id = mission_id
        self.from_state = from_state
        self.to_state = to_state


class MaxAttemptsExceededError(OrchestratorError):
    """
    Attempt budget exhausted.

    This is a terminal condition, not a transient one: the orchestrator turns
    it into a FAILED mission instead of letting it reach a retrying caller.
    """
    def __init__(self, mission_id: str, max_attempts: int):
        super().__init__(
            message=f"Mission {mission_id} exceeded maximum attempts ({max_attempts})",
            code="MAX_ATTEMPTS_EXCEEDED",
        )
        self.mission_id = mission_id
        self.max_attempts = max_attempts


# =============================================================================
# Persistence errors
# =============================================================================

class StatePersistenceError(OrchestratorError):
    """Base class for persistence-related failures."""
    def __init__(self, operation: str, reason: str, suggestion: str = ""):
        message = f"State persistence failed ({operation}): {reason}"
        if suggestion:
            message += f". {suggestion}"
        super().__init__(
            message=message,
            code="STATE_PERSISTENCE_ERROR",
            is_recoverable=True,
            recovery_hint=suggestion or "Check disk space and permissions, then retry",
        )
        self.operation = operation
        self.reason = reason


class StateCorruptedError(StatePersistenceError):
    """Raised when neither the snapshot nor its backup can be deserialized."""
    def __init__(self, file_path: str, reason: str, has_backup: bool = False):
        detail = f"Corrupted state file at {file_path}: {reason}"
        if has_backup:
            detail += ". Backup file available for recovery"
        super().__init__("load", detail)
        self.code = "STATE_CORRUPTED"
        self.is_recoverable = False
        self.recovery_hint = "Move the corrupted files aside and restart with an empty state"
        self.file_path = file_path


class StateDirectoryError(StatePersistenceError):
    """Raised when the state directory cannot be created or accessed."""
    def __init__(self, dir_path: str, reason: str, suggestion: str = ""):
        super().__init__(
            "directory",
            f"State directory error at {dir_path}: {reason}",
            suggestion,
        )
        self.code = "STATE_DIRECTORY_ERROR"
        self.dir_path = dir_path
