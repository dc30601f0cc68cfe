"""
mission_control.models - Mission, Attempt and Validation Data Classes

This module defines the data structures shared by every component:
- MissionState and its transition table
- Validation criteria variants (numeric, exit code, keyword)
- ValidationResult, Attempt, Mission and Checkpoint records

Every record converts to and from a JSON-compatible dict. Timestamps are
stored as ISO-8601 strings and restored to datetime objects.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from .errors import InvalidStateTransitionError

Scalar = Union[int, float, str]

MAX_OUTPUT_LENGTH = 1024 * 1024
TRUNCATION_MARKER = "\n... (truncated)"
DEFAULT_MAX_ATTEMPTS = 10


class MissionState(Enum):
    """Lifecycle states for a mission."""
    PENDING = "PENDING"          # Defined but not accepted yet
    IN_PROGRESS = "IN_PROGRESS"  # Accepting attempts
    COMPLETED = "COMPLETED"      # An attempt passed validation
    FAILED = "FAILED"            # Attempt budget exhausted
    ABORTED = "ABORTED"          # Manually stopped


TERMINAL_STATES = frozenset([
    MissionState.COMPLETED,
    MissionState.FAILED,
    MissionState.ABORTED,
])

ALLOWED_TRANSITIONS: Dict[MissionState, frozenset] = {
    MissionState.PENDING: frozenset([MissionState.IN_PROGRESS]),
    MissionState.IN_PROGRESS: frozenset([
        MissionState.COMPLETED,
        MissionState.FAILED,
        MissionState.ABORTED,
    ]),
    MissionState.COMPLETED: frozenset(),
    MissionState.FAILED: frozenset(),
    MissionState.ABORTED: frozenset(),
}


class ValidationStrategy(Enum):
    """Supported validation strategies."""
    NUMERIC = "NUMERIC"
    EXIT_CODE = "EXIT_CODE"
    KEYWORD = "KEYWORD"


class NumericOperator(Enum):
    """Comparison operators for numeric criteria."""
    GREATER_THAN = ">"
    LESS_THAN = "<"
    GREATER_EQUAL = ">="
    LESS_EQUAL = "<="
    EQUAL = "=="
    NOT_EQUAL = "!="


def is_number(value: Any) -> bool:
    """True for int/float values; bools are not treated as numbers."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


# =============================================================================
# Validation criteria
# =============================================================================

@dataclass(frozen=True)
class NumericCriteria:
    """Numeric comparison, e.g. sharpe_ratio >= 2.0."""
    strategy: ClassVar[ValidationStrategy] = ValidationStrategy.NUMERIC

    operator: NumericOperator
    threshold: float
    metric_name: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "operator": self.operator.value,
            "threshold": self.threshold,
            "metric_name": self.metric_name,
        }


@dataclass(frozen=True)
class ExitCodeCriteria:
    """Exit code check, e.g. `pytest` returns 0."""
    strategy: ClassVar[ValidationStrategy] = ValidationStrategy.EXIT_CODE

    expected_code: int
    command: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "expected_code": self.expected_code,
            "command": self.command,
        }


@dataclass(frozen=True)
class KeywordCriteria:
    """Keyword presence/absence check on the output text."""
    strategy: ClassVar[ValidationStrategy] = ValidationStrategy.KEYWORD

    keyword: str
    must_contain: bool = True
    case_sensitive: bool = True

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.value,
            "keyword": self.keyword,
            "must_contain": self.must_contain,
            "case_sensitive": self.case_sensitive,
        }


AnyCriteria = Union[NumericCriteria, ExitCodeCriteria, KeywordCriteria]


def criteria_from_dict(data: Dict[str, Any]) -> AnyCriteria:
    """
    Rebuild a criteria object from its stored dict form.

    Input is expected to be well-formed (it was produced by to_dict());
    raw user input goes through MissionDefiner.parse_criteria instead.
    """
    strategy = ValidationStrategy(data["strategy"])
    if strategy is ValidationStrategy.NUMERIC:
        return NumericCriteria(
            operator=NumericOperator(data["operator"]),
            threshold=data["threshold"],
            metric_name=data.get("metric_name"),
        )
    if strategy is ValidationStrategy.EXIT_CODE:
        return ExitCodeCriteria(
            expected_code=data["expected_code"],
            command=data.get("command"),
        )
    return KeywordCriteria(
        keyword=data["keyword"],
        must_contain=data.get("must_contain", True),
        case_sensitive=data.get("case_sensitive", True),
    )


# =============================================================================
# Results and attempts
# =============================================================================

@dataclass
class ValidationResult:
    """Outcome of validating one attempt."""
    passed: bool
    message: str
    actual_value: Optional[Scalar] = None
    expected_value: Optional[Scalar] = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "passed": self.passed,
            "message": self.message,
            "actual_value": self.actual_value,
            "expected_value": self.expected_value,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ValidationResult':
        return cls(
            passed=data["passed"],
            message=data["message"],
            actual_value=data.get("actual_value"),
            expected_value=data.get("expected_value"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass
class Attempt:
    """A single submitted result and its validation outcome."""
    attempt_number: int
    output: str
    validation_result: ValidationResult
    value: Optional[Scalar] = None
    timestamp: datetime = field(default_factory=datetime.now)
    duration: Optional[float] = None  # seconds

    def to_dict(self) -> dict:
        return {
            "attempt_number": self.attempt_number,
            "timestamp": self.timestamp.isoformat(),
            "output": self.output,
            "value": self.value,
            "validation_result": self.validation_result.to_dict(),
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Attempt':
        return cls(
            attempt_number=data["attempt_number"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            output=data["output"],
            value=data.get("value"),
            validation_result=ValidationResult.from_dict(data["validation_result"]),
            duration=data.get("duration"),
        )


def truncate_output(output: str) -> str:
    """Cap stored output at MAX_OUTPUT_LENGTH characters, marking the cut."""
    if len(output) > MAX_OUTPUT_LENGTH:
        return output[:MAX_OUTPUT_LENGTH] + TRUNCATION_MARKER
    return output


# =============================================================================
# Mission
# =============================================================================

@dataclass
class MissionConfig:
    """Immutable-by-convention mission parameters fixed at definition time."""
    id: str
    goal: str
    criteria: AnyCriteria
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    enable_checkpoints: bool = False
    checkpoint_frequency: int = 5
    attempt_timeout: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "goal": self.goal,
            "criteria": self.criteria.to_dict(),
            "max_attempts": self.max_attempts,
            "enable_checkpoints": self.enable_checkpoints,
            "checkpoint_frequency": self.checkpoint_frequency,
            "attempt_timeout": self.attempt_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'MissionConfig':
        return cls(
            id=data["id"],
            goal=data["goal"],
            criteria=criteria_from_dict(data["criteria"]),
            max_attempts=data.get("max_attempts", DEFAULT_MAX_ATTEMPTS),
            enable_checkpoints=data.get("enable_checkpoints", False),
            checkpoint_frequency=data.get("checkpoint_frequency", 5),
            attempt_timeout=data.get("attempt_timeout"),
        )


@dataclass
class Mission:
    """
    Complete mission state.

    current_attempt always equals len(attempts); attempts are numbered 1..N
    without gaps. State changes go through transition_to() so a terminal
    mission can never be reopened.
    """
    config: MissionConfig
    state: MissionState = MissionState.PENDING
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)
    attempts: List[Attempt] = field(default_factory=list)
    current_attempt: int = 0
    completed_at: Optional[datetime] = None
    success: Optional[bool] = None
    error_message: Optional[str] = None

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def max_attempts(self) -> int:
        return self.config.max_attempts

    @property
    def criteria(self) -> AnyCriteria:
        return self.config.criteria

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def last_result(self) -> Optional[ValidationResult]:
        if not self.attempts:
            return None
        return self.attempts[-1].validation_result

    def transition_to(self, new_state: MissionState) -> MissionState:
        """
        Move the mission to a new state.

        Args:
            new_state: Target state

        Returns:
            The previous state

        Raises:
            InvalidStateTransitionError: If the edge is not in ALLOWED_TRANSITIONS
        """
        if new_state not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidStateTransitionError(self.id, self.state.value, new_state.value)
        old_state = self.state
        self.state = new_state
        now = datetime.now()
        self.updated_at = now
        if new_state in TERMINAL_STATES:
            self.completed_at = now
        return old_state

    def to_dict(self) -> dict:
        return {
            "config": self.config.to_dict(),
            "state": self.state.value,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "attempts": [a.to_dict() for a in self.attempts],
            "current_attempt": self.current_attempt,
            "completed_at": _iso(self.completed_at),
            "success": self.success,
            "error_message": self.error_message,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Mission':
        return cls(
            config=MissionConfig.from_dict(data["config"]),
            state=MissionState(data["state"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
            attempts=[Attempt.from_dict(a) for a in data.get("attempts", [])],
            current_attempt=data.get("current_attempt", 0),
            completed_at=_parse_iso(data.get("completed_at")),
            success=data.get("success"),
            error_message=data.get("error_message"),
        )


@dataclass
class Checkpoint:
    """Point-in-time copy of a mission, stored alongside the mission map."""
    id: str
    mission_id: str
    mission_snapshot: Mission
    attempt_number: int
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: Optional[Dict[str, Any]] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "mission_id": self.mission_id,
            "timestamp": self.timestamp.isoformat(),
            "mission_snapshot": self.mission_snapshot.to_dict(),
            "attempt_number": self.attempt_number,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Checkpoint':
        return cls(
            id=data["id"],
            mission_id=data["mission_id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            mission_snapshot=Mission.from_dict(data["mission_snapshot"]),
            attempt_number=data["attempt_number"],
            metadata=data.get("metadata"),
        )
