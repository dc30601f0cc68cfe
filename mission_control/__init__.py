"""
mission_control - Retryable, Self-Validating Missions

A caller defines a goal plus a pass/fail rule, submits attempt results, and
gets validation, feedback and progress back. All mission state is kept in a
crash-safe persistent store.

Components:
    - MissionOrchestrator: define/submit/status/abort use cases
    - MissionDefiner: criteria validation and mission creation
    - Validators (mission_control/validators/): NUMERIC, EXIT_CODE, KEYWORD
    - AttemptCounter: bounded retry counter
    - FeedbackEngine: attempt feedback and progress summaries
    - StateManager: debounced, atomic snapshot persistence with backup recovery

Configuration (mission_control/config/):
    state_config.yaml defaults, overridable with MISSION_CONTROL_* variables.
"""

import logging

from .attempt_counter import AttemptCounter
from .config import StateConfig, configure_log_level, load_state_config
from .errors import (
    InvalidCriteriaError,
    InvalidStateTransitionError,
    MaxAttemptsExceededError,
    MissionExistsError,
    MissionNotFoundError,
    MissionNotInProgressError,
    OrchestratorError,
    StateCorruptedError,
    StateDirectoryError,
    StatePersistenceError,
    ValidationError,
)
from .feedback_engine import FeedbackEngine
from .mission_definer import MissionDefiner, parse_criteria
from .models import (
    Attempt,
    Checkpoint,
    ExitCodeCriteria,
    KeywordCriteria,
    Mission,
    MissionConfig,
    MissionState,
    NumericCriteria,
    NumericOperator,
    ValidationResult,
    ValidationStrategy,
)
from .orchestrator import AbortResult, MissionOrchestrator, MissionStatus, SubmitResult
from .state_manager import StateManager
from .validators import get_validator

logger = logging.getLogger(__name__)

__version__ = "1.0.0"

__all__ = [
    'MissionOrchestrator',
    'SubmitResult',
    'MissionStatus',
    'AbortResult',
    'MissionDefiner',
    'parse_criteria',
    'AttemptCounter',
    'FeedbackEngine',
    'StateManager',
    'StateConfig',
    'load_state_config',
    'configure_log_level',
    'get_validator',
    'Mission',
    'MissionConfig',
    'MissionState',
    'Attempt',
    'Checkpoint',
    'ValidationResult',
    'ValidationStrategy',
    'NumericOperator',
    'NumericCriteria',
    'ExitCodeCriteria',
    'KeywordCriteria',
    'OrchestratorError',
    'MissionNotFoundError',
    'MissionExistsError',
    'InvalidCriteriaError',
    'ValidationError',
    'MissionNotInProgressError',
    'InvalidStateTransitionError',
    'MaxAttemptsExceededError',
    'StatePersistenceError',
    'StateCorruptedError',
    'StateDirectoryError',
]
