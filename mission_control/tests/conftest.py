"""
pytest fixtures for the mission_control test suite.

Provides:
- State configs rooted in a per-test temporary directory
- Persistent and memory-only StateManager instances
- Orchestrator fixtures wired to those stores
- Mission and attempt factories
"""

import pytest
from datetime import datetime
from pathlib import Path
from typing import Optional


# ===========================================================================
# Custom markers registration
# ===========================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
    config.addinivalue_line(
        "markers", "persistence: tests that read or write state files"
    )
    config.addinivalue_line(
        "markers", "regression: marks tests as regression tests"
    )


# ===========================================================================
# Store fixtures
# ===========================================================================

@pytest.fixture
def state_dir(tmp_path) -> Path:
    """Directory for state.json and its backup (created by the store)."""
    return tmp_path / "state"


@pytest.fixture
def state_config(state_dir):
    """
    Persistent config with a long debounce.

    Tests flush explicitly with force_save()/shutdown() so the background
    timer never races the assertions.
    """
    from mission_control.config import StateConfig
    return StateConfig(state_dir=state_dir, save_debounce_seconds=60.0)


@pytest.fixture
def store(state_config):
    """Persistent StateManager; pending timers are cancelled on teardown."""
    from mission_control.state_manager import StateManager
    manager = StateManager.create(state_config)
    yield manager
    manager.close()


@pytest.fixture
def memory_store(tmp_path):
    """StateManager with persistence disabled."""
    from mission_control.config import StateConfig
    from mission_control.state_manager import StateManager
    manager = StateManager.create(
        StateConfig(state_dir=tmp_path / "unused", enable_persistence=False)
    )
    yield manager
    manager.close()


@pytest.fixture
def orchestrator(store):
    """MissionOrchestrator over the persistent store fixture."""
    from mission_control.orchestrator import MissionOrchestrator
    return MissionOrchestrator(store)


# ===========================================================================
# Factories
# ===========================================================================

@pytest.fixture
def numeric_criteria():
    from mission_control.models import NumericCriteria, NumericOperator
    return NumericCriteria(operator=NumericOperator.GREATER_THAN, threshold=100)


@pytest.fixture
def mission_factory(numeric_criteria):
    """
    Factory for Mission objects.

    Usage:
        mission = mission_factory("m1", state=MissionState.COMPLETED)
    """
    from mission_control.models import Mission, MissionConfig, MissionState

    def _create(
        mission_id: str = "mission-1",
        state: MissionState = MissionState.IN_PROGRESS,
        max_attempts: int = 5,
        criteria=None,
        completed_at: Optional[datetime] = None,
    ) -> Mission:
        config = MissionConfig(
            id=mission_id,
            goal=f"Goal for {mission_id}",
            criteria=criteria or numeric_criteria,
            max_attempts=max_attempts,
        )
        return Mission(config=config, state=state, completed_at=completed_at)

    return _create


@pytest.fixture
def attempt_factory():
    """Factory for Attempt objects with a simple validation result."""
    from mission_control.models import Attempt, ValidationResult

    def _create(number: int, passed: bool = False, output: str = "value: 50") -> Attempt:
        return Attempt(
            attempt_number=number,
            output=output,
            value=50,
            validation_result=ValidationResult(
                passed=passed,
                message="Validation passed" if passed else "Validation failed: 50 <= 100",
                actual_value=50,
                expected_value=100,
            ),
            duration=0.25,
        )

    return _create
