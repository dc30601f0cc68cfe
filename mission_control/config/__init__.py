"""
mission_control.config - Configuration Loading

This module provides the StateConfig consumed by the persistent store and
helpers to build it from the bundled YAML defaults plus environment
overrides.

Configuration Files:
    - state_config.yaml: Default persistence, retention and logging settings

Environment Variables:
    MISSION_CONTROL_STATE_DIR: State directory path
    MISSION_CONTROL_ENABLE_PERSISTENCE: "false" disables persistence
    MISSION_CONTROL_COMPLETED_RETENTION_DAYS: Days to keep COMPLETED missions
    MISSION_CONTROL_FAILED_RETENTION_DAYS: Days to keep FAILED missions
    MISSION_CONTROL_LOG_LEVEL: Level name (DEBUG, INFO, ...) or number
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

logger = logging.getLogger(__name__)

# Configuration directory
CONFIG_DIR = Path(__file__).parent

# Default configuration file path
STATE_CONFIG_PATH = CONFIG_DIR / "state_config.yaml"

ENV_PREFIX = "MISSION_CONTROL_"

# Numeric levels used by older deployments (0=DEBUG .. 4=CRITICAL)
_LEGACY_LEVELS = {
    0: logging.DEBUG,
    1: logging.INFO,
    2: logging.WARNING,
    3: logging.ERROR,
    4: logging.CRITICAL,
}


@dataclass
class StateConfig:
    """
    Settings for the persistent store.

    Attributes:
        state_dir: Directory holding state.json and its backup
        enable_persistence: When False the store is memory-only
        completed_retention_days: Age after which COMPLETED missions are swept
        failed_retention_days: Age after which FAILED missions are swept
        log_level: Logging level applied to the mission_control logger
        save_debounce_seconds: Quiet period before a background flush
        max_checkpoints: Checkpoints kept per mission (oldest dropped first)
    """
    state_dir: Path = Path("./.state")
    enable_persistence: bool = True
    completed_retention_days: float = 30
    failed_retention_days: float = 90
    log_level: Optional[Union[int, str]] = None
    save_debounce_seconds: float = 1.0
    max_checkpoints: int = 10

    def __post_init__(self):
        self.state_dir = Path(self.state_dir)


def load_yaml(path: Path) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed YAML content as a dictionary (empty if the file is missing)

    Raises:
        yaml.YAMLError: If the file contains invalid YAML
    """
    if not path.exists():
        logger.warning(f"Configuration file not found: {path}")
        return {}

    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def _parse_bool(value: str) -> bool:
    return value.strip().lower() not in ('false', '0', 'no', 'off')


def _coerce_bool(value: Any) -> bool:
    # Quoted YAML scalars arrive as strings
    if isinstance(value, str):
        return _parse_bool(value)
    return bool(value)


def resolve_log_level(level: Union[int, str, None]) -> Optional[int]:
    """
    Translate a configured level into a logging module level.

    Accepts logging names ("DEBUG", "warn"), logging numbers (10, 20, ...)
    and the short 0-4 scale.
    """
    if level is None or level == "":
        return None
    if isinstance(level, str):
        text = level.strip()
        if text.lstrip('-').isdigit():
            level = int(text)
        else:
            name = text.upper()
            if name == "WARN":
                name = "WARNING"
            resolved = logging.getLevelName(name)
            if not isinstance(resolved, int):
                raise ValueError(f"Unknown log level: {level}")
            return resolved
    if level in _LEGACY_LEVELS:
        return _LEGACY_LEVELS[level]
    return int(level)


def configure_log_level(level: Union[int, str, None]) -> None:
    """Apply a verbosity level to the mission_control logger hierarchy."""
    resolved = resolve_log_level(level)
    if resolved is None:
        return
    logging.getLogger("mission_control").setLevel(resolved)
    logger.debug(f"Log level set to {logging.getLevelName(resolved)}")


def load_state_config(
    path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> StateConfig:
    """
    Build a StateConfig from YAML defaults and environment overrides.

    Args:
        path: YAML file to read (defaults to the bundled state_config.yaml)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Populated StateConfig
    """
    data = load_yaml(path or STATE_CONFIG_PATH)
    env = os.environ if environ is None else environ

    state = data.get('state', {}) or {}
    retention = data.get('retention', {}) or {}
    logging_cfg = data.get('logging', {}) or {}

    config = StateConfig(
        state_dir=Path(state.get('state_dir', './.state')),
        enable_persistence=_coerce_bool(state.get('enable_persistence', True)),
        completed_retention_days=retention.get('completed_days', 30),
        failed_retention_days=retention.get('failed_days', 90),
        log_level=logging_cfg.get('level'),
        save_debounce_seconds=float(state.get('save_debounce_seconds', 1.0)),
        max_checkpoints=int(state.get('max_checkpoints', 10)),
    )

    if env.get(f"{ENV_PREFIX}STATE_DIR"):
        config.state_dir = Path(env[f"{ENV_PREFIX}STATE_DIR"])
    if env.get(f"{ENV_PREFIX}ENABLE_PERSISTENCE"):
        config.enable_persistence = _parse_bool(env[f"{ENV_PREFIX}ENABLE_PERSISTENCE"])
    if env.get(f"{ENV_PREFIX}COMPLETED_RETENTION_DAYS"):
        config.completed_retention_days = float(env[f"{ENV_PREFIX}COMPLETED_RETENTION_DAYS"])
    if env.get(f"{ENV_PREFIX}FAILED_RETENTION_DAYS"):
        config.failed_retention_days = float(env[f"{ENV_PREFIX}FAILED_RETENTION_DAYS"])
    if env.get(f"{ENV_PREFIX}LOG_LEVEL"):
        config.log_level = env[f"{ENV_PREFIX}LOG_LEVEL"]

    return config


__all__ = [
    'CONFIG_DIR',
    'STATE_CONFIG_PATH',
    'StateConfig',
    'load_yaml',
    'load_state_config',
    'resolve_log_level',
    'configure_log_level',
]
