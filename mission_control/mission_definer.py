"""
mission_control.mission_definer - Mission Definition

This module provides the MissionDefiner class, which validates raw mission
parameters and locks them into a new PENDING Mission.

Criteria may be given as one of the criteria dataclasses or as a dict with a
"strategy" key. Dict keys are accepted in snake_case or camelCase
(e.g. "expected_code" or "expectedCode"). Any missing or mistyped required
field raises InvalidCriteriaError and no mission is created.
"""

import logging
import uuid
from typing import Any, Dict, Optional, Union

from .errors import InvalidCriteriaError
from .models import (
    DEFAULT_MAX_ATTEMPTS,
    AnyCriteria,
    ExitCodeCriteria,
    KeywordCriteria,
    Mission,
    MissionConfig,
    MissionState,
    NumericCriteria,
    NumericOperator,
    ValidationStrategy,
    is_number,
)

logger = logging.getLogger(__name__)

CriteriaInput = Union[AnyCriteria, Dict[str, Any]]

_MISSING = object()


def _field(data: Dict[str, Any], snake: str, camel: Optional[str] = None) -> Any:
    """Look up a field by its snake_case name, falling back to camelCase."""
    if snake in data:
        return data[snake]
    if camel and camel in data:
        return data[camel]
    return _MISSING


def _parse_operator(raw: Any) -> NumericOperator:
    if isinstance(raw, NumericOperator):
        return raw
    if isinstance(raw, str):
        try:
            return NumericOperator(raw.strip())
        except ValueError:
            pass
        try:
            return NumericOperator[raw.strip().upper()]
        except KeyError:
            pass
    raise InvalidCriteriaError(f"Unknown operator: {raw}")


def parse_criteria(criteria: CriteriaInput) -> AnyCriteria:
    """
    Validate criteria input and build the matching criteria object.

    Args:
        criteria: Criteria dataclass or raw dict

    Returns:
        NumericCriteria, ExitCodeCriteria or KeywordCriteria

    Raises:
        InvalidCriteriaError: If the strategy is unknown or a required field
            is absent or has the wrong type
    """
    data = criteria.to_dict() if hasattr(criteria, "to_dict") else criteria
    if not isinstance(data, dict):
        raise InvalidCriteriaError("Criteria must be a mapping")

    raw_strategy = data.get("strategy")
    if not raw_strategy:
        raise InvalidCriteriaError("Strategy must be specified")
    if isinstance(raw_strategy, ValidationStrategy):
        strategy = raw_strategy
    else:
        try:
            strategy = ValidationStrategy(str(raw_strategy).upper())
        except ValueError:
            raise InvalidCriteriaError(f"Unknown strategy: {raw_strategy}")

    if strategy is ValidationStrategy.NUMERIC:
        threshold = _field(data, "threshold")
        if not is_number(threshold):
            raise InvalidCriteriaError("NUMERIC strategy requires threshold (number)")
        operator = _field(data, "operator")
        if operator is _MISSING or operator is None or operator == "":
            raise InvalidCriteriaError("NUMERIC strategy requires operator")
        metric_name = _field(data, "metric_name", "metricName")
        if metric_name is not _MISSING and metric_name is not None and not isinstance(metric_name, str):
            raise InvalidCriteriaError("NUMERIC metricName must be a string")
        return NumericCriteria(
            operator=_parse_operator(operator),
            threshold=threshold,
            metric_name=None if metric_name is _MISSING else metric_name,
        )

    if strategy is ValidationStrategy.EXIT_CODE:
        expected_code = _field(data, "expected_code", "expectedCode")
        if not isinstance(expected_code, int) or isinstance(expected_code, bool):
            raise InvalidCriteriaError("EXIT_CODE strategy requires expectedCode (integer)")
        command = _field(data, "command")
        return ExitCodeCriteria(
            expected_code=expected_code,
            command=None if command is _MISSING else command,
        )

    keyword = _field(data, "keyword")
    if not isinstance(keyword, str) or len(keyword) == 0:
        raise InvalidCriteriaError("KEYWORD strategy requires non-empty keyword (string)")
    must_contain = _field(data, "must_contain", "mustContain")
    if not isinstance(must_contain, bool):
        raise InvalidCriteriaError("KEYWORD strategy requires mustContain (boolean)")
    case_sensitive = _field(data, "case_sensitive", "caseSensitive")
    if case_sensitive is _MISSING or case_sensitive is None:
        case_sensitive = True
    elif not isinstance(case_sensitive, bool):
        raise InvalidCriteriaError("KEYWORD caseSensitive must be a boolean")
    return KeywordCriteria(
        keyword=keyword,
        must_contain=must_contain,
        case_sensitive=case_sensitive,
    )


class MissionDefiner:
    """
    Builds validated missions.

    Usage:
        definer = MissionDefiner()
        mission = definer.define_mission(
            goal="Reach 90% coverage",
            criteria={"strategy": "NUMERIC", "operator": ">=", "threshold": 90},
            max_attempts=5,
        )
    """

    def define_mission(
        self,
        goal: str,
        criteria: CriteriaInput,
        max_attempts: Optional[int] = None,
        enable_checkpoints: bool = False,
        checkpoint_frequency: int = 5,
        attempt_timeout: Optional[float] = None,
        mission_id: Optional[str] = None,
    ) -> Mission:
        """
        Validate parameters and create a PENDING mission.

        Args:
            goal: Natural language goal description
            criteria: Validation criteria (dataclass or dict)
            max_attempts: Attempt budget (default 10)
            enable_checkpoints: Store a checkpoint every checkpoint_frequency attempts
            checkpoint_frequency: Attempts between checkpoints
            attempt_timeout: Informational per-attempt timeout in seconds
            mission_id: Explicit id; a uuid4 is generated when omitted

        Returns:
            New Mission in the PENDING state

        Raises:
            InvalidCriteriaError: If any parameter is invalid
        """
        parsed = parse_criteria(criteria)

        if max_attempts is None:
            max_attempts = DEFAULT_MAX_ATTEMPTS
        if not isinstance(max_attempts, int) or isinstance(max_attempts, bool) or max_attempts < 1:
            raise InvalidCriteriaError(f"maxAttempts must be an integer >= 1, got {max_attempts!r}")
        if not isinstance(checkpoint_frequency, int) or checkpoint_frequency < 1:
            raise InvalidCriteriaError(
                f"checkpointFrequency must be an integer >= 1, got {checkpoint_frequency!r}"
            )

        config = MissionConfig(
            id=mission_id or str(uuid.uuid4()),
            goal=goal,
            criteria=parsed,
            max_attempts=max_attempts,
            enable_checkpoints=enable_checkpoints,
            checkpoint_frequency=checkpoint_frequency,
            attempt_timeout=attempt_timeout,
        )

        mission = Mission(config=config, state=MissionState.PENDING)
        logger.debug(f"Defined mission {config.id} ({parsed.strategy.value}, max_attempts={max_attempts})")
        return mission
