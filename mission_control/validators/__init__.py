"""
mission_control.validators - Validation Strategy Handlers

One handler per criteria variant:
    - NumericValidator: threshold comparison with float tolerance
    - ExitCodeValidator: exact exit code match
    - KeywordValidator: keyword presence/absence

get_validator() dispatches on the criteria's strategy tag.
"""

from ..models import AnyCriteria, ValidationStrategy
from .base import BaseValidator, Validator
from .exit_code import ExitCodeValidator
from .keyword import KeywordValidator
from .numeric import NumericValidator

# Validator registry for strategy lookup
VALIDATORS = {
    ValidationStrategy.NUMERIC: NumericValidator,
    ValidationStrategy.EXIT_CODE: ExitCodeValidator,
    ValidationStrategy.KEYWORD: KeywordValidator,
}


def get_validator(criteria: AnyCriteria) -> BaseValidator:
    """
    Build the validator for a criteria object.

    Args:
        criteria: Any supported criteria variant

    Returns:
        Validator bound to the criteria

    Raises:
        KeyError: If the criteria's strategy has no registered handler
    """
    validator_class = VALIDATORS[criteria.strategy]
    return validator_class(criteria)


__all__ = [
    'Validator',
    'BaseValidator',
    'NumericValidator',
    'ExitCodeValidator',
    'KeywordValidator',
    'VALIDATORS',
    'get_validator',
]
