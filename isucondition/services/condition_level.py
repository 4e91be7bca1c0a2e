"""
Condition level classification.

Isu report their condition as `name=true|false` tokens in a single string.
The level is decided by how many flags are active, never by which ones, so
counting the literal "=true" marker is the whole classification.
"""

import re

from isucondition.domain.models import ConditionLevel
from isucondition.errors import ClassificationError, InvalidConditionFormatError
from isucondition.log import get_logger

logger = get_logger(__name__)

TRUE_MARKER = "=true"

_TOKEN_SEPARATOR = re.compile(r"[,;]")

_LEVEL_BY_TRUE_COUNT = {
    0: ConditionLevel.INFO,
    1: ConditionLevel.WARNING,
    2: ConditionLevel.WARNING,
    3: ConditionLevel.CRITICAL,
}

# Per-reading contribution to an hourly graph score
LEVEL_SCORES = {
    ConditionLevel.INFO: 3,
    ConditionLevel.WARNING: 2,
    ConditionLevel.CRITICAL: 1,
}


def count_true_flags(condition: str) -> int:
    """Count non-overlapping occurrences of "=true" in the encoded string."""
    return condition.count(TRUE_MARKER)


def calculate_condition_level(condition: str) -> ConditionLevel:
    """
    Classify a condition string into a severity level.

    Raises:
        ClassificationError: if the number of active flags is not 0 to 3.
    """
    true_count = count_true_flags(condition)
    level = _LEVEL_BY_TRUE_COUNT.get(true_count)
    if level is None:
        logger.error("condition_level_unexpected", true_count=true_count, condition=condition)
        raise ClassificationError(condition, true_count)
    return level


def parse_condition_flags(condition: str) -> dict[str, bool]:
    """
    Parse `name=true|false` tokens separated by "," or ";".

    Raises:
        InvalidConditionFormatError: on an empty string, an empty name, a
            repeated name or a value other than the literals true/false.
    """
    flags: dict[str, bool] = {}
    for token in _TOKEN_SEPARATOR.split(condition):
        name, sep, value = token.strip().partition("=")
        if not sep or not name:
            raise InvalidConditionFormatError(f"invalid condition token {token!r}")
        if value not in ("true", "false"):
            raise InvalidConditionFormatError(f"invalid value for {name}: {value!r}")
        if name in flags:
            raise InvalidConditionFormatError(f"duplicated condition flag {name}")
        flags[name] = value == "true"
    return flags


def is_valid_condition_format(condition: str) -> bool:
    try:
        parse_condition_flags(condition)
    except InvalidConditionFormatError:
        return False
    return True
