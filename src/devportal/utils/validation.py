"""Input validation helpers shared with adjacent reporting endpoints."""

import re

from devportal.core.exceptions import InvalidPeriodError

_PERIOD_PATTERN = re.compile(r"[1-9][0-9]*d")


def validate_period(value: str) -> int:
    """
    Validate a reporting period such as ``30d`` and return its day count.

    Raises:
        InvalidPeriodError: If the value is not a positive day count ending in 'd'
    """
    if not isinstance(value, str) or not _PERIOD_PATTERN.fullmatch(value):
        raise InvalidPeriodError(str(value))
    return int(value[:-1])


def is_valid_period(value: str) -> bool:
    return isinstance(value, str) and bool(_PERIOD_PATTERN.fullmatch(value))
