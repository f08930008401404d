"""Validation of user-entered start and end times."""
import re
from datetime import datetime
from typing import Optional

from lifeflow.models import ValidationResult

TIME_FORMATS = [
    ('%Y-%m-%d %H:%M:%S', re.compile(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$')),
    ('%Y-%m-%d %H:%M', re.compile(r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$')),
    ('%Y-%m-%d', re.compile(r'^\d{4}-\d{2}-\d{2}$')),
    ('%H:%M:%S', re.compile(r'^\d{2}:\d{2}:\d{2}$')),
    ('%H:%M', re.compile(r'^\d{2}:\d{2}$')),
]

DATE_PREFIX_RE = re.compile(r'^\d{4}-\d{2}-\d{2}')

START_WITHOUT_DATE = 'start time has no date, so end time must not have one either'
INVALID_FORMAT = 'invalid time format'
END_NOT_AFTER_START = 'end time must be after start time'


def validate_time_format(value: Optional[str]) -> bool:
    """
    Check that a time string uses one of the accepted layouts.

    Empty values are valid: a story may have no start or end time.
    """
    if not value or not value.strip():
        return True

    value = value.strip()
    return any(pattern.match(value) for _, pattern in TIME_FORMATS)


def validate_time_range(start_time: Optional[str], end_time: Optional[str]) -> ValidationResult:
    """
    Check that a start/end pair is coherent.

    Args:
        start_time: Raw start time
        end_time: Raw end time

    Returns:
        ValidationResult with an error message when the pair is rejected
    """
    if not start_time or not end_time:
        return ValidationResult(valid=True)

    start_has_date = bool(DATE_PREFIX_RE.match(start_time.strip()))
    end_has_date = bool(DATE_PREFIX_RE.match(end_time.strip()))

    if not start_has_date and end_has_date:
        return ValidationResult(valid=False, error=START_WITHOUT_DATE)

    if start_has_date and end_has_date:
        start = _parse_datetime(start_time)
        end = _parse_datetime(end_time)
        if start is None or end is None:
            return ValidationResult(valid=False, error=INVALID_FORMAT)
        if end <= start:
            return ValidationResult(valid=False, error=END_NOT_AFTER_START)

    return ValidationResult(valid=True)


def _parse_datetime(value: str) -> Optional[datetime]:
    value = value.strip()
    for fmt, pattern in TIME_FORMATS[:3]:
        if not pattern.match(value):
            continue
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            return None
    return None
