"""
The one place weekday indices are converted.

Stored rules use Monday=0..Sunday=6 (Python's date.weekday()).
Calendar widgets on the client use Sunday=0..Saturday=6.
"""
from datetime import date


def to_internal_weekday(day: date) -> int:
    """Weekday index used by AvailabilitySlot.weekday (Monday=0)."""
    return from_sunday_based(sunday_based_weekday(day))


def sunday_based_weekday(day: date) -> int:
    """Calendar-library weekday index for a date (Sunday=0)."""
    return day.isoweekday() % 7


def from_sunday_based(weekday: int) -> int:
    """Sunday=0 index -> Monday=0 index."""
    _check_range(weekday)
    return 6 if weekday == 0 else weekday - 1


def to_sunday_based(weekday: int) -> int:
    """Monday=0 index -> Sunday=0 index."""
    _check_range(weekday)
    return 0 if weekday == 6 else weekday + 1


def _check_range(weekday):
    if not isinstance(weekday, int) or isinstance(weekday, bool) or not 0 <= weekday <= 6:
        raise ValueError(f'Weekday index out of range: {weekday!r}')
