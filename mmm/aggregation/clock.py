"""Time sources for date-relative filters."""

from collections.abc import Callable
from datetime import date

Clock = Callable[[], date]


def system_clock() -> date:
    """Today's date from the wall clock."""
    return date.today()


def fixed_clock(today: date) -> Clock:
    """A clock frozen at ``today``."""
    def _clock() -> date:
        return today
    return _clock
