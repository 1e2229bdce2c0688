"""
Wall-clock access for deadline-driven flows (deposit countdowns, frozen
balance release). Routers receive the clock through ``Depends(get_clock)``
so tests can substitute a controllable one.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC timestamp, matching how SQLite hands datetimes back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def get_clock() -> Clock:
    return utcnow
