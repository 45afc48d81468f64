"""Time helpers.

Services take a ``clock`` callable so that expiry logic can be driven from
tests without sleeping.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(timezone.utc)
