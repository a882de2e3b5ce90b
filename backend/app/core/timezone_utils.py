"""
Timezone utilities for the SkillSwap session platform.

All instants are stored and compared in UTC. The per-session timezone label
is informational and only validated here.
"""

from datetime import datetime, timezone
from typing import Callable

import pytz

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are treated as UTC, which is how SQLite hands back
    timezone-aware columns.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_valid_timezone(name: str) -> bool:
    """Check a timezone label against the IANA database."""
    return name in pytz.all_timezones_set
