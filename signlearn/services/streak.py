"""Consecutive-day engagement streak."""
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Iterable, Optional, Set
from signlearn.config import settings
from signlearn.constants import STREAK_MAX_DAYS


def local_today(tz: Optional[tzinfo] = None) -> date:
    """Current calendar date in the configured time zone."""
    return datetime.now(tz or settings.tzinfo).date()


def day_key(timestamp: datetime, tz: Optional[tzinfo] = None) -> str:
    """
    Normalize a timestamp to a YYYY-MM-DD key in the local time zone.

    Naive timestamps are stored as UTC and are treated as such.
    """
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(tz or settings.tzinfo).date().isoformat()


def collect_day_keys(timestamps: Iterable[Optional[datetime]], tz: Optional[tzinfo] = None) -> Set[str]:
    """Distinct day keys for the given timestamps, ignoring missing ones."""
    return {day_key(ts, tz) for ts in timestamps if ts is not None}


def calculate_streak(day_keys: Set[str], today: date, max_days: int = STREAK_MAX_DAYS) -> int:
    """
    Count consecutive days with activity, walking back from today.

    Today must be present for a nonzero streak; the walk stops at the first
    missing day and never looks further back than max_days.

    Args:
        day_keys: Set of YYYY-MM-DD strings with at least one event
        today: The local calendar date to start from
        max_days: Upper bound on the reported streak

    Returns:
        Streak length between 0 and max_days
    """
    streak = 0
    current = today
    for _ in range(max_days):
        if current.isoformat() not in day_keys:
            break
        streak += 1
        current -= timedelta(days=1)
    return streak
