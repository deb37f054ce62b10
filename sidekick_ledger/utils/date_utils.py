"""Date manipulation utilities"""

import math
from datetime import datetime, timedelta, timezone

SECONDS_PER_DAY = 24 * 60 * 60


def utcnow() -> datetime:
    """Timezone-aware current time in UTC"""
    return datetime.now(timezone.utc)


def from_unix(timestamp: float) -> datetime:
    """Convert Torn's unix-second timestamps to aware datetimes"""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def elapsed_days(start: datetime, end: datetime) -> float:
    """Fractional days between two datetimes (negative if end precedes start)"""
    return (end - start).total_seconds() / SECONDS_PER_DAY


def whole_days_until(target: datetime, now: datetime) -> int:
    """Days until target, rounded up so that any remainder counts as a day"""
    return math.ceil(elapsed_days(now, target))


def whole_days_since(moment: datetime, now: datetime) -> int:
    return math.floor(elapsed_days(moment, now))


def hours_ago(now: datetime, hours: float) -> datetime:
    return now - timedelta(hours=hours)
