"""
DateTime utility functions - all stored timestamps are naive UTC.
The database columns hold "YYYY-MM-DD HH:MM:SS" values without an offset.
"""
from datetime import date, datetime, timezone, timedelta
from typing import Optional

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def now_utc() -> datetime:
    """
    Current UTC time, naive and truncated to the second (the column precision).
    """
    return datetime.now(timezone.utc).replace(tzinfo=None, microsecond=0)


def to_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a datetime to naive UTC.
    Naive values are assumed to be UTC already.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_str(dt: Optional[datetime], format_str: str = DATETIME_FORMAT) -> Optional[str]:
    utc_dt = to_utc(dt)
    if utc_dt is None:
        return None
    return utc_dt.strftime(format_str)


def minutes_ago(now: datetime, minutes: int) -> datetime:
    return now - timedelta(minutes=minutes)


def years_ago(now: datetime, years: int) -> date:
    """
    Same calendar day `years` years before `now`.
    29 February falls back to 28 February in non-leap years.
    """
    today = now.date() if isinstance(now, datetime) else now
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        return today.replace(year=today.year - years, day=28)
