"""Date manipulation utilities"""

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Timezone-aware current UTC time"""
    return datetime.now(timezone.utc)


def as_calendar_date(value: date | datetime) -> date:
    """Drop the time component; datetime is a subclass of date so check it first"""
    if isinstance(value, datetime):
        return value.date()
    return value
