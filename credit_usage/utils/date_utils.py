"""Date and instant manipulation utilities"""

from datetime import date, datetime, time, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now"""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC so all comparisons are between aware instants"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_instant(value: object) -> datetime | None:
    """
    Coerce a date-like value into an aware datetime.

    Accepts datetime, date (midnight UTC) and ISO-8601 strings, including the
    trailing "Z" and "YYYY-MM-DD HH:MM:SS" forms emitted by the API.
    Returns None for anything that cannot be interpreted.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return ensure_aware(datetime.fromisoformat(text))
        except ValueError:
            return None
    return None


def add_elapsed(value: datetime, delta: timedelta) -> datetime:
    """Add real elapsed time, so a day across a DST change is still 24 hours"""
    return (value.astimezone(timezone.utc) + delta).astimezone(value.tzinfo)


def start_of_next_day(value: datetime) -> datetime:
    """Midnight at the start of the day after value, in value's timezone"""
    next_day = value.date() + timedelta(days=1)
    return datetime.combine(next_day, time.min, tzinfo=value.tzinfo)


def first_day_of_next_month(value: datetime) -> datetime:
    """First instant of the month following value's month (December rolls the year)"""
    if value.month == 12:
        return datetime(value.year + 1, 1, 1, tzinfo=value.tzinfo)
    return datetime(value.year, value.month + 1, 1, tzinfo=value.tzinfo)


def first_day_of_next_year(value: datetime) -> datetime:
    """January 1 of the year following value's year"""
    return datetime(value.year + 1, 1, 1, tzinfo=value.tzinfo)


def month_key(value: datetime) -> str:
    """Calendar month bucket key, e.g. 2024-01"""
    return f"{value.year:04d}-{value.month:02d}"
