"""Calendar-day and ISO-week keys.

All keys are computed in local calendar time. Aware datetimes are converted
to the local zone first, naive datetimes are taken as already local.
"""
from datetime import date, datetime, timedelta
from typing import Union

DateLike = Union[date, datetime, str]


def to_local_date(value: DateLike) -> date:
    """Resolve a date, datetime or ISO string to a local calendar date."""
    if isinstance(value, str):
        text = value.strip()
        if len(text) == 10:
            return date.fromisoformat(text)
        value = datetime.fromisoformat(text.replace("Z", "+00:00"))
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()
    return value


def day_key(value: DateLike) -> str:
    """Canonical ``YYYY-MM-DD`` key for the local calendar day."""
    return to_local_date(value).isoformat()


def week_key(value: DateLike) -> str:
    """ISO-8601 week key ``YYYY-Www`` (Monday start, Thursday decides the year)."""
    iso_year, iso_week, _ = to_local_date(value).isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def today_key(today: date | None = None) -> str:
    return day_key(today or date.today())


def shift_day(value: DateLike, days: int) -> str:
    """Day key ``days`` calendar days after ``value`` (negative goes back)."""
    return (to_local_date(value) + timedelta(days=days)).isoformat()
