"""Time parsing helpers shared by availability and booking"""

from datetime import datetime
from zoneinfo import ZoneInfo

from ...config import CLINIC_TIMEZONE
from ...models import WEEKDAYS


def to_minutes(time_str: str) -> int:
    """Convert "HH:MM" to minutes since midnight"""
    hours, minutes = time_str.split(":")
    return int(hours) * 60 + int(minutes)


def to_clinic_time(value: datetime) -> datetime:
    """
    Normalize an instant to naive clinic wall-clock time.

    Naive datetimes are already clinic wall-clock; aware ones are converted
    into CLINIC_TIMEZONE first.
    """
    if value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(CLINIC_TIMEZONE)).replace(tzinfo=None)


def weekday_and_time(value: datetime) -> tuple[str, str]:
    """Return (weekday name, "HH:MM") of an instant on the clinic clock"""
    local = to_clinic_time(value)
    return WEEKDAYS[local.weekday()], local.strftime("%H:%M")


def contains(start_time: str, end_time: str, time_of_day: str) -> bool:
    """Half-open containment: start <= t < end"""
    minutes = to_minutes(time_of_day)
    return to_minutes(start_time) <= minutes < to_minutes(end_time)
