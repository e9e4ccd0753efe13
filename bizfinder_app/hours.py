"""Opening-hours helpers. Days are numbered 0 = Sunday … 6 = Saturday."""

from datetime import datetime

DAY_NAMES = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
WEEKDAYS = {1, 2, 3, 4, 5}
WEEKEND = {0, 6}


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


def weekday_index(moment: datetime) -> int:
    # datetime.weekday() is Monday-based
    return (moment.weekday() + 1) % 7


def is_always_open(open_time: str, close_time: str) -> bool:
    return open_time == "00:00" and close_time == "24:00"


def is_business_open(open_time: str, close_time: str, days: list[int], now: datetime | None = None) -> bool:
    """
    Whether a business is open at ``now``.

    ``close_time`` earlier than ``open_time`` means the window runs past
    midnight; both ends are inclusive.
    """
    now = now or datetime.now()
    if weekday_index(now) not in days:
        return False
    if is_always_open(open_time, close_time):
        return True

    current = now.hour * 60 + now.minute
    opens, closes = _minutes(open_time), _minutes(close_time)
    if closes < opens:
        return current >= opens or current <= closes
    return opens <= current <= closes


def format_time(hhmm: str) -> str:
    """``"13:05"`` → ``"1:05 PM"``."""
    hours, minutes = hhmm.split(":")
    hour = int(hours)
    suffix = "PM" if 12 <= hour < 24 else "AM"
    return f"{hour % 12 or 12}:{minutes} {suffix}"


def format_days(days: list[int]) -> str:
    unique = set(days)
    if len(unique) == 7:
        return "Every day"
    if unique == WEEKDAYS:
        return "Weekdays"
    if unique == WEEKEND:
        return "Weekends"
    return ", ".join(DAY_NAMES[d] for d in sorted(unique))


def format_opening_hours(open_time: str, close_time: str, days: list[int]) -> str:
    if is_always_open(open_time, close_time) and len(set(days)) == 7:
        return "24/7"
    return f"{format_days(days)}: {format_time(open_time)} - {format_time(close_time)}"
