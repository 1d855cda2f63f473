# app/utils/time_utils.py
from datetime import date, datetime, time
from typing import Tuple


def local_now() -> datetime:
    """Naive server-local wall clock, microsecond resolution."""
    return datetime.now()


def local_day_bounds(day: date) -> Tuple[datetime, datetime]:
    """[day 00:00:00.000, day 23:59:59.999] in server-local time."""
    start = datetime.combine(day, time.min)
    end = datetime.combine(day, time(23, 59, 59, 999000))
    return start, end
