"""
ISO-8601 week helpers.

Monday is day 1 and week 1 is the week holding the year's first Thursday.
`iso_week_number` is the one the rest of the code uses;
`iso_week_number_arithmetic` is an independent calculation kept as a
cross-check (see tools/testing/test_iso_week.py).
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Tuple, Union

DateLike = Union[date, datetime]


def _as_date(d: DateLike) -> date:
    return d.date() if isinstance(d, datetime) else d


def iso_week_number(d: DateLike) -> int:
    return _as_date(d).isocalendar()[1]


def iso_week_number_arithmetic(d: DateLike) -> int:
    """Week number from the Thursday of the same week, no calendar library."""
    day = _as_date(d)
    weekday = day.weekday()  # Monday = 0
    thursday = day + timedelta(days=3 - weekday)
    jan_first = date(thursday.year, 1, 1)
    return 1 + (thursday - jan_first).days // 7


def week_bounds(d: DateLike) -> Tuple[datetime, datetime]:
    """Monday 00:00:00 to Sunday 23:59:59.999999 of the week holding ``d``."""
    day = _as_date(d)
    monday = day - timedelta(days=day.weekday())
    start = datetime.combine(monday, time.min)
    end = datetime.combine(monday + timedelta(days=6), time.max)
    return start, end
