"""Next-occurrence arithmetic for recurring tasks.

Every function here is pure: the result depends only on the anchor date and the
pattern. Patterns are expected to have passed :func:`validation.validate`.

Weekdays follow the stored convention 0=Sunday .. 6=Saturday and months are
0-based (0=January); both are translated to :mod:`datetime` values locally.
"""
from __future__ import annotations

import calendar
from datetime import MAXYEAR, date, datetime, timedelta
from typing import Iterator, Optional

from .entities import RecurrencePattern
from .enums import Frequency
from .errors import RecurrenceInvariantError

MAX_ATTEMPTS = 2
_MAX_ROLL_MONTHS = 12
_MAX_ROLL_YEARS = 400


def next_occurrence(anchor: date, pattern: RecurrencePattern) -> Optional[date]:
    """Return the first occurrence strictly after ``anchor``, or None when exhausted."""
    anchor = _as_date(anchor)
    end_date = _as_date(pattern.end_date) if pattern.end_date is not None else None
    step = _STEPS[Frequency(pattern.frequency)]

    candidate: Optional[date] = anchor
    for _ in range(MAX_ATTEMPTS):
        try:
            candidate = step(candidate, pattern, end_date)
        except OverflowError:
            return None
        if candidate is None:
            return None
        if candidate > anchor:
            break
    else:
        raise RecurrenceInvariantError(
            f"{pattern.frequency} pattern did not advance past {anchor.isoformat()}"
        )

    if end_date is not None and candidate > end_date:
        return None
    return candidate


def iter_occurrences(
    anchor: date, pattern: RecurrencePattern, until: date
) -> Iterator[date]:
    current = next_occurrence(anchor, pattern)
    while current is not None and current <= until:
        yield current
        current = next_occurrence(current, pattern)


def _next_daily(anchor: date, pattern: RecurrencePattern, end_date) -> date:
    return anchor + timedelta(days=pattern.interval)


def _next_weekly(anchor: date, pattern: RecurrencePattern, end_date) -> date:
    days = sorted(set(pattern.days_of_week))
    current = anchor.isoweekday() % 7

    later = [day for day in days if day > current]
    if later:
        return anchor + timedelta(days=later[0] - current)

    # Wrap to the first listed day, skipping interval - 1 extra weeks.
    offset = (7 - current) + days[0] + (pattern.interval - 1) * 7
    return anchor + timedelta(days=offset)


def _next_monthly(anchor: date, pattern: RecurrencePattern, end_date) -> Optional[date]:
    days = sorted(set(pattern.days_of_month))

    month_length = _days_in_month(anchor.year, anchor.month)
    for day in days:
        if anchor.day < day <= month_length:
            return anchor.replace(day=day)

    year, month = _shift_month(anchor.year, anchor.month, pattern.interval)
    for _ in range(_MAX_ROLL_MONTHS):
        if year > MAXYEAR or _past_end(year, month, end_date):
            return None
        if days[0] <= _days_in_month(year, month):
            return date(year, month, days[0])
        year, month = _shift_month(year, month, 1)
    return None


def _next_yearly(anchor: date, pattern: RecurrencePattern, end_date) -> Optional[date]:
    months = sorted({month + 1 for month in pattern.months_of_year})
    days = sorted(set(pattern.days_of_month)) or [_as_date(pattern.start_date).day]

    for month in months:
        if month < anchor.month:
            continue
        for day in days:
            if month == anchor.month and day <= anchor.day:
                continue
            if day <= _days_in_month(anchor.year, month):
                return date(anchor.year, month, day)

    year = anchor.year
    for _ in range(_MAX_ROLL_YEARS):
        year += pattern.interval
        if year > MAXYEAR or _past_end(year, 1, end_date):
            return None
        found = _first_in_year(year, months, days)
        if found is not None:
            return found
    return None


def _first_in_year(year: int, months: list[int], days: list[int]) -> Optional[date]:
    for month in months:
        month_length = _days_in_month(year, month)
        for day in days:
            if day <= month_length:
                return date(year, month, day)
    return None


def _shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    year = year + (month - 1 + months) // 12
    month = (month - 1 + months) % 12 + 1
    return year, month


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _past_end(year: int, month: int, end_date: Optional[date]) -> bool:
    return end_date is not None and (year, month) > (end_date.year, end_date.month)


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


_STEPS = {
    Frequency.DAILY: _next_daily,
    Frequency.WEEKLY: _next_weekly,
    Frequency.MONTHLY: _next_monthly,
    Frequency.YEARLY: _next_yearly,
}
