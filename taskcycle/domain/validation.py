"""Structural checks for recurrence patterns.

``validate`` inspects an already built :class:`RecurrencePattern`.
``parse_pattern`` is the entry point for untrusted input: it coerces raw field
values (as they arrive from a request body or a stored document) into a pattern
and validates the result, so callers only ever see ``ValidationError``.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Any, Iterable, Mapping

from .entities import RecurrencePattern
from .enums import Frequency
from .errors import ValidationError

MAX_INTERVAL = 365

# Longest each month (0=January) can be, leap years included.
MAX_MONTH_DAYS = (31, 29, 31, 30, 31, 30, 31, 31, 30, 31, 30, 31)

PATTERN_FIELDS = (
    "frequency",
    "interval",
    "days_of_week",
    "days_of_month",
    "months_of_year",
    "start_date",
    "end_date",
    "occurrences",
)


def validate(pattern: RecurrencePattern) -> None:
    frequency = _coerce_frequency(pattern.frequency)

    if not _is_int(pattern.interval) or not 1 <= pattern.interval <= MAX_INTERVAL:
        raise ValidationError("interval", f"must be an integer between 1 and {MAX_INTERVAL}")

    if pattern.occurrences is not None and (
        not _is_int(pattern.occurrences) or pattern.occurrences < 1
    ):
        raise ValidationError("occurrences", "must be a positive integer")

    if frequency == Frequency.WEEKLY:
        _check_members("days_of_week", pattern.days_of_week, 0, 6, required=True)
    elif frequency == Frequency.MONTHLY:
        _check_members("days_of_month", pattern.days_of_month, 1, 31, required=True)
    elif frequency == Frequency.YEARLY:
        _check_members("months_of_year", pattern.months_of_year, 0, 11, required=True)
        if pattern.days_of_month:
            _check_members("days_of_month", pattern.days_of_month, 1, 31, required=True)
            if not any(
                day <= MAX_MONTH_DAYS[month]
                for month in pattern.months_of_year
                for day in pattern.days_of_month
            ):
                raise ValidationError(
                    "days_of_month", "no listed day exists in any listed month"
                )
        elif isinstance(pattern.start_date, date):
            start_day = _as_date(pattern.start_date).day
            if not any(start_day <= MAX_MONTH_DAYS[month] for month in pattern.months_of_year):
                raise ValidationError("start_date", "day does not exist in any listed month")

    if not isinstance(pattern.start_date, date):
        raise ValidationError("start_date", "is required")
    if pattern.end_date is not None:
        if not isinstance(pattern.end_date, date):
            raise ValidationError("end_date", "must be a date")
        if _as_date(pattern.start_date) >= _as_date(pattern.end_date):
            raise ValidationError("end_date", "must be after start date")


def parse_pattern(
    fields: Mapping[str, Any], base: RecurrencePattern | None = None
) -> RecurrencePattern:
    """Build a validated pattern from raw values, merged over ``base`` if given."""
    if not isinstance(fields, Mapping):
        raise ValidationError("pattern", "must be a mapping of field values")

    values: dict[str, Any] = {}
    for name in PATTERN_FIELDS:
        if name in fields:
            values[name] = _COERCERS[name](name, fields[name])

    if base is None:
        if "frequency" not in values:
            raise ValidationError("frequency", "is required")
        if values.get("start_date") is None:
            raise ValidationError("start_date", "is required")
        pattern = RecurrencePattern(**values)
    else:
        if "start_date" in values and values["start_date"] is None:
            raise ValidationError("start_date", "is required")
        pattern = replace(base, **values)

    validate(pattern)
    return pattern


def changed_fields(old: RecurrencePattern, new: RecurrencePattern) -> set[str]:
    return {name for name in PATTERN_FIELDS if getattr(old, name) != getattr(new, name)}


def _check_members(
    field: str, values: Iterable[int], low: int, high: int, *, required: bool
) -> None:
    if values is None:
        values = ()
    if isinstance(values, (str, bytes, Mapping)) or not isinstance(values, Iterable):
        raise ValidationError(field, "must be a list of integers")
    values = tuple(values)
    if required and not values:
        raise ValidationError(field, "must not be empty")
    for value in values:
        if not _is_int(value) or not low <= value <= high:
            raise ValidationError(field, f"values must be between {low} and {high}")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value


def _coerce_frequency(value: Any) -> Frequency:
    try:
        return Frequency(value)
    except (TypeError, ValueError):
        raise ValidationError("frequency", "invalid frequency") from None


def _coerce_int(field: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(field, "must be an integer")
    if _is_int(value):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            raise ValidationError(field, "must be an integer") from None
    raise ValidationError(field, "must be an integer")


def _coerce_optional_int(field: str, value: Any) -> int | None:
    return None if value is None else _coerce_int(field, value)


def _coerce_int_set(field: str, value: Any) -> tuple[int, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes, Mapping)) or not isinstance(value, Iterable):
        raise ValidationError(field, "must be a list of integers")
    return tuple(sorted({_coerce_int(field, item) for item in value}))


def _coerce_date(field: str, value: Any) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            raise ValidationError(field, "must be an ISO date") from None
    raise ValidationError(field, "must be a date")


_COERCERS = {
    "frequency": lambda _field, value: _coerce_frequency(value),
    "interval": _coerce_int,
    "days_of_week": _coerce_int_set,
    "days_of_month": _coerce_int_set,
    "months_of_year": _coerce_int_set,
    "start_date": _coerce_date,
    "end_date": _coerce_date,
    "occurrences": _coerce_optional_int,
}
