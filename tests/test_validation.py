from __future__ import annotations

from datetime import date

import pytest

from taskcycle.domain.entities import RecurrencePattern
from taskcycle.domain.enums import Frequency
from taskcycle.domain.errors import ValidationError
from taskcycle.domain.validation import changed_fields, parse_pattern, validate

START = date(2026, 1, 1)


@pytest.mark.parametrize(
    ("frequency", "field", "bad_values"),
    [
        (Frequency.WEEKLY, "days_of_week", [(), (7,), (-1, 2)]),
        (Frequency.MONTHLY, "days_of_month", [(), (0,), (32,)]),
        (Frequency.YEARLY, "months_of_year", [(), (12,), (-1,)]),
    ],
)
def test_constraint_sets_are_required_and_bounded(frequency, field, bad_values) -> None:
    for values in bad_values:
        pattern = RecurrencePattern(frequency=frequency, start_date=START, **{field: values})
        with pytest.raises(ValidationError) as excinfo:
            validate(pattern)
        assert excinfo.value.field == field


def test_daily_needs_no_constraint_sets() -> None:
    validate(RecurrencePattern(frequency=Frequency.DAILY, start_date=START))


def test_unknown_frequency_is_rejected() -> None:
    pattern = RecurrencePattern(frequency="hourly", start_date=START)  # type: ignore[arg-type]
    with pytest.raises(ValidationError) as excinfo:
        validate(pattern)
    assert excinfo.value.field == "frequency"
    assert excinfo.value.reason == "invalid frequency"


@pytest.mark.parametrize("interval", [0, 366, True, 1.5])
def test_interval_bounds(interval) -> None:
    pattern = RecurrencePattern(frequency=Frequency.DAILY, start_date=START, interval=interval)
    with pytest.raises(ValidationError) as excinfo:
        validate(pattern)
    assert excinfo.value.field == "interval"


def test_end_date_must_follow_start_date() -> None:
    for end_date in (START, date(2025, 12, 31)):
        pattern = RecurrencePattern(frequency=Frequency.DAILY, start_date=START, end_date=end_date)
        with pytest.raises(ValidationError) as excinfo:
            validate(pattern)
        assert excinfo.value.field == "end_date"


def test_occurrences_must_be_positive() -> None:
    pattern = RecurrencePattern(frequency=Frequency.DAILY, start_date=START, occurrences=0)
    with pytest.raises(ValidationError) as excinfo:
        validate(pattern)
    assert excinfo.value.field == "occurrences"


def test_yearly_day_that_never_exists_in_listed_months() -> None:
    pattern = RecurrencePattern(
        frequency=Frequency.YEARLY,
        start_date=START,
        months_of_year=(1,),
        days_of_month=(30, 31),
    )
    with pytest.raises(ValidationError) as excinfo:
        validate(pattern)
    assert excinfo.value.field == "days_of_month"


@pytest.mark.parametrize("months", [(1,), (1, 3, 5)])
def test_yearly_start_day_missing_from_every_listed_month(months) -> None:
    pattern = RecurrencePattern(
        frequency=Frequency.YEARLY, start_date=date(2026, 1, 31), months_of_year=months
    )
    with pytest.raises(ValidationError) as excinfo:
        validate(pattern)
    assert excinfo.value.field == "start_date"


def test_yearly_start_day_in_some_listed_month_is_accepted() -> None:
    validate(
        RecurrencePattern(
            frequency=Frequency.YEARLY, start_date=date(2026, 1, 31), months_of_year=(1, 2)
        )
    )


@pytest.mark.parametrize("days", [3, "135", {1: True}])
def test_constraint_set_that_is_not_a_list_is_rejected(days) -> None:
    pattern = RecurrencePattern(frequency=Frequency.WEEKLY, start_date=START, days_of_week=days)
    with pytest.raises(ValidationError) as excinfo:
        validate(pattern)
    assert excinfo.value.field == "days_of_week"
    assert excinfo.value.reason == "must be a list of integers"


def test_parse_pattern_coerces_raw_values() -> None:
    pattern = parse_pattern(
        {
            "frequency": "weekly",
            "interval": "2",
            "days_of_week": [5, 1, 3, 1],
            "start_date": "2026-01-01",
            "end_date": "2026-06-30T00:00:00",
            "ignored": "value",
        }
    )
    assert pattern == RecurrencePattern(
        frequency=Frequency.WEEKLY,
        interval=2,
        days_of_week=(1, 3, 5),
        start_date=date(2026, 1, 1),
        end_date=date(2026, 6, 30),
    )


@pytest.mark.parametrize(
    ("fields", "field"),
    [
        ({"start_date": "2026-01-01"}, "frequency"),
        ({"frequency": "daily"}, "start_date"),
        ({"frequency": "daily", "start_date": "yesterday"}, "start_date"),
        ({"frequency": "daily", "start_date": 20260101}, "start_date"),
        ({"frequency": "weekly", "start_date": "2026-01-01", "days_of_week": "1,2"}, "days_of_week"),
        ({"frequency": "weekly", "start_date": "2026-01-01", "days_of_week": ["x"]}, "days_of_week"),
        ({"frequency": "daily", "start_date": "2026-01-01", "interval": None}, "interval"),
        ({"frequency": ["daily"], "start_date": "2026-01-01"}, "frequency"),
        ({"frequency": "daily", "start_date": "2026-01-01", "interval": "--5"}, "interval"),
        ({"frequency": "daily", "start_date": "2026-01-01", "interval": "\N{SUPERSCRIPT TWO}"}, "interval"),
        ({"frequency": "weekly", "start_date": "2026-01-01", "days_of_week": ["--1"]}, "days_of_week"),
    ],
)
def test_parse_pattern_rejects_untrusted_garbage(fields, field) -> None:
    with pytest.raises(ValidationError) as excinfo:
        parse_pattern(fields)
    assert excinfo.value.field == field


def test_parse_pattern_merges_over_base() -> None:
    base = RecurrencePattern(frequency=Frequency.DAILY, start_date=START)
    merged = parse_pattern(
        {"frequency": "monthly", "days_of_month": [31]},
        base=base,
    )
    assert merged.frequency == Frequency.MONTHLY
    assert merged.days_of_month == (31,)
    assert merged.start_date == START
    assert changed_fields(base, merged) == {"frequency", "days_of_month"}


def test_parse_pattern_merge_still_validates() -> None:
    base = RecurrencePattern(frequency=Frequency.DAILY, start_date=START)
    with pytest.raises(ValidationError) as excinfo:
        parse_pattern({"frequency": "weekly"}, base=base)
    assert excinfo.value.field == "days_of_week"
