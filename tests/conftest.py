from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable

import pytest

from taskcycle.domain.entities import RecurrencePattern, RecurringTaskDefinition, TaskTemplate
from taskcycle.domain.enums import Frequency

# Wednesday
NOW = datetime(2026, 1, 7, 9, 30)


def build_definition(
    definition_id: str | None = "rt-1",
    *,
    frequency: Frequency = Frequency.DAILY,
    start_date: date = date(2026, 1, 1),
    template: TaskTemplate | None = None,
    pattern: dict[str, Any] | None = None,
    **fields: Any,
) -> RecurringTaskDefinition:
    return RecurringTaskDefinition(
        id=definition_id,
        owner_id=fields.pop("owner_id", "user-1"),
        title=fields.pop("title", "Water the plants"),
        pattern=RecurrencePattern(frequency=frequency, start_date=start_date, **(pattern or {})),
        task_template=template or TaskTemplate(title="Water the plants", tags=("home",)),
        **fields,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_definition() -> Callable[..., RecurringTaskDefinition]:
    return build_definition
