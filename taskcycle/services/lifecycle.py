from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Callable, Mapping, Optional

from taskcycle.domain.entities import RecurringTaskDefinition
from taskcycle.domain.errors import NoFutureOccurrence
from taskcycle.domain.recurrence import next_occurrence
from taskcycle.domain.validation import changed_fields, parse_pattern, validate

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class RecurrenceLifecycle:
    """Keeps a definition's ``active`` flag and ``next_run_date`` consistent with its pattern."""

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock

    def today(self) -> date:
        return self._clock().date()

    def on_create(self, definition: RecurringTaskDefinition) -> RecurringTaskDefinition:
        validate(definition.pattern)
        anchor = self._initial_anchor(definition)
        created = self.advance(definition, anchor)
        if not created.active and definition.active:
            logger.info(
                "Recurring task %s created inactive: no occurrence after %s", definition.id, anchor
            )
        return created

    def on_pattern_update(
        self, definition: RecurringTaskDefinition, fields: Mapping[str, Any]
    ) -> RecurringTaskDefinition:
        pattern = parse_pattern(fields, base=definition.pattern)
        changed = changed_fields(definition.pattern, pattern)
        updated = replace(definition, pattern=pattern)
        if not changed:
            return updated

        today = self.today()
        anchor = definition.next_run_date
        if anchor is None or anchor <= today:
            anchor = today
        anchor = max(anchor, _start_of(updated))

        updated = self.advance(updated, anchor)
        logger.debug(
            "Recurring task %s pattern changed (%s), next run %s",
            definition.id,
            ", ".join(sorted(changed)),
            updated.next_run_date,
        )
        return updated

    def activate(self, definition: RecurringTaskDefinition) -> RecurringTaskDefinition:
        if definition.active:
            return definition
        validate(definition.pattern)

        next_run = definition.next_run_date
        if next_run is None or next_run < self.today() or self._limit_reached(definition):
            anchor = self._initial_anchor(definition)
            next_run = self._schedule(definition, anchor)
            if next_run is None:
                raise NoFutureOccurrence(definition.id, anchor)

        return replace(definition, active=True, next_run_date=next_run)

    def deactivate(self, definition: RecurringTaskDefinition) -> RecurringTaskDefinition:
        return replace(definition, active=False)

    def advance(self, definition: RecurringTaskDefinition, anchor: date) -> RecurringTaskDefinition:
        next_run = self._schedule(definition, anchor)
        if next_run is None:
            return replace(definition, active=False, next_run_date=None)
        return replace(definition, next_run_date=next_run)

    def _initial_anchor(self, definition: RecurringTaskDefinition) -> date:
        return max(self.today(), _start_of(definition))

    def _schedule(self, definition: RecurringTaskDefinition, anchor: date) -> Optional[date]:
        if self._limit_reached(definition):
            return None
        return next_occurrence(anchor, definition.pattern)

    @staticmethod
    def _limit_reached(definition: RecurringTaskDefinition) -> bool:
        limit = definition.pattern.occurrences
        return limit is not None and len(definition.created_instances) >= limit


def _start_of(definition: RecurringTaskDefinition) -> date:
    start = definition.pattern.start_date
    return start.date() if isinstance(start, datetime) else start
