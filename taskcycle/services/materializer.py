from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, Optional

from taskcycle.domain.entities import (
    BatchResult,
    RecurringTaskDefinition,
    UpcomingOccurrence,
)
from taskcycle.domain.enums import MANUAL_CREATION_TAG
from taskcycle.domain.recurrence import iter_occurrences

from .lifecycle import RecurrenceLifecycle
from .ports import DefinitionStore, InstanceStore, Notifier
from .projector import project

logger = logging.getLogger(__name__)


class BatchMaterializer:
    def __init__(
        self,
        definitions: DefinitionStore,
        instances: InstanceStore,
        notifier: Optional[Notifier] = None,
        lifecycle: Optional[RecurrenceLifecycle] = None,
    ) -> None:
        self._definitions = definitions
        self._instances = instances
        self._notifier = notifier
        self._lifecycle = lifecycle or RecurrenceLifecycle()

    def process_due(
        self,
        now: datetime,
        definitions: Optional[Iterable[RecurringTaskDefinition]] = None,
    ) -> BatchResult:
        """Materialize one instance for every due definition.

        Failures are counted per definition and never abort the pass; the
        definition that failed is left as stored so the next pass retries it.
        """
        processed = created = errors = 0
        try:
            candidates = self._definitions.find_due(now) if definitions is None else definitions
            for definition in candidates:
                if not definition.is_due(now):
                    continue
                processed += 1
                try:
                    self._materialize_due(definition, now)
                except Exception:  # noqa: BLE001
                    errors += 1
                    logger.exception("Error processing recurring task %s", definition.id)
                else:
                    created += 1
        except Exception:  # noqa: BLE001
            errors += 1
            logger.exception("Error reading due recurring tasks")

        logger.info(
            "Processed %s recurring tasks, created %s tasks, encountered %s errors",
            processed,
            created,
            errors,
        )
        return BatchResult(processed=processed, created=created, errors=errors)

    def materialize_now(
        self, definition: RecurringTaskDefinition, now: datetime
    ) -> tuple[str, RecurringTaskDefinition]:
        """Create an instance on demand, outside the schedule.

        The schedule is not moved; the instance still counts toward the
        pattern's occurrence limit.
        """
        payload = project(definition, now, extra_tags=(MANUAL_CREATION_TAG,))
        payload = replace(payload, scheduled_for=None)
        instance_ref = self._instances.create(payload)
        updated = replace(
            definition,
            created_instances=(*definition.created_instances, instance_ref),
        )
        updated = self._definitions.save(updated)
        logger.info("Created task %s from recurring task %s on demand", instance_ref, definition.id)
        return instance_ref, updated

    def upcoming(
        self,
        definitions: Iterable[RecurringTaskDefinition],
        now: datetime,
        days: int = 7,
    ) -> list[UpcomingOccurrence]:
        horizon = now.date() + timedelta(days=days)
        upcoming: list[UpcomingOccurrence] = []
        for definition in definitions:
            if not definition.active or definition.next_run_date is None:
                continue
            first = definition.next_run_date
            if first > horizon:
                continue
            upcoming.append(UpcomingOccurrence(occurs_on=first, definition=definition))
            for occurs_on in iter_occurrences(first, definition.pattern, horizon):
                upcoming.append(UpcomingOccurrence(occurs_on=occurs_on, definition=definition))
        upcoming.sort(key=lambda item: item.occurs_on)
        return upcoming

    def _materialize_due(self, definition: RecurringTaskDefinition, now: datetime) -> None:
        anchor = definition.next_run_date
        payload = project(definition, now)

        instance_ref = None
        if definition.id is not None:
            instance_ref = self._instances.find_by_occurrence(definition.id, anchor)
        if instance_ref is None:
            instance_ref = self._instances.create(payload)
        else:
            logger.info(
                "Recurring task %s already materialized for %s as %s",
                definition.id,
                anchor,
                instance_ref,
            )

        history = definition.created_instances
        if instance_ref not in history:
            history = (*history, instance_ref)
        updated = replace(definition, created_instances=history, last_task_created=now)
        updated = self._lifecycle.advance(updated, anchor)
        if not updated.active:
            logger.info("Recurring task %s has no further occurrences, deactivating", definition.id)

        self._definitions.save(updated)
        self._notify(updated, instance_ref)

    def _notify(self, definition: RecurringTaskDefinition, instance_ref: str) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.notify(definition.owner_id, instance_ref, definition.id)
        except Exception:  # noqa: BLE001
            logger.warning(
                "Notification for task %s from recurring task %s failed",
                instance_ref,
                definition.id,
                exc_info=True,
            )
