from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Protocol

from taskcycle.domain.entities import RecurringTaskDefinition, TaskInstancePayload


class DefinitionStore(Protocol):
    def load(self, definition_id: str) -> RecurringTaskDefinition: ...

    def save(self, definition: RecurringTaskDefinition) -> RecurringTaskDefinition: ...

    def find_due(self, now: datetime) -> Iterable[RecurringTaskDefinition]: ...


class InstanceStore(Protocol):
    def create(self, payload: TaskInstancePayload) -> str: ...

    def find_by_occurrence(
        self, recurring_task_id: str, scheduled_for: date
    ) -> Optional[str]: ...


class Notifier(Protocol):
    def notify(self, owner_id: str, instance_ref: str, definition_id: str | None) -> None: ...
