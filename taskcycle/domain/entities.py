from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Mapping, Optional

from .enums import Frequency, Priority, TaskStatus


@dataclass(frozen=True)
class RecurrencePattern:
    frequency: Frequency
    start_date: date
    interval: int = 1
    days_of_week: tuple[int, ...] = ()
    days_of_month: tuple[int, ...] = ()
    months_of_year: tuple[int, ...] = ()
    end_date: Optional[date] = None
    occurrences: int | None = None


@dataclass(frozen=True)
class ChecklistItem:
    title: str
    completed: bool = False


@dataclass(frozen=True)
class TaskTemplate:
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    tags: tuple[str, ...] = ()
    estimated_hours: float | None = None
    checklist: tuple[ChecklistItem, ...] = ()
    # Stored attachment documents, checked only when an instance is projected.
    attachments: tuple[Mapping[str, Any], ...] = ()


@dataclass(frozen=True)
class RecurringTaskDefinition:
    id: str | None
    owner_id: str
    title: str
    pattern: RecurrencePattern
    task_template: TaskTemplate
    project_id: str | None = None
    workspace_id: str | None = None
    active: bool = True
    next_run_date: Optional[date] = None
    last_task_created: Optional[datetime] = None
    created_instances: tuple[str, ...] = ()

    def is_due(self, now: datetime) -> bool:
        return (
            self.active
            and self.next_run_date is not None
            and self.next_run_date <= now.date()
        )


@dataclass(frozen=True)
class InstanceAttachment:
    filename: str
    path: str
    mimetype: str
    size: int
    uploaded_at: datetime
    uploaded_by: str


@dataclass(frozen=True)
class TaskInstancePayload:
    title: str
    description: str
    priority: Priority
    status: TaskStatus
    tags: tuple[str, ...]
    estimated_hours: float | None
    checklist: tuple[ChecklistItem, ...]
    attachments: tuple[InstanceAttachment, ...]
    owner_id: str
    created_by: str
    recurring_task_id: str | None
    scheduled_for: Optional[date]
    project_id: str | None = None
    workspace_id: str | None = None
    is_recurring: bool = True


@dataclass(frozen=True)
class BatchResult:
    processed: int = 0
    created: int = 0
    errors: int = 0


@dataclass(frozen=True)
class UpcomingOccurrence:
    occurs_on: date
    definition: RecurringTaskDefinition = field(compare=False)
