from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Mapping

from taskcycle.domain.entities import (
    ChecklistItem,
    InstanceAttachment,
    RecurringTaskDefinition,
    TaskInstancePayload,
)
from taskcycle.domain.enums import RECURRING_TAG, Priority, TaskStatus
from taskcycle.domain.errors import ProjectionError

_ATTACHMENT_TEXT_FIELDS = ("filename", "path", "mimetype")


def project(
    definition: RecurringTaskDefinition,
    now: datetime,
    extra_tags: Iterable[str] = (),
) -> TaskInstancePayload:
    """Build the task payload a definition's template produces at ``now``."""
    template = definition.task_template
    try:
        priority = Priority(template.priority)
    except ValueError:
        raise ProjectionError(f"Unknown priority {template.priority!r}") from None

    return TaskInstancePayload(
        title=template.title or definition.title,
        description=template.description or "",
        priority=priority,
        status=TaskStatus.TODO,
        tags=_merge_tags(template.tags, (RECURRING_TAG, *extra_tags)),
        estimated_hours=template.estimated_hours,
        checklist=tuple(
            ChecklistItem(title=item.title, completed=False) for item in template.checklist
        ),
        attachments=tuple(
            _copy_attachment(raw, now, definition.owner_id) for raw in template.attachments
        ),
        owner_id=definition.owner_id,
        created_by=definition.owner_id,
        recurring_task_id=definition.id,
        scheduled_for=definition.next_run_date,
        project_id=definition.project_id,
        workspace_id=definition.workspace_id,
    )


def _merge_tags(tags: Iterable[str], extra: Iterable[str]) -> tuple[str, ...]:
    merged: list[str] = []
    for tag in (*tags, *extra):
        if tag and tag not in merged:
            merged.append(tag)
    return tuple(merged)


def _copy_attachment(raw: Mapping[str, Any], now: datetime, owner_id: str) -> InstanceAttachment:
    if not isinstance(raw, Mapping):
        raise ProjectionError(f"Attachment must be a mapping, got {type(raw).__name__}")

    values = {}
    for key in _ATTACHMENT_TEXT_FIELDS:
        value = raw.get(key)
        if not isinstance(value, str) or not value:
            raise ProjectionError(f"Attachment field {key!r} is missing or empty")
        values[key] = value

    size = raw.get("size")
    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        raise ProjectionError(f"Attachment {values['filename']!r} has invalid size {size!r}")

    return InstanceAttachment(size=size, uploaded_at=now, uploaded_by=owner_id, **values)
