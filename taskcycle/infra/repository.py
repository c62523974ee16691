from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from taskcycle.domain.entities import (
    ChecklistItem,
    RecurrencePattern,
    RecurringTaskDefinition,
    TaskInstancePayload,
    TaskTemplate,
)
from taskcycle.domain.enums import Frequency, Priority
from taskcycle.domain.errors import DefinitionNotFound, PersistenceError

from .db import SessionLocal
from .models import RecurringTaskInstanceModel, RecurringTaskModel, TaskModel, new_id


def _template_to_json(template: TaskTemplate) -> dict[str, Any]:
    return {
        "title": template.title,
        "description": template.description,
        "priority": str(template.priority),
        "tags": list(template.tags),
        "estimated_hours": template.estimated_hours,
        "checklist": [
            {"title": item.title, "completed": item.completed} for item in template.checklist
        ],
        "attachments": [dict(attachment) for attachment in template.attachments],
    }


def _template_from_json(data: dict[str, Any]) -> TaskTemplate:
    return TaskTemplate(
        title=data.get("title", ""),
        description=data.get("description") or "",
        priority=Priority(data.get("priority") or Priority.MEDIUM.value),
        tags=tuple(data.get("tags") or ()),
        estimated_hours=data.get("estimated_hours"),
        checklist=tuple(
            ChecklistItem(title=item["title"], completed=bool(item.get("completed")))
            for item in data.get("checklist") or ()
        ),
        attachments=tuple(data.get("attachments") or ()),
    )


def _to_entity(model: RecurringTaskModel, instance_refs: list[str]) -> RecurringTaskDefinition:
    return RecurringTaskDefinition(
        id=model.id,
        owner_id=model.owner_id,
        title=model.title,
        project_id=model.project_id,
        workspace_id=model.workspace_id,
        pattern=RecurrencePattern(
            frequency=Frequency(model.frequency),
            interval=model.interval,
            days_of_week=tuple(model.days_of_week or ()),
            days_of_month=tuple(model.days_of_month or ()),
            months_of_year=tuple(model.months_of_year or ()),
            start_date=model.start_date,
            end_date=model.end_date,
            occurrences=model.occurrences,
        ),
        task_template=_template_from_json(model.task_template or {}),
        active=model.active,
        next_run_date=model.next_run_date,
        last_task_created=model.last_task_created,
        created_instances=tuple(instance_refs),
    )


def _apply_definition(model: RecurringTaskModel, definition: RecurringTaskDefinition) -> None:
    pattern = definition.pattern
    model.owner_id = definition.owner_id
    model.title = definition.title
    model.project_id = definition.project_id
    model.workspace_id = definition.workspace_id
    model.frequency = str(pattern.frequency)
    model.interval = pattern.interval
    model.days_of_week = list(pattern.days_of_week)
    model.days_of_month = list(pattern.days_of_month)
    model.months_of_year = list(pattern.months_of_year)
    model.start_date = pattern.start_date
    model.end_date = pattern.end_date
    model.occurrences = pattern.occurrences
    model.task_template = _template_to_json(definition.task_template)
    model.active = definition.active
    model.next_run_date = definition.next_run_date
    model.last_task_created = definition.last_task_created


class _SqlStore:
    def __init__(self, session_factory: sessionmaker = SessionLocal) -> None:
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc


class SqlDefinitionStore(_SqlStore):
    def load(self, definition_id: str) -> RecurringTaskDefinition:
        with self._session() as session:
            model = session.get(RecurringTaskModel, definition_id)
            if not model:
                raise DefinitionNotFound(definition_id)
            return _to_entity(model, self._instance_refs(session, [model.id])[model.id])

    def save(self, definition: RecurringTaskDefinition) -> RecurringTaskDefinition:
        with self._session() as session:
            model = None
            if definition.id is not None:
                model = session.get(RecurringTaskModel, definition.id)
            if model is None:
                model = RecurringTaskModel(id=definition.id or new_id())
                session.add(model)
            _apply_definition(model, definition)
            session.flush()

            stored = self._instance_refs(session, [model.id])[model.id]
            wanted = list(definition.created_instances)
            if wanted[: len(stored)] != stored:
                raise PersistenceError(
                    f"Recurring task {model.id}: created instance history is append-only"
                )
            for position, instance_ref in enumerate(wanted[len(stored):], start=len(stored)):
                session.add(
                    RecurringTaskInstanceModel(
                        recurring_task_id=model.id,
                        position=position,
                        instance_ref=instance_ref,
                    )
                )
            session.commit()
            session.refresh(model)
            return _to_entity(model, wanted)

    def find_due(self, now: datetime) -> list[RecurringTaskDefinition]:
        stmt = (
            select(RecurringTaskModel)
            .where(
                RecurringTaskModel.active.is_(True),
                RecurringTaskModel.next_run_date.is_not(None),
                RecurringTaskModel.next_run_date <= now.date(),
            )
            .order_by(RecurringTaskModel.next_run_date.asc())
        )
        return self._list(stmt)

    def list_active(self, owner_id: str | None = None) -> list[RecurringTaskDefinition]:
        stmt = select(RecurringTaskModel).where(RecurringTaskModel.active.is_(True))
        if owner_id:
            stmt = stmt.where(RecurringTaskModel.owner_id == owner_id)
        return self._list(stmt.order_by(RecurringTaskModel.next_run_date.asc()))

    def count_instances(self, definition_id: str) -> int:
        with self._session() as session:
            return session.scalar(
                select(func.count())
                .select_from(RecurringTaskInstanceModel)
                .where(RecurringTaskInstanceModel.recurring_task_id == definition_id)
            ) or 0

    def _list(self, stmt) -> list[RecurringTaskDefinition]:
        with self._session() as session:
            models = list(session.scalars(stmt))
            refs = self._instance_refs(session, [model.id for model in models])
            return [_to_entity(model, refs[model.id]) for model in models]

    @staticmethod
    def _instance_refs(session: Session, definition_ids: list[str]) -> dict[str, list[str]]:
        refs: dict[str, list[str]] = {definition_id: [] for definition_id in definition_ids}
        if not definition_ids:
            return refs
        rows = session.execute(
            select(
                RecurringTaskInstanceModel.recurring_task_id,
                RecurringTaskInstanceModel.instance_ref,
            )
            .where(RecurringTaskInstanceModel.recurring_task_id.in_(definition_ids))
            .order_by(RecurringTaskInstanceModel.position.asc())
        ).all()
        for row in rows:
            refs[row.recurring_task_id].append(row.instance_ref)
        return refs


class SqlInstanceStore(_SqlStore):
    def create(self, payload: TaskInstancePayload) -> str:
        with self._session() as session:
            task = TaskModel(
                title=payload.title,
                description=payload.description,
                status=str(payload.status),
                priority=str(payload.priority),
                tags=list(payload.tags),
                estimated_hours=payload.estimated_hours,
                checklist=[
                    {"title": item.title, "completed": item.completed}
                    for item in payload.checklist
                ],
                attachments=[
                    {
                        "filename": attachment.filename,
                        "path": attachment.path,
                        "mimetype": attachment.mimetype,
                        "size": attachment.size,
                        "uploaded_at": attachment.uploaded_at.isoformat(),
                        "uploaded_by": attachment.uploaded_by,
                    }
                    for attachment in payload.attachments
                ],
                owner_id=payload.owner_id,
                created_by=payload.created_by,
                project_id=payload.project_id,
                workspace_id=payload.workspace_id,
                is_recurring=payload.is_recurring,
                recurring_task_id=payload.recurring_task_id,
                scheduled_for=payload.scheduled_for,
            )
            session.add(task)
            session.commit()
            return task.id

    def find_by_occurrence(self, recurring_task_id: str, scheduled_for: date) -> Optional[str]:
        with self._session() as session:
            return session.scalar(
                select(TaskModel.id).where(
                    TaskModel.recurring_task_id == recurring_task_id,
                    TaskModel.scheduled_for == scheduled_for,
                )
            )
