from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return uuid.uuid4().hex


class RecurringTaskModel(Base):
    __tablename__ = "recurring_tasks"
    __table_args__ = (Index("ix_recurring_tasks_due", "active", "next_run_date"),)

    id = Column(String(32), primary_key=True, default=new_id)
    owner_id = Column(String(64), nullable=False, index=True)
    project_id = Column(String(64), nullable=True, index=True)
    workspace_id = Column(String(64), nullable=True)
    title = Column(String(100), nullable=False)
    frequency = Column(String(10), nullable=False)
    interval = Column(Integer, nullable=False, default=1)
    days_of_week = Column(JSON, nullable=False, default=list)
    days_of_month = Column(JSON, nullable=False, default=list)
    months_of_year = Column(JSON, nullable=False, default=list)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    occurrences = Column(Integer, nullable=True)
    task_template = Column(JSON, nullable=False, default=dict)
    active = Column(Boolean, nullable=False, default=True)
    next_run_date = Column(Date, nullable=True)
    last_task_created = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class RecurringTaskInstanceModel(Base):
    """Append-only log of the instances a recurring task has produced."""

    __tablename__ = "recurring_task_instances"

    id = Column(Integer, primary_key=True)
    recurring_task_id = Column(
        String(32),
        ForeignKey("recurring_tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False)
    instance_ref = Column(String(64), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)


class TaskModel(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        UniqueConstraint("recurring_task_id", "scheduled_for", name="uq_tasks_occurrence"),
    )

    id = Column(String(32), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    status = Column(String(20), nullable=False, default="todo", index=True)
    priority = Column(String(10), nullable=False, default="medium")
    tags = Column(JSON, nullable=False, default=list)
    estimated_hours = Column(Float, nullable=True)
    checklist = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)
    owner_id = Column(String(64), nullable=False, index=True)
    created_by = Column(String(64), nullable=False)
    project_id = Column(String(64), nullable=True)
    workspace_id = Column(String(64), nullable=True)
    is_recurring = Column(Boolean, nullable=False, default=False)
    recurring_task_id = Column(
        String(32),
        ForeignKey("recurring_tasks.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    scheduled_for = Column(Date, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
