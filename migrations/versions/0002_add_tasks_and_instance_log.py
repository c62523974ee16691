"""add tasks table and recurring task instance log"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_add_tasks_and_instance_log"
down_revision = "0001_create_recurring_tasks"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="todo"),
        sa.Column("priority", sa.String(length=10), nullable=False, server_default="medium"),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("estimated_hours", sa.Float(), nullable=True),
        sa.Column("checklist", sa.JSON(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("created_by", sa.String(length=64), nullable=False),
        sa.Column("project_id", sa.String(length=64), nullable=True),
        sa.Column("workspace_id", sa.String(length=64), nullable=True),
        sa.Column("is_recurring", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "recurring_task_id",
            sa.String(length=32),
            sa.ForeignKey("recurring_tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("scheduled_for", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("recurring_task_id", "scheduled_for", name="uq_tasks_occurrence"),
    )
    op.create_index("ix_tasks_status", "tasks", ["status"], unique=False)
    op.create_index("ix_tasks_owner_id", "tasks", ["owner_id"], unique=False)
    op.create_index("ix_tasks_recurring_task_id", "tasks", ["recurring_task_id"], unique=False)

    op.create_table(
        "recurring_task_instances",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "recurring_task_id",
            sa.String(length=32),
            sa.ForeignKey("recurring_tasks.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("instance_ref", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_recurring_task_instances_recurring_task_id",
        "recurring_task_instances",
        ["recurring_task_id"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index(
        "ix_recurring_task_instances_recurring_task_id", table_name="recurring_task_instances"
    )
    op.drop_table("recurring_task_instances")
    op.drop_index("ix_tasks_recurring_task_id", table_name="tasks")
    op.drop_index("ix_tasks_owner_id", table_name="tasks")
    op.drop_index("ix_tasks_status", table_name="tasks")
    op.drop_table("tasks")
