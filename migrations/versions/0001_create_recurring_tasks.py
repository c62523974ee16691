"""create recurring_tasks table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_recurring_tasks"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "recurring_tasks",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("project_id", sa.String(length=64), nullable=True),
        sa.Column("workspace_id", sa.String(length=64), nullable=True),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("frequency", sa.String(length=10), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("days_of_week", sa.JSON(), nullable=False),
        sa.Column("days_of_month", sa.JSON(), nullable=False),
        sa.Column("months_of_year", sa.JSON(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("occurrences", sa.Integer(), nullable=True),
        sa.Column("task_template", sa.JSON(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("next_run_date", sa.Date(), nullable=True),
        sa.Column("last_task_created", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_recurring_tasks_owner_id", "recurring_tasks", ["owner_id"], unique=False)
    op.create_index("ix_recurring_tasks_project_id", "recurring_tasks", ["project_id"], unique=False)
    op.create_index(
        "ix_recurring_tasks_due", "recurring_tasks", ["active", "next_run_date"], unique=False
    )


def downgrade() -> None:
    op.drop_index("ix_recurring_tasks_due", table_name="recurring_tasks")
    op.drop_index("ix_recurring_tasks_project_id", table_name="recurring_tasks")
    op.drop_index("ix_recurring_tasks_owner_id", table_name="recurring_tasks")
    op.drop_table("recurring_tasks")
