"""add routines table and routine tags on tasks"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_add_routines"
down_revision = "0001_create_tasks"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "routines",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("frequency", sa.JSON(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_routines_user_id", "routines", ["user_id"], unique=False)

    op.add_column(
        "tasks",
        sa.Column("is_routine", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    )
    # Plain string, no foreign key: completed tasks outlive their routine.
    op.add_column("tasks", sa.Column("routine_id", sa.String(length=32), nullable=True))
    op.create_index(
        "ix_tasks_user_routine_due",
        "tasks",
        ["user_id", "routine_id", "due_date"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_tasks_user_routine_due", table_name="tasks")
    op.drop_column("tasks", "routine_id")
    op.drop_column("tasks", "is_routine")
    op.drop_index("ix_routines_user_id", table_name="routines")
    op.drop_table("routines")
