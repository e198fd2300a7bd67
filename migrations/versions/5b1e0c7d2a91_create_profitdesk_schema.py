"""create_profitdesk_schema

Revision ID: 5b1e0c7d2a91
Revises:
Create Date: 2026-10-18 09:12:44.310582

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '5b1e0c7d2a91'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

client_status = sa.Enum("active", "inactive", "archived", name="clientstatus")
task_status = sa.Enum("to-do", "in-progress", "completed", name="taskstatus")
task_priority = sa.Enum("low", "medium", "high", "urgent", name="taskpriority")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    """Create clients, tasks, ledger, profitability, objectives and gamification tables."""
    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", client_status, nullable=False),
        sa.Column("notes", sa.Text(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("tasks_completed", sa.Integer(), nullable=False),
        sa.Column("tasks_in_progress", sa.Integer(), nullable=False),
        sa.Column("tasks_pending", sa.Integer(), nullable=False),
        sa.Column("last_activity", sa.DateTime(), nullable=False),
        sa.Column("objectives_count", sa.Integer(), nullable=False),
        sa.Column("objectives_completed", sa.Integer(), nullable=False),
        sa.Column("objectives_pending", sa.Integer(), nullable=False),
        sa.Column("last_profitability_update", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_clients_user_id", "clients", ["user_id"])
    op.create_index("ix_clients_name", "clients", ["name"])
    op.create_index("ix_clients_user_status", "clients", ["user_id", "status"])

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", task_status, nullable=False),
        sa.Column("priority", task_priority, nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("estimated_time", sa.Numeric(10, 4), nullable=False),
        sa.Column("actual_time", sa.Numeric(10, 4), nullable=False),
        sa.Column("impact_score", sa.Integer(), nullable=False),
        sa.Column("is_high_impact", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "impact_score >= 0 AND impact_score <= 100",
            name="ck_tasks_impact_score_range",
        ),
    )
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])
    op.create_index("ix_tasks_user_status", "tasks", ["user_id", "status"])
    op.create_index("ix_tasks_client_status", "tasks", ["client_id", "status"])

    op.create_table(
        "timers",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "task_id",
            sa.Integer(),
            sa.ForeignKey("tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("duration", sa.Numeric(10, 4), nullable=False),
        sa.Column("billable", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_timers_user_start", "timers", ["user_id", "start_time"])
    # At most one open timer per user
    op.create_index(
        "uq_timers_open_per_user",
        "timers",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("end_time IS NULL"),
        sqlite_where=sa.text("end_time IS NULL"),
    )

    op.create_table(
        "profitabilities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("hourly_rate", sa.Numeric(12, 2), nullable=False),
        sa.Column("target_hours", sa.Numeric(10, 4), nullable=False),
        sa.Column("actual_hours", sa.Numeric(10, 4), nullable=False),
        sa.Column("revenue", sa.Numeric(12, 2), nullable=False),
        sa.Column("profit", sa.Numeric(12, 2), nullable=False),
        sa.Column("profitability", sa.Numeric(10, 2), nullable=False),
        sa.Column("remaining_hours", sa.Numeric(10, 4), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "client_id", name="uq_profitability_user_client"),
    )

    op.create_table(
        "objectives",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column(
            "client_id",
            sa.Integer(),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("target_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("current_value", sa.Numeric(12, 2), nullable=False),
        sa.Column("unit", sa.String(length=20), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("is_high_impact", sa.Boolean(), nullable=False),
        sa.Column("is_completed", sa.Boolean(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_objectives_user_id", "objectives", ["user_id"])
    op.create_index("ix_objectives_client_id", "objectives", ["client_id"])

    op.create_table(
        "user_progress",
        sa.Column("user_id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("experience", sa.Integer(), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "badges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(length=50), nullable=False),
        sa.Column("rarity", sa.String(length=20), nullable=False),
        sa.Column("reward_experience", sa.Integer(), nullable=False),
        sa.Column("reward_points", sa.Integer(), nullable=False),
    )

    op.create_table(
        "earned_badges",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("badge_id", sa.Integer(), sa.ForeignKey("badges.id"), nullable=False),
        sa.Column("earned_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "badge_id", name="uq_earned_badge_user_badge"),
    )
    op.create_index("ix_earned_badges_user_id", "earned_badges", ["user_id"])


def downgrade() -> None:
    """Drop every table created by this revision."""
    op.drop_index("ix_earned_badges_user_id", table_name="earned_badges")
    op.drop_table("earned_badges")
    op.drop_table("badges")
    op.drop_table("user_progress")
    op.drop_index("ix_objectives_client_id", table_name="objectives")
    op.drop_index("ix_objectives_user_id", table_name="objectives")
    op.drop_table("objectives")
    op.drop_table("profitabilities")
    op.drop_index("uq_timers_open_per_user", table_name="timers")
    op.drop_index("ix_timers_user_start", table_name="timers")
    op.drop_table("timers")
    op.drop_index("ix_tasks_client_status", table_name="tasks")
    op.drop_index("ix_tasks_user_status", table_name="tasks")
    op.drop_index("ix_tasks_due_date", table_name="tasks")
    op.drop_table("tasks")
    op.drop_index("ix_clients_user_status", table_name="clients")
    op.drop_index("ix_clients_name", table_name="clients")
    op.drop_index("ix_clients_user_id", table_name="clients")
    op.drop_table("clients")

    bind = op.get_bind()
    task_priority.drop(bind, checkfirst=True)
    task_status.drop(bind, checkfirst=True)
    client_status.drop(bind, checkfirst=True)
