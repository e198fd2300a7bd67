"""add_activity_and_achievements

Revision ID: 9c4d2f7a1e36
Revises: 5b1e0c7d2a91
Create Date: 2026-10-18 15:40:02.118204

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '9c4d2f7a1e36'
down_revision: Union[str, Sequence[str], None] = '5b1e0c7d2a91'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add activity history, the achievements catalogue and badge display."""
    op.add_column(
        "earned_badges",
        sa.Column("displayed", sa.Boolean(), nullable=False, server_default=sa.true()),
    )

    op.create_table(
        "achievements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False, unique=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("icon", sa.String(length=100), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("requirement_type", sa.String(length=50), nullable=False),
        sa.Column("requirement_target", sa.Integer(), nullable=False),
        sa.Column("reward_experience", sa.Integer(), nullable=False),
        sa.Column(
            "reward_badge_id",
            sa.Integer(),
            sa.ForeignKey("badges.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_secret", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "activities",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("occurred_at", sa.DateTime(), nullable=False),
        sa.Column("task_id", sa.Integer(), nullable=True),
        sa.Column("client_id", sa.Integer(), nullable=True),
        sa.Column("badge_id", sa.Integer(), nullable=True),
        sa.Column("points_earned", sa.Integer(), nullable=False),
        sa.Column("experience_earned", sa.Integer(), nullable=False),
        sa.Column("level_up", sa.Boolean(), nullable=False),
    )
    op.create_index(
        "ix_activities_user_occurred", "activities", ["user_id", "occurred_at"]
    )


def downgrade() -> None:
    """Drop activity history, achievements and the badge display flag."""
    op.drop_index("ix_activities_user_occurred", table_name="activities")
    op.drop_table("activities")
    op.drop_table("achievements")
    op.drop_column("earned_badges", "displayed")
