"""Gamification SQLAlchemy models: progress, badges, achievements and activity."""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from profitdesk.models.base import Base, utcnow


class UserProgress(Base):
    """Points, experience and level for one user, created on first reward."""

    __tablename__ = "user_progress"

    user_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, onupdate=utcnow, nullable=False
    )


class Badge(Base):
    """A badge from the catalogue and the rewards it grants."""

    __tablename__ = "badges"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    rarity: Mapped[str] = mapped_column(String(20), default="common", nullable=False)
    reward_experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reward_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class EarnedBadge(Base):
    """A badge held by a user. Each badge can be earned once.

    ``displayed`` controls whether the badge is shown on the user's profile.
    """

    __tablename__ = "earned_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_earned_badge_user_badge"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    badge_id: Mapped[int] = mapped_column(ForeignKey("badges.id"), nullable=False)
    earned_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    displayed: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    badge: Mapped["Badge"] = relationship(lazy="joined")


class Achievement(Base):
    """A goal from the achievements catalogue.

    ``requirement_type`` names what is counted (e.g. ``tasks_completed``) and
    ``requirement_target`` how many are needed.
    """

    __tablename__ = "achievements"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    icon: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), default="progression", nullable=False)
    requirement_type: Mapped[str] = mapped_column(String(50), nullable=False)
    requirement_target: Mapped[int] = mapped_column(Integer, nullable=False)
    reward_experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reward_badge_id: Mapped[int | None] = mapped_column(
        ForeignKey("badges.id", ondelete="SET NULL")
    )
    is_secret: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class Activity(Base):
    """One entry of a user's activity history.

    Task, client and badge ids are kept as plain references so the history
    survives deletion of the rows they point to.
    """

    __tablename__ = "activities"
    __table_args__ = (Index("ix_activities_user_occurred", "user_id", "occurred_at"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    task_id: Mapped[int | None] = mapped_column(Integer)
    client_id: Mapped[int | None] = mapped_column(Integer)
    badge_id: Mapped[int | None] = mapped_column(Integer)
    points_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    experience_earned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    level_up: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
