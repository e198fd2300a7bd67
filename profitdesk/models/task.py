"""Task-related SQLAlchemy models."""

import enum
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from profitdesk.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from profitdesk.models.client import Client


class TaskStatus(enum.Enum):
    """Enumeration of possible task statuses."""

    TODO = "to-do"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class TaskPriority(enum.Enum):
    """Task priority levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Task(Base, TimestampMixin):
    """A unit of work, optionally billed to a client.

    ``actual_time`` holds worked hours and only grows through stopped timers,
    unless a final figure is supplied on completion.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_user_status", "user_id", "status"),
        Index("ix_tasks_client_status", "client_id", "status"),
        CheckConstraint(
            "impact_score >= 0 AND impact_score <= 100",
            name="ck_tasks_impact_score_range",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    client_id: Mapped[int | None] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE")
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[TaskStatus] = mapped_column(
        Enum(TaskStatus, values_callable=_enum_values),
        default=TaskStatus.TODO,
        nullable=False,
    )
    priority: Mapped[TaskPriority] = mapped_column(
        Enum(TaskPriority, values_callable=_enum_values),
        default=TaskPriority.MEDIUM,
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String(50), default="other", nullable=False)
    due_date: Mapped[date | None] = mapped_column(Date, index=True)
    estimated_time: Mapped[Decimal] = mapped_column(
        Numeric(10, 4), default=Decimal("0"), nullable=False
    )
    actual_time: Mapped[Decimal] = mapped_column(
        Numeric(10, 4), default=Decimal("0"), nullable=False
    )
    impact_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_high_impact: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    client: Mapped["Client | None"] = relationship(back_populates="tasks")
