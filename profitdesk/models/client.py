"""Client-related SQLAlchemy models."""

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, DateTime, Enum, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from profitdesk.models.base import Base, TimestampMixin, utcnow

if TYPE_CHECKING:
    from profitdesk.models.objective import Objective
    from profitdesk.models.profitability import Profitability
    from profitdesk.models.task import Task


class ClientStatus(enum.Enum):
    """Lifecycle of a client account."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class Client(Base, TimestampMixin):
    """A customer account owned by exactly one user.

    Task and objective counters are maintained by the consistency coordinator
    and are only ever changed through relative increments.
    """

    __tablename__ = "clients"
    __table_args__ = (Index("ix_clients_user_status", "user_id", "status"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    status: Mapped[ClientStatus] = mapped_column(
        Enum(ClientStatus, values_callable=lambda e: [m.value for m in e]),
        default=ClientStatus.ACTIVE,
        nullable=False,
    )
    notes: Mapped[str] = mapped_column(Text, default="", nullable=False)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Task metrics
    tasks_completed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tasks_in_progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tasks_pending: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_activity: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    # Objective counters
    objectives_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    objectives_completed: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    objectives_pending: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    last_profitability_update: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    tasks: Mapped[list["Task"]] = relationship(back_populates="client")
    objectives: Mapped[list["Objective"]] = relationship(back_populates="client")
    profitability: Mapped["Profitability | None"] = relationship(
        back_populates="client"
    )
