"""Time ledger SQLAlchemy model."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from profitdesk.models.base import Base, utcnow


class Timer(Base):
    """One tracked interval of work.

    Entries are append-only: once stopped, a timer is never edited. The
    partial unique index guarantees a single open timer per user even when two
    start requests race each other.
    """

    __tablename__ = "timers"
    __table_args__ = (
        Index("ix_timers_user_start", "user_id", "start_time"),
        Index(
            "uq_timers_open_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("end_time IS NULL"),
            sqlite_where=text("end_time IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    client_id: Mapped[int | None] = mapped_column(
        ForeignKey("clients.id", ondelete="SET NULL")
    )
    task_id: Mapped[int | None] = mapped_column(
        ForeignKey("tasks.id", ondelete="SET NULL")
    )
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    start_time: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )
    end_time: Mapped[datetime | None] = mapped_column(DateTime)
    duration: Mapped[Decimal] = mapped_column(
        Numeric(10, 4), default=Decimal("0"), nullable=False
    )
    billable: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, nullable=False
    )

    @property
    def is_running(self) -> bool:
        return self.end_time is None
