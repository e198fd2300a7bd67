"""Client objective SQLAlchemy model."""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from profitdesk.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from profitdesk.models.client import Client


class Objective(Base, TimestampMixin):
    """A measurable goal for a client, tracked against a target value."""

    __tablename__ = "objectives"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    target_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("100"), nullable=False
    )
    current_value: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    unit: Mapped[str] = mapped_column(String(20), default="%", nullable=False)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_high_impact: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    client: Mapped["Client"] = relationship(back_populates="objectives")
