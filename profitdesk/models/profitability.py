"""Per-client profitability record."""

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from profitdesk.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from profitdesk.models.client import Client


class Profitability(Base, TimestampMixin):
    """Derived financial summary for one (user, client) pair.

    ``profit``, ``profitability`` and ``remaining_hours`` are derived from the
    other figures by the recalculation service. ``version`` is checked on
    every UPDATE so that two concurrent recalculations cannot overwrite each
    other silently.
    """

    __tablename__ = "profitabilities"
    __table_args__ = (
        UniqueConstraint("user_id", "client_id", name="uq_profitability_user_client"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    client_id: Mapped[int] = mapped_column(
        ForeignKey("clients.id", ondelete="CASCADE"), nullable=False
    )
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    target_hours: Mapped[Decimal] = mapped_column(
        Numeric(10, 4), default=Decimal("0"), nullable=False
    )
    actual_hours: Mapped[Decimal] = mapped_column(
        Numeric(10, 4), default=Decimal("0"), nullable=False
    )
    revenue: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    profit: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    profitability: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), default=Decimal("0"), nullable=False
    )
    remaining_hours: Mapped[Decimal] = mapped_column(
        Numeric(10, 4), default=Decimal("0"), nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    client: Mapped["Client"] = relationship(back_populates="profitability")
