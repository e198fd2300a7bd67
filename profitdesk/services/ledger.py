"""Time ledger reads and aggregation.

Starting and stopping timers are multi-entity writes and live in the
consistency coordinator; this module holds the duration arithmetic and the
read-side helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.core.errors import InvalidInputError, NotFoundError
from profitdesk.models.profitability import Profitability
from profitdesk.models.timer import Timer
from profitdesk.services.profitability import q_hours, q_money

SECONDS_PER_HOUR = Decimal("3600")


def duration_hours(start_time: datetime, end_time: datetime) -> Decimal:
    """Elapsed time between two instants, in hours.

    Raises:
        InvalidInputError: If the end precedes the start.
    """
    if end_time < start_time:
        raise InvalidInputError("end_time must not be before start_time")
    seconds = Decimal(str((end_time - start_time).total_seconds()))
    return q_hours(seconds / SECONDS_PER_HOUR)


async def get_active_timer(session: AsyncSession, user_id: int) -> Timer | None:
    """The user's open timer, if any."""
    result = await session.execute(
        select(Timer).where(Timer.user_id == user_id, Timer.end_time.is_(None))
    )
    return result.scalar_one_or_none()


async def get_timer(session: AsyncSession, user_id: int, timer_id: int) -> Timer:
    """Load a timer owned by the user.

    Raises:
        NotFoundError: If the timer does not exist or belongs to someone else.
    """
    result = await session.execute(
        select(Timer).where(Timer.id == timer_id, Timer.user_id == user_id)
    )
    timer = result.scalar_one_or_none()
    if timer is None:
        raise NotFoundError("Timer", timer_id)
    return timer


async def list_timers(
    session: AsyncSession,
    user_id: int,
    client_id: int | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[Timer], int]:
    """Timers for the user, newest first, with the total count."""
    filters = [Timer.user_id == user_id]
    if client_id is not None:
        filters.append(Timer.client_id == client_id)

    total_result = await session.execute(select(func.count(Timer.id)).where(*filters))
    total = int(total_result.scalar() or 0)

    result = await session.execute(
        select(Timer)
        .where(*filters)
        .order_by(Timer.start_time.desc(), Timer.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(result.scalars().all()), total


@dataclass(frozen=True)
class TimeSummary:
    """Stopped time for a user, optionally for one client and window.

    Attributes:
        entry_count: Number of stopped ledger entries.
        total_hours: Sum of all durations.
        billable_hours: Sum of billable durations.
        non_billable_hours: total_hours - billable_hours.
        billable_amount: billable_hours * hourly_rate when the client has a
            profitability record, otherwise None.
    """

    entry_count: int
    total_hours: Decimal
    billable_hours: Decimal
    non_billable_hours: Decimal
    billable_amount: Decimal | None = None


async def summarize_time(
    session: AsyncSession,
    user_id: int,
    client_id: int | None = None,
    since: datetime | None = None,
    until: datetime | None = None,
) -> TimeSummary:
    """Aggregate stopped timers over ``[since, until)``.

    Running timers are excluded: their duration is not final yet.
    """
    if since is not None and until is not None and until <= since:
        raise InvalidInputError("until must be after since")

    filters = [Timer.user_id == user_id, Timer.end_time.is_not(None)]
    if client_id is not None:
        filters.append(Timer.client_id == client_id)
    if since is not None:
        filters.append(Timer.start_time >= since)
    if until is not None:
        filters.append(Timer.start_time < until)

    result = await session.execute(
        select(Timer.duration, Timer.billable).where(*filters)
    )
    rows = result.all()

    total = sum((Decimal(row.duration or 0) for row in rows), Decimal("0"))
    billable = sum(
        (Decimal(row.duration or 0) for row in rows if row.billable), Decimal("0")
    )

    billable_amount: Decimal | None = None
    if client_id is not None:
        rate_result = await session.execute(
            select(Profitability.hourly_rate).where(
                Profitability.user_id == user_id,
                Profitability.client_id == client_id,
            )
        )
        hourly_rate = rate_result.scalar_one_or_none()
        if hourly_rate is not None:
            billable_amount = q_money(billable * hourly_rate)

    return TimeSummary(
        entry_count=len(rows),
        total_hours=q_hours(total),
        billable_hours=q_hours(billable),
        non_billable_hours=q_hours(total - billable),
        billable_amount=billable_amount,
    )
