"""Time ledger API endpoints."""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.api.deps import get_coordinator, get_current_user_id, get_db
from profitdesk.api.schemas import ClientRef, client_ref_id
from profitdesk.models.timer import Timer
from profitdesk.services.coordinator import ConsistencyCoordinator, TimerStartData
from profitdesk.services.ledger import (
    get_active_timer,
    get_timer,
    list_timers,
    summarize_time,
)

router = APIRouter(prefix="/api/timers", tags=["timers"])


class TimerStartRequest(BaseModel):
    """Payload for starting a timer."""

    client_id: ClientRef | None = None
    task_id: int | None = Field(default=None, gt=0)
    description: str = ""
    billable: bool = True
    start_time: datetime | None = None


class TimerStopRequest(BaseModel):
    end_time: datetime | None = None


class TimerResponse(BaseModel):
    """Ledger entry response model."""

    id: int
    client_id: int | None
    task_id: int | None
    description: str
    start_time: datetime
    end_time: datetime | None
    duration: float
    billable: bool
    is_running: bool


class TimerStopResponse(BaseModel):
    timer: TimerResponse
    task_actual_time: float | None = None


class TimerListResponse(BaseModel):
    items: list[TimerResponse]
    total: int
    limit: int
    offset: int


class TimeSummaryResponse(BaseModel):
    client_id: int | None
    entry_count: int
    total_hours: float
    billable_hours: float
    non_billable_hours: float
    billable_amount: float | None


def _naive_utc(value: datetime | None) -> datetime | None:
    """Drop tzinfo after converting to UTC, the storage convention."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _to_timer_response(timer: Timer) -> TimerResponse:
    return TimerResponse(
        id=timer.id,
        client_id=timer.client_id,
        task_id=timer.task_id,
        description=timer.description,
        start_time=timer.start_time,
        end_time=timer.end_time,
        duration=float(timer.duration or 0),
        billable=timer.billable,
        is_running=timer.is_running,
    )


@router.post("", response_model=TimerResponse, status_code=status.HTTP_201_CREATED)
async def start_timer(
    payload: TimerStartRequest,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> TimerResponse:
    """Start a timer. Fails with 409 while another timer is running."""
    timer = await coordinator.start_timer(
        user_id,
        TimerStartData(
            client_id=client_ref_id(payload.client_id),
            task_id=payload.task_id,
            description=payload.description,
            billable=payload.billable,
            started_at=_naive_utc(payload.start_time),
        ),
    )
    return _to_timer_response(timer)


@router.get("", response_model=TimerListResponse)
async def list_user_timers(
    client_id: int | None = Query(default=None, gt=0),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TimerListResponse:
    """List ledger entries, newest first."""
    timers, total = await list_timers(
        db, user_id, client_id=client_id, limit=limit, offset=offset
    )
    return TimerListResponse(
        items=[_to_timer_response(timer) for timer in timers],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/active", response_model=TimerResponse | None)
async def get_active(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TimerResponse | None:
    """The running timer, or null."""
    timer = await get_active_timer(db, user_id)
    return _to_timer_response(timer) if timer is not None else None


@router.get("/summary", response_model=TimeSummaryResponse)
async def get_summary(
    client_id: int | None = Query(default=None, gt=0),
    since: datetime | None = Query(default=None),
    until: datetime | None = Query(default=None),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TimeSummaryResponse:
    """Aggregate stopped time, optionally per client and window."""
    summary = await summarize_time(
        db,
        user_id,
        client_id=client_id,
        since=_naive_utc(since),
        until=_naive_utc(until),
    )
    return TimeSummaryResponse(
        client_id=client_id,
        entry_count=summary.entry_count,
        total_hours=float(summary.total_hours),
        billable_hours=float(summary.billable_hours),
        non_billable_hours=float(summary.non_billable_hours),
        billable_amount=(
            float(summary.billable_amount) if summary.billable_amount is not None else None
        ),
    )


@router.get("/{timer_id}", response_model=TimerResponse)
async def get_user_timer(
    timer_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TimerResponse:
    """Get a ledger entry by ID."""
    timer = await get_timer(db, user_id, timer_id)
    return _to_timer_response(timer)


@router.patch("/{timer_id}/stop", response_model=TimerStopResponse)
async def stop_timer(
    timer_id: int,
    payload: TimerStopRequest | None = None,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> TimerStopResponse:
    """Stop a running timer and credit its hours to the linked task."""
    ended_at = _naive_utc(payload.end_time) if payload is not None else None
    result = await coordinator.stop_timer(user_id, timer_id, ended_at=ended_at)
    return TimerStopResponse(
        timer=_to_timer_response(result.timer),
        task_actual_time=(
            float(result.task.actual_time) if result.task is not None else None
        ),
    )
