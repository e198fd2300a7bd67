"""Response and reference models shared by several routers."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from profitdesk.models.profitability import Profitability
from profitdesk.models.task import Task


class ClientSummary(BaseModel):
    """Expanded client reference as sent by clients that embed the client."""

    id: int = Field(gt=0)
    name: str | None = None


# A client reference is either the bare id or an embedded summary.
ClientRef = int | ClientSummary


def client_ref_id(ref: ClientRef | None) -> int | None:
    """Normalize a client reference to its id."""
    if ref is None:
        return None
    if isinstance(ref, ClientSummary):
        return ref.id
    return ref


class TaskResponse(BaseModel):
    """Task response model."""

    id: int
    client_id: int | None
    title: str
    description: str | None
    status: str
    priority: str
    category: str
    due_date: date | None
    estimated_time: float
    actual_time: float
    impact_score: int
    is_high_impact: bool
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime | None


def to_task_response(task: Task) -> TaskResponse:
    """Map SQLAlchemy task model to response model."""
    return TaskResponse(
        id=task.id,
        client_id=task.client_id,
        title=task.title,
        description=task.description,
        status=task.status.value,
        priority=task.priority.value,
        category=task.category,
        due_date=task.due_date,
        estimated_time=float(task.estimated_time or 0),
        actual_time=float(task.actual_time or 0),
        impact_score=task.impact_score,
        is_high_impact=task.is_high_impact,
        completed_at=task.completed_at,
        created_at=task.created_at,
        updated_at=task.updated_at,
    )


class ProfitabilityResponse(BaseModel):
    """Profitability record response model."""

    id: int
    client_id: int
    hourly_rate: float
    target_hours: float
    actual_hours: float
    revenue: float
    profit: float
    profitability: float
    remaining_hours: float
    version: int
    updated_at: datetime | None


def to_profitability_response(record: Profitability) -> ProfitabilityResponse:
    """Map SQLAlchemy profitability model to response model."""
    return ProfitabilityResponse(
        id=record.id,
        client_id=record.client_id,
        hourly_rate=float(record.hourly_rate),
        target_hours=float(record.target_hours),
        actual_hours=float(record.actual_hours),
        revenue=float(record.revenue),
        profit=float(record.profit),
        profitability=float(record.profitability),
        remaining_hours=float(record.remaining_hours),
        version=record.version,
        updated_at=record.updated_at,
    )
