"""Task management API endpoints."""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.api.deps import get_coordinator, get_current_user_id, get_db
from profitdesk.api.schemas import ClientRef, TaskResponse, client_ref_id, to_task_response
from profitdesk.core.errors import NotFoundError
from profitdesk.models.task import Task, TaskPriority, TaskStatus
from profitdesk.services.coordinator import (
    ConsistencyCoordinator,
    TaskCreateData,
    TaskUpdateData,
)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


class TaskCreateRequest(BaseModel):
    """Payload for creating a task."""

    title: str = Field(min_length=1, max_length=255)
    client_id: ClientRef | None = None
    description: str | None = None
    priority: TaskPriority = TaskPriority.MEDIUM
    category: str = Field(default="other", min_length=1, max_length=50)
    due_date: date | None = None
    estimated_time: Decimal = Decimal("0")
    impact_score: int = 0


class TaskUpdateRequest(BaseModel):
    """Payload for partially updating a task.

    Sending ``client_id: null`` explicitly detaches the task from its client.
    """

    title: str | None = Field(default=None, min_length=1, max_length=255)
    client_id: ClientRef | None = None
    description: str | None = None
    status: TaskStatus | None = None
    priority: TaskPriority | None = None
    category: str | None = Field(default=None, min_length=1, max_length=50)
    due_date: date | None = None
    estimated_time: Decimal | None = None
    actual_time: Decimal | None = None
    impact_score: int | None = None


class TaskCompleteRequest(BaseModel):
    """Optional final figure for the hours worked."""

    actual_time: Decimal | None = None


class TaskRewardsResponse(BaseModel):
    points: int
    experience: int
    level_up: bool
    level: int


class TaskCompletionResponse(BaseModel):
    task: TaskResponse
    rewards: TaskRewardsResponse


class TaskListResponse(BaseModel):
    """Paginated task list response."""

    items: list[TaskResponse]
    total: int
    limit: int
    offset: int


def _build_task_filters(
    user_id: int,
    client_id: int | None,
    task_status: TaskStatus | None,
    priority: TaskPriority | None,
    is_high_impact: bool | None,
) -> list[object]:
    """Build SQLAlchemy filter clauses for task listing."""
    filters: list[object] = [Task.user_id == user_id]
    if client_id is not None:
        filters.append(Task.client_id == client_id)
    if task_status is not None:
        filters.append(Task.status == task_status)
    if priority is not None:
        filters.append(Task.priority == priority)
    if is_high_impact is not None:
        filters.append(Task.is_high_impact == is_high_impact)
    return filters


async def _get_task_or_404(db: AsyncSession, user_id: int, task_id: int) -> Task:
    """Load the caller's task or raise NotFoundError."""
    result = await db.execute(
        select(Task).where(Task.id == task_id, Task.user_id == user_id)
    )
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFoundError("Task", task_id)
    return task


@router.post("", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreateRequest,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> TaskResponse:
    """Create a new to-do task."""
    task = await coordinator.create_task(
        user_id,
        TaskCreateData(
            title=payload.title,
            client_id=client_ref_id(payload.client_id),
            description=payload.description,
            priority=payload.priority,
            category=payload.category,
            due_date=payload.due_date,
            estimated_time=payload.estimated_time,
            impact_score=payload.impact_score,
        ),
    )
    return to_task_response(task)


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    client_id: int | None = Query(default=None, gt=0),
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    priority: TaskPriority | None = Query(default=None),
    is_high_impact: bool | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TaskListResponse:
    """List tasks with optional filters and pagination."""
    filters = _build_task_filters(
        user_id=user_id,
        client_id=client_id,
        task_status=status_filter,
        priority=priority,
        is_high_impact=is_high_impact,
    )

    total_result = await db.execute(select(func.count(Task.id)).where(*filters))
    total = int(total_result.scalar() or 0)

    tasks_result = await db.execute(
        select(Task)
        .where(*filters)
        .order_by(Task.created_at.desc(), Task.id.desc())
        .limit(limit)
        .offset(offset)
    )
    tasks = tasks_result.scalars().all()

    return TaskListResponse(
        items=[to_task_response(task) for task in tasks],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TaskResponse:
    """Get task by ID."""
    task = await _get_task_or_404(db, user_id, task_id)
    return to_task_response(task)


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    payload: TaskUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> TaskResponse:
    """Update task fields; status changes follow the task lifecycle."""
    clear_client = "client_id" in payload.model_fields_set and payload.client_id is None
    task = await coordinator.update_task(
        user_id,
        task_id,
        TaskUpdateData(
            title=payload.title,
            description=payload.description,
            client_id=client_ref_id(payload.client_id),
            clear_client=clear_client,
            status=payload.status,
            priority=payload.priority,
            category=payload.category,
            due_date=payload.due_date,
            estimated_time=payload.estimated_time,
            actual_time=payload.actual_time,
            impact_score=payload.impact_score,
        ),
    )
    return to_task_response(task)


@router.post("/{task_id}/complete", response_model=TaskCompletionResponse)
async def complete_task(
    task_id: int,
    payload: TaskCompleteRequest | None = None,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> TaskCompletionResponse:
    """Complete a task and grant the completion rewards."""
    result = await coordinator.complete_task(
        user_id,
        task_id,
        actual_time=payload.actual_time if payload is not None else None,
    )
    return TaskCompletionResponse(
        task=to_task_response(result.task),
        rewards=TaskRewardsResponse(
            points=result.rewards.points,
            experience=result.rewards.experience,
            level_up=result.rewards.level_up,
            level=result.rewards.level,
        ),
    )


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> Response:
    """Delete a task."""
    await coordinator.delete_task(user_id, task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
