"""Client objectives API endpoints."""

from datetime import date, datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.api.deps import get_coordinator, get_current_user_id, get_db
from profitdesk.api.schemas import ClientRef, client_ref_id
from profitdesk.core.errors import NotFoundError
from profitdesk.models.objective import Objective
from profitdesk.services.coordinator import (
    ConsistencyCoordinator,
    ObjectiveCreateData,
    ObjectiveUpdateData,
)

router = APIRouter(prefix="/api/objectives", tags=["objectives"])


class ObjectiveCreateRequest(BaseModel):
    client_id: ClientRef
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    target_value: Decimal = Decimal("100")
    current_value: Decimal = Decimal("0")
    unit: str = Field(default="%", max_length=20)
    due_date: date
    is_high_impact: bool = False


class ObjectiveUpdateRequest(BaseModel):
    client_id: ClientRef | None = None
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    target_value: Decimal | None = None
    current_value: Decimal | None = None
    unit: str | None = Field(default=None, max_length=20)
    due_date: date | None = None
    is_high_impact: bool | None = None
    is_completed: bool | None = None


class ObjectiveResponse(BaseModel):
    id: int
    client_id: int
    title: str
    description: str | None
    target_value: float
    current_value: float
    unit: str
    progress: int
    due_date: date
    is_high_impact: bool
    is_completed: bool
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime | None


class ObjectiveListResponse(BaseModel):
    items: list[ObjectiveResponse]
    total: int
    limit: int
    offset: int


def _to_objective_response(objective: Objective) -> ObjectiveResponse:
    return ObjectiveResponse(
        id=objective.id,
        client_id=objective.client_id,
        title=objective.title,
        description=objective.description,
        target_value=float(objective.target_value),
        current_value=float(objective.current_value),
        unit=objective.unit,
        progress=objective.progress,
        due_date=objective.due_date,
        is_high_impact=objective.is_high_impact,
        is_completed=objective.is_completed,
        completed_at=objective.completed_at,
        created_at=objective.created_at,
        updated_at=objective.updated_at,
    )


@router.post("", response_model=ObjectiveResponse, status_code=status.HTTP_201_CREATED)
async def create_objective(
    payload: ObjectiveCreateRequest,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> ObjectiveResponse:
    """Create an objective for one of the caller's clients."""
    objective = await coordinator.create_objective(
        user_id,
        ObjectiveCreateData(
            client_id=client_ref_id(payload.client_id),
            title=payload.title,
            description=payload.description,
            target_value=payload.target_value,
            current_value=payload.current_value,
            unit=payload.unit,
            due_date=payload.due_date,
            is_high_impact=payload.is_high_impact,
        ),
    )
    return _to_objective_response(objective)


@router.get("", response_model=ObjectiveListResponse)
async def list_objectives(
    client_id: int | None = Query(default=None, gt=0),
    is_completed: bool | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ObjectiveListResponse:
    """List objectives ordered by due date."""
    filters = [Objective.user_id == user_id]
    if client_id is not None:
        filters.append(Objective.client_id == client_id)
    if is_completed is not None:
        filters.append(Objective.is_completed == is_completed)

    total_result = await db.execute(select(func.count(Objective.id)).where(*filters))
    total = int(total_result.scalar() or 0)

    result = await db.execute(
        select(Objective)
        .where(*filters)
        .order_by(Objective.due_date, Objective.id)
        .limit(limit)
        .offset(offset)
    )
    return ObjectiveListResponse(
        items=[_to_objective_response(objective) for objective in result.scalars().all()],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{objective_id}", response_model=ObjectiveResponse)
async def get_objective(
    objective_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ObjectiveResponse:
    result = await db.execute(
        select(Objective).where(
            Objective.id == objective_id, Objective.user_id == user_id
        )
    )
    objective = result.scalar_one_or_none()
    if objective is None:
        raise NotFoundError("Objective", objective_id)
    return _to_objective_response(objective)


@router.patch("/{objective_id}", response_model=ObjectiveResponse)
async def update_objective(
    objective_id: int,
    payload: ObjectiveUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> ObjectiveResponse:
    """Partially update an objective; progress is recomputed."""
    objective = await coordinator.update_objective(
        user_id,
        objective_id,
        ObjectiveUpdateData(
            client_id=client_ref_id(payload.client_id),
            title=payload.title,
            description=payload.description,
            target_value=payload.target_value,
            current_value=payload.current_value,
            unit=payload.unit,
            due_date=payload.due_date,
            is_high_impact=payload.is_high_impact,
            is_completed=payload.is_completed,
        ),
    )
    return _to_objective_response(objective)


@router.delete("/{objective_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_objective(
    objective_id: int,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> Response:
    await coordinator.delete_objective(user_id, objective_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
