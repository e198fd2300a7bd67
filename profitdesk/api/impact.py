"""Task impact (Pareto) API endpoints."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.api.deps import get_coordinator, get_current_user_id, get_db
from profitdesk.api.schemas import TaskResponse, to_task_response
from profitdesk.core.errors import NotFoundError
from profitdesk.models.client import Client
from profitdesk.services.coordinator import ConsistencyCoordinator
from profitdesk.services.impact import (
    ParetoSplit,
    analyze_client_impact,
    get_high_impact_split,
    set_impact_score,
)

router = APIRouter(prefix="/api/task-impact", tags=["task-impact"])


class ImpactScoreRequest(BaseModel):
    impact_score: int


class ParetoSplitResponse(BaseModel):
    """Open tasks ranked by impact, split at the high-impact threshold."""

    threshold: int
    high_impact_tasks: list[TaskResponse]
    other_tasks: list[TaskResponse]


class ImpactStatisticsResponse(BaseModel):
    total_tasks: int
    completed_tasks: int
    completion_rate: float
    average_impact: float


class ClientImpactResponse(BaseModel):
    client_id: int
    statistics: ImpactStatisticsResponse
    analysis: ParetoSplitResponse


def _to_split_response(split: ParetoSplit) -> ParetoSplitResponse:
    return ParetoSplitResponse(
        threshold=split.threshold,
        high_impact_tasks=[to_task_response(task) for task in split.high_impact],
        other_tasks=[to_task_response(task) for task in split.other],
    )


@router.get("/high-impact", response_model=ParetoSplitResponse)
async def get_high_impact_tasks(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ParetoSplitResponse:
    """Pareto split over all of the caller's open tasks."""
    split = await get_high_impact_split(db, user_id)
    return _to_split_response(split)


@router.get("/client/{client_id}", response_model=ClientImpactResponse)
async def get_client_impact(
    client_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ClientImpactResponse:
    """Impact statistics and Pareto split for one client."""
    client_exists = await db.scalar(
        select(Client.id).where(Client.id == client_id, Client.user_id == user_id)
    )
    if client_exists is None:
        raise NotFoundError("Client", client_id)

    report = await analyze_client_impact(db, user_id, client_id)
    stats = report.statistics
    return ClientImpactResponse(
        client_id=client_id,
        statistics=ImpactStatisticsResponse(
            total_tasks=stats.total_tasks,
            completed_tasks=stats.completed_tasks,
            completion_rate=round(stats.completion_rate, 2),
            average_impact=round(stats.average_impact, 2),
        ),
        analysis=_to_split_response(report.split),
    )


@router.put("/task/{task_id}", response_model=TaskResponse)
async def update_impact_score(
    task_id: int,
    payload: ImpactScoreRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> TaskResponse:
    """Set one task's impact score."""
    task = await set_impact_score(db, user_id, task_id, payload.impact_score)
    await db.refresh(task)
    return to_task_response(task)


@router.post("/classify", response_model=ParetoSplitResponse)
async def classify_tasks(
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> ParetoSplitResponse:
    """Recompute and persist the high-impact flags."""
    split = await coordinator.classify_impact(user_id)
    return _to_split_response(split)
