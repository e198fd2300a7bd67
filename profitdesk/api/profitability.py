"""Client profitability API endpoints."""

from decimal import Decimal

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.api.deps import get_coordinator, get_current_user_id, get_db
from profitdesk.api.schemas import ProfitabilityResponse, to_profitability_response
from profitdesk.core.errors import NotFoundError
from profitdesk.models.profitability import Profitability
from profitdesk.services.coordinator import ConsistencyCoordinator, ProfitabilityUpdateData

router = APIRouter(prefix="/api/profitability", tags=["profitability"])


class ProfitabilityUpdateRequest(BaseModel):
    """Manual edit of a client's figures. Derived fields are recomputed."""

    hourly_rate: Decimal | None = None
    target_hours: Decimal | None = None
    actual_hours: Decimal | None = None
    revenue: Decimal | None = None


@router.get("", response_model=list[ProfitabilityResponse])
async def list_profitability(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[ProfitabilityResponse]:
    """All of the caller's profitability records."""
    result = await db.execute(
        select(Profitability)
        .where(Profitability.user_id == user_id)
        .order_by(Profitability.client_id)
    )
    return [to_profitability_response(record) for record in result.scalars().all()]


@router.get("/{client_id}", response_model=ProfitabilityResponse)
async def get_profitability(
    client_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ProfitabilityResponse:
    """Profitability record of one client."""
    result = await db.execute(
        select(Profitability).where(
            Profitability.user_id == user_id,
            Profitability.client_id == client_id,
        )
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError("Profitability", client_id)
    return to_profitability_response(record)


@router.put("/{client_id}", response_model=ProfitabilityResponse)
async def upsert_profitability(
    client_id: int,
    payload: ProfitabilityUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> ProfitabilityResponse:
    """Create or update a client's figures and recalculate."""
    record = await coordinator.upsert_profitability(
        user_id,
        client_id,
        ProfitabilityUpdateData(
            hourly_rate=payload.hourly_rate,
            target_hours=payload.target_hours,
            actual_hours=payload.actual_hours,
            revenue=payload.revenue,
        ),
    )
    return to_profitability_response(record)


@router.post("/{client_id}/rollup", response_model=ProfitabilityResponse)
async def rollup_hours(
    client_id: int,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> ProfitabilityResponse:
    """Resync actual hours from completed tasks and recalculate."""
    record = await coordinator.rollup_hours(user_id, client_id)
    return to_profitability_response(record)
