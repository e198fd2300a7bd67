"""Clients API endpoints."""

from datetime import datetime
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.api.deps import get_coordinator, get_current_user_id, get_db
from profitdesk.api.schemas import ProfitabilityResponse, to_profitability_response
from profitdesk.core.errors import InvalidInputError, NotFoundError
from profitdesk.models.client import Client, ClientStatus
from profitdesk.services.coordinator import (
    MIN_CLIENT_NAME_LENGTH,
    ClientCreateData,
    ConsistencyCoordinator,
    ProfitabilitySetup,
)

router = APIRouter(prefix="/api/clients", tags=["clients"])


class ClientCreateRequest(BaseModel):
    """Payload for creating a client, optionally with its profitability figures."""

    name: str = Field(min_length=1, max_length=255)
    description: str = ""
    status: ClientStatus = ClientStatus.ACTIVE
    notes: str = ""
    tags: list[str] = Field(default_factory=list)
    hourly_rate: Decimal | None = None
    target_hours: Decimal | None = None
    monthly_budget: Decimal | None = None


class ClientUpdateRequest(BaseModel):
    """Payload for updating a client's display attributes."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: ClientStatus | None = None
    notes: str | None = None
    tags: list[str] | None = None


class ClientMetrics(BaseModel):
    tasks_completed: int
    tasks_in_progress: int
    tasks_pending: int
    last_activity: datetime | None


class ClientResponse(BaseModel):
    """Client response model."""

    id: int
    name: str
    description: str
    status: str
    notes: str
    tags: list[str]
    metrics: ClientMetrics
    objectives_count: int
    objectives_completed: int
    objectives_pending: int
    last_profitability_update: datetime | None
    created_at: datetime
    updated_at: datetime | None


class ClientCreateResponse(ClientResponse):
    profitability: ProfitabilityResponse | None = None


class ClientListResponse(BaseModel):
    """Paginated client list response."""

    items: list[ClientResponse]
    total: int
    limit: int
    offset: int


class ClientDeleteResponse(BaseModel):
    client_id: int
    tasks_count: int
    objectives_count: int
    profitability_deleted: bool
    verified: bool


def _client_fields(client: Client) -> dict:
    return {
        "id": client.id,
        "name": client.name,
        "description": client.description,
        "status": client.status.value,
        "notes": client.notes,
        "tags": list(client.tags or []),
        "metrics": ClientMetrics(
            tasks_completed=client.tasks_completed,
            tasks_in_progress=client.tasks_in_progress,
            tasks_pending=client.tasks_pending,
            last_activity=client.last_activity,
        ),
        "objectives_count": client.objectives_count,
        "objectives_completed": client.objectives_completed,
        "objectives_pending": client.objectives_pending,
        "last_profitability_update": client.last_profitability_update,
        "created_at": client.created_at,
        "updated_at": client.updated_at,
    }


def _to_client_response(client: Client) -> ClientResponse:
    """Map SQLAlchemy client model to response model."""
    return ClientResponse(**_client_fields(client))


async def _get_client_or_404(db: AsyncSession, user_id: int, client_id: int) -> Client:
    result = await db.execute(
        select(Client).where(Client.id == client_id, Client.user_id == user_id)
    )
    client = result.scalar_one_or_none()
    if client is None:
        raise NotFoundError("Client", client_id)
    return client


@router.post("", response_model=ClientCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreateRequest,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> ClientCreateResponse:
    """Create a new client.

    Supplying ``hourly_rate`` also creates the client's profitability record.
    """
    setup = None
    if payload.hourly_rate is not None:
        setup = ProfitabilitySetup(
            hourly_rate=payload.hourly_rate,
            target_hours=payload.target_hours,
            monthly_budget=payload.monthly_budget,
        )
    elif payload.target_hours is not None or payload.monthly_budget is not None:
        raise InvalidInputError("hourly_rate is required with target_hours or monthly_budget")

    result = await coordinator.create_client(
        user_id,
        ClientCreateData(
            name=payload.name,
            description=payload.description,
            status=payload.status,
            notes=payload.notes,
            tags=payload.tags,
        ),
        profitability=setup,
    )
    return ClientCreateResponse(
        **_client_fields(result.client),
        profitability=(
            to_profitability_response(result.profitability)
            if result.profitability is not None
            else None
        ),
    )


@router.get("", response_model=ClientListResponse)
async def list_clients(
    search: str | None = Query(default=None, min_length=1),
    client_status: ClientStatus | None = Query(default=None, alias="status"),
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ClientListResponse:
    """List the caller's clients with optional search and pagination."""
    filters = [Client.user_id == user_id]
    if search:
        filters.append(func.lower(Client.name).like(f"%{search.strip().lower()}%"))
    if client_status is not None:
        filters.append(Client.status == client_status)

    total_result = await db.execute(select(func.count(Client.id)).where(*filters))
    total = int(total_result.scalar() or 0)

    clients_result = await db.execute(
        select(Client)
        .where(*filters)
        .order_by(Client.created_at.desc(), Client.id.desc())
        .limit(limit)
        .offset(offset)
    )
    clients = clients_result.scalars().all()

    return ClientListResponse(
        items=[_to_client_response(client) for client in clients],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    """Get client by ID."""
    client = await _get_client_or_404(db, user_id, client_id)
    return _to_client_response(client)


@router.patch("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    payload: ClientUpdateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ClientResponse:
    """Partially update client display attributes."""
    client = await _get_client_or_404(db, user_id, client_id)

    updates = payload.model_dump(exclude_unset=True)
    if updates.get("name") is not None:
        name = updates["name"].strip()
        if len(name) < MIN_CLIENT_NAME_LENGTH:
            raise InvalidInputError(
                f"Client name must be at least {MIN_CLIENT_NAME_LENGTH} characters"
            )
        client.name = name
    if updates.get("description") is not None:
        client.description = updates["description"].strip()
    if updates.get("status") is not None:
        client.status = updates["status"]
    if updates.get("notes") is not None:
        client.notes = updates["notes"]
    if updates.get("tags") is not None:
        client.tags = list(updates["tags"])

    await db.flush()
    await db.refresh(client)
    return _to_client_response(client)


@router.delete("/{client_id}", response_model=ClientDeleteResponse)
async def delete_client(
    client_id: int,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> ClientDeleteResponse:
    """Delete a client together with its tasks, objectives and profitability."""
    result = await coordinator.delete_client(user_id, client_id)
    return ClientDeleteResponse(
        client_id=result.client_id,
        tasks_count=result.tasks_count,
        objectives_count=result.objectives_count,
        profitability_deleted=result.profitability_deleted,
        verified=result.verified,
    )
