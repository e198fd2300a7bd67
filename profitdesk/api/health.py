"""Health check endpoint for infrastructure verification."""

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError

from profitdesk.core.logging import get_logger
from profitdesk.models.client import Client

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


class HealthResponse(BaseModel):
    """Health check response model.

    ``db`` is connected, disconnected or unconfigured. ``tables`` is ready
    once the ProfitDesk schema can be queried, missing when it cannot and
    unknown when the database was never reached.
    """

    status: str
    db: str
    tables: str


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Check database connectivity and that the schema has been migrated.

    Always answers 200; anything short of a reachable, migrated database is
    reported as ``degraded``.
    """
    session_factory = getattr(request.app.state, "async_session", None)
    if session_factory is None:
        logger.warning("health_check_without_session_factory")
        return HealthResponse(status="degraded", db="unconfigured", tables="unknown")

    async with session_factory() as session:
        try:
            await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            logger.exception("database_health_check_failed", error=str(e))
            return HealthResponse(status="degraded", db="disconnected", tables="unknown")

        try:
            await session.execute(select(Client.id).limit(1))
            tables = "ready"
        except SQLAlchemyError as e:
            logger.warning("schema_health_check_failed", error=str(e))
            tables = "missing"

    return HealthResponse(
        status="ok" if tables == "ready" else "degraded",
        db="connected",
        tables=tables,
    )
