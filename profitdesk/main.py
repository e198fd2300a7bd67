"""FastAPI application entry point with lifespan management."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from profitdesk.api.clients import router as clients_router
from profitdesk.api.gamification import router as gamification_router
from profitdesk.api.health import router as health_router
from profitdesk.api.impact import router as impact_router
from profitdesk.api.middleware import RequestContextMiddleware
from profitdesk.api.objectives import router as objectives_router
from profitdesk.api.profitability import router as profitability_router
from profitdesk.api.tasks import router as tasks_router
from profitdesk.api.timers import router as timers_router
from profitdesk.core.config import settings
from profitdesk.core.database import create_engine, create_session_factory
from profitdesk.core.errors import PersistenceFailure, ProfitDeskError
from profitdesk.core.logging import configure_logging, get_logger
from profitdesk.core.sentry import init_sentry

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application lifecycle resources.

    Startup:
        - Configure structured logging
        - Initialize Sentry error tracking
        - Create database engine and session factory

    Shutdown:
        - Dispose database engine
    """
    # Configure logging first
    configure_logging()
    logger.info("Starting application", environment=settings.environment)

    # Initialize error tracking
    init_sentry()

    # Create database engine and session factory
    app.state.db_engine = create_engine()
    app.state.async_session = create_session_factory(app.state.db_engine)
    logger.info("Database engine created")

    yield

    # Shutdown
    logger.info("Shutting down application")

    await app.state.db_engine.dispose()
    logger.info("Database engine disposed")


app = FastAPI(
    title="ProfitDesk",
    description="Freelancer client, task and profitability manager",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ProfitDeskError)
async def profitdesk_error_handler(request: Request, exc: ProfitDeskError) -> JSONResponse:
    """Map domain errors to their HTTP status with a ``detail`` body."""
    if isinstance(exc, PersistenceFailure):
        logger.error(
            "persistence_failure",
            operation=exc.operation,
            path=request.url.path,
        )
    else:
        logger.info(
            "request_rejected",
            error=type(exc).__name__,
            detail=exc.message,
            path=request.url.path,
        )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Add CORS middleware for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Add request context middleware
app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health_router)
app.include_router(clients_router)
app.include_router(tasks_router)
app.include_router(timers_router)
app.include_router(profitability_router)
app.include_router(impact_router)
app.include_router(objectives_router)
app.include_router(gamification_router)
