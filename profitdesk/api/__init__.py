"""API module exports."""

from profitdesk.api.clients import router as clients_router
from profitdesk.api.deps import get_coordinator, get_current_user_id, get_db
from profitdesk.api.gamification import router as gamification_router
from profitdesk.api.health import router as health_router
from profitdesk.api.impact import router as impact_router
from profitdesk.api.objectives import router as objectives_router
from profitdesk.api.profitability import router as profitability_router
from profitdesk.api.tasks import router as tasks_router
from profitdesk.api.timers import router as timers_router

__all__ = [
    "clients_router",
    "gamification_router",
    "get_coordinator",
    "get_current_user_id",
    "get_db",
    "health_router",
    "impact_router",
    "objectives_router",
    "profitability_router",
    "tasks_router",
    "timers_router",
]
