"""SQLAlchemy models for the ProfitDesk application."""

from profitdesk.models.base import Base, utcnow
from profitdesk.models.client import Client, ClientStatus
from profitdesk.models.gamification import (
    Achievement,
    Activity,
    Badge,
    EarnedBadge,
    UserProgress,
)
from profitdesk.models.objective import Objective
from profitdesk.models.profitability import Profitability
from profitdesk.models.task import Task, TaskPriority, TaskStatus
from profitdesk.models.timer import Timer

__all__ = [
    "Base",
    "utcnow",
    "Client",
    "ClientStatus",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "Timer",
    "Profitability",
    "Objective",
    "UserProgress",
    "Badge",
    "EarnedBadge",
    "Achievement",
    "Activity",
]
