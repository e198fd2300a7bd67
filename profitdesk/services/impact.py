"""Task impact ranking (Pareto 80/20 classification).

Impact scores are supplied by the user; nothing here derives them. Open
tasks are ranked by score and the top share (20% by default, rounded up) is
classified as high impact.

Ranking order is deterministic: impact score descending, then due date
ascending with undated tasks last, then task id ascending.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.core.config import settings
from profitdesk.core.errors import InvalidInputError, NotFoundError
from profitdesk.models.task import Task, TaskStatus

MIN_IMPACT_SCORE = 0
MAX_IMPACT_SCORE = 100


def pareto_threshold(count: int, ratio: float | None = None) -> int:
    """Number of tasks in the high-impact share, ``ceil(count * ratio)``."""
    if count <= 0:
        return 0
    share = settings.pareto_ratio if ratio is None else ratio
    # round() strips float noise such as 5 * 0.2 == 1.0000000000000002
    return math.ceil(round(count * share, 9))


def ranking_key(task: Task) -> tuple[int, int, date, int]:
    """Sort key: score desc, due date asc (undated last), id asc."""
    return (
        -(task.impact_score or 0),
        1 if task.due_date is None else 0,
        task.due_date or date.max,
        task.id or 0,
    )


def rank_tasks(tasks: Sequence[Task]) -> list[Task]:
    """Return tasks ordered from highest to lowest impact."""
    return sorted(tasks, key=ranking_key)


@dataclass
class ParetoSplit:
    """Ranked open tasks split into the high-impact share and the rest."""

    high_impact: list[Task] = field(default_factory=list)
    other: list[Task] = field(default_factory=list)

    @property
    def threshold(self) -> int:
        return len(self.high_impact)


def partition_high_impact(
    tasks: Sequence[Task], ratio: float | None = None
) -> ParetoSplit:
    """Rank tasks and split off the top ``ceil(n * ratio)``.

    Example:
        Scores [90, 80, 70, 60, 50] -> threshold 1, only the 90 task.
        Scores [10, 20, 30, 40, 50, 60] -> threshold 2, the 60 and 50 tasks.
    """
    ranked = rank_tasks(tasks)
    threshold = pareto_threshold(len(ranked), ratio)
    return ParetoSplit(high_impact=ranked[:threshold], other=ranked[threshold:])


@dataclass(frozen=True)
class ImpactStatistics:
    """Aggregate impact figures for one client's tasks."""

    total_tasks: int
    completed_tasks: int
    completion_rate: float
    average_impact: float


def compute_statistics(tasks: Sequence[Task]) -> ImpactStatistics:
    """Completion rate and average impact; both 0 for an empty task set."""
    total = len(tasks)
    completed = sum(1 for task in tasks if task.status == TaskStatus.COMPLETED)
    if total == 0:
        return ImpactStatistics(
            total_tasks=0, completed_tasks=0, completion_rate=0.0, average_impact=0.0
        )
    score_sum = sum(task.impact_score or 0 for task in tasks)
    return ImpactStatistics(
        total_tasks=total,
        completed_tasks=completed,
        completion_rate=completed / total * 100,
        average_impact=score_sum / total,
    )


@dataclass
class ClientImpactReport:
    """Per-client impact view: statistics plus the Pareto split."""

    client_id: int
    statistics: ImpactStatistics
    split: ParetoSplit


def validate_impact_score(score: int) -> int:
    """Reject scores outside 0-100."""
    if isinstance(score, bool) or not isinstance(score, int):
        raise InvalidInputError("impact_score must be an integer")
    if not MIN_IMPACT_SCORE <= score <= MAX_IMPACT_SCORE:
        raise InvalidInputError(
            f"impact_score must be between {MIN_IMPACT_SCORE} and {MAX_IMPACT_SCORE}"
        )
    return score


async def fetch_open_tasks(
    session: AsyncSession,
    user_id: int,
    client_id: int | None = None,
) -> list[Task]:
    """Load the user's tasks that are not completed."""
    stmt = select(Task).where(
        Task.user_id == user_id,
        Task.status != TaskStatus.COMPLETED,
    )
    if client_id is not None:
        stmt = stmt.where(Task.client_id == client_id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_high_impact_split(
    session: AsyncSession,
    user_id: int,
) -> ParetoSplit:
    """Pareto split over all of the user's open tasks."""
    tasks = await fetch_open_tasks(session, user_id)
    return partition_high_impact(tasks)


async def analyze_client_impact(
    session: AsyncSession,
    user_id: int,
    client_id: int,
) -> ClientImpactReport:
    """Impact statistics over all of a client's tasks.

    The Pareto split is computed over the client's open tasks only, so that
    finished work never crowds out what is left to do.
    """
    result = await session.execute(
        select(Task).where(Task.user_id == user_id, Task.client_id == client_id)
    )
    tasks = list(result.scalars().all())
    open_tasks = [task for task in tasks if task.status != TaskStatus.COMPLETED]
    return ClientImpactReport(
        client_id=client_id,
        statistics=compute_statistics(tasks),
        split=partition_high_impact(open_tasks),
    )


async def set_impact_score(
    session: AsyncSession,
    user_id: int,
    task_id: int,
    impact_score: int,
) -> Task:
    """Write a single task's impact score. Other tasks are untouched."""
    score = validate_impact_score(impact_score)
    result = await session.execute(
        select(Task).where(Task.id == task_id, Task.user_id == user_id)
    )
    task = result.scalar_one_or_none()
    if task is None:
        raise NotFoundError("Task", task_id)
    task.impact_score = score
    await session.flush()
    return task


__all__ = [
    "ClientImpactReport",
    "ImpactStatistics",
    "ParetoSplit",
    "analyze_client_impact",
    "compute_statistics",
    "fetch_open_tasks",
    "get_high_impact_split",
    "pareto_threshold",
    "partition_high_impact",
    "rank_tasks",
    "ranking_key",
    "set_impact_score",
    "validate_impact_score",
]
