"""Gamification: completion rewards, levels, badges and activity history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.core.errors import NotFoundError
from profitdesk.models.gamification import (
    Achievement,
    Activity,
    Badge,
    EarnedBadge,
    UserProgress,
)

logger = structlog.get_logger()

BASE_POINTS = 10
POINTS_PER_IMPACT = 2
BASE_EXPERIENCE = 20
EXPERIENCE_PER_IMPACT = 3
EXPERIENCE_PER_LEVEL = 100
ACTIVITY_HISTORY_LIMIT = 20


@dataclass(frozen=True)
class TaskRewards:
    """Rewards granted for completing one task."""

    points: int
    experience: int
    level_up: bool = False
    level: int = 1


def completion_rewards(impact_score: int) -> tuple[int, int]:
    """Points and experience for completing a task with the given score.

    Example:
        >>> completion_rewards(50)
        (110, 170)
    """
    score = impact_score or 0
    return (
        BASE_POINTS + score * POINTS_PER_IMPACT,
        BASE_EXPERIENCE + score * EXPERIENCE_PER_IMPACT,
    )


def apply_level_up(progress: UserProgress) -> bool:
    """Raise the level by one once experience reaches ``level * 100``."""
    if progress.experience >= progress.level * EXPERIENCE_PER_LEVEL:
        progress.level += 1
        return True
    return False


async def get_or_create_progress(session: AsyncSession, user_id: int) -> UserProgress:
    """Load the user's progress row, creating it on first use."""
    progress = await session.get(UserProgress, user_id)
    if progress is None:
        progress = UserProgress(user_id=user_id, points=0, experience=0, level=1)
        session.add(progress)
        await session.flush()
    return progress


async def grant_task_rewards(
    session: AsyncSession,
    user_id: int,
    impact_score: int,
) -> TaskRewards:
    """Credit completion rewards inside the caller's transaction."""
    points, experience = completion_rewards(impact_score)
    progress = await get_or_create_progress(session, user_id)
    progress.points += points
    progress.experience += experience
    level_up = apply_level_up(progress)
    if level_up:
        logger.info("user_level_up", user_id=user_id, level=progress.level)
    return TaskRewards(
        points=points,
        experience=experience,
        level_up=level_up,
        level=progress.level,
    )


async def list_badges(session: AsyncSession) -> list[Badge]:
    result = await session.execute(select(Badge).order_by(Badge.category, Badge.name))
    return list(result.scalars().all())


async def list_earned_badges(session: AsyncSession, user_id: int) -> list[EarnedBadge]:
    result = await session.execute(
        select(EarnedBadge)
        .where(EarnedBadge.user_id == user_id)
        .order_by(EarnedBadge.earned_at.desc(), EarnedBadge.id.desc())
    )
    return list(result.scalars().all())


@dataclass(frozen=True)
class BadgeStatus:
    """A catalogue badge together with the caller's hold on it."""

    badge: Badge
    earned: bool
    displayed: bool
    earned_at: datetime | None = None


async def list_badges_with_status(
    session: AsyncSession, user_id: int
) -> list[BadgeStatus]:
    """Whole catalogue, each badge marked as earned and displayed or not."""
    earned_by_badge = {
        earned.badge_id: earned for earned in await list_earned_badges(session, user_id)
    }
    statuses = []
    for badge in await list_badges(session):
        earned = earned_by_badge.get(badge.id)
        statuses.append(
            BadgeStatus(
                badge=badge,
                earned=earned is not None,
                displayed=earned is not None and earned.displayed,
                earned_at=earned.earned_at if earned is not None else None,
            )
        )
    return statuses


async def set_badge_display(
    session: AsyncSession,
    user_id: int,
    badge_id: int,
    displayed: bool,
) -> EarnedBadge:
    """Show or hide an earned badge on the user's profile.

    Raises:
        NotFoundError: If the user has not earned the badge.
    """
    earned = await session.scalar(
        select(EarnedBadge).where(
            EarnedBadge.user_id == user_id,
            EarnedBadge.badge_id == badge_id,
        )
    )
    if earned is None:
        raise NotFoundError("Earned badge", badge_id)
    earned.displayed = displayed
    await session.flush()
    return earned


async def list_achievements(session: AsyncSession) -> list[Achievement]:
    result = await session.execute(
        select(Achievement).order_by(
            Achievement.requirement_type, Achievement.requirement_target
        )
    )
    return list(result.scalars().all())


async def add_activity(
    session: AsyncSession,
    user_id: int,
    type: str,
    description: str,
    *,
    occurred_at: datetime | None = None,
    task_id: int | None = None,
    client_id: int | None = None,
    badge_id: int | None = None,
    points: int = 0,
    experience: int = 0,
    level_up: bool = False,
) -> Activity:
    """Append an entry to the user's activity history.

    Rewards listed on the entry are informational; crediting them is up to
    the caller.
    """
    activity = Activity(
        user_id=user_id,
        type=type,
        description=description,
        task_id=task_id,
        client_id=client_id,
        badge_id=badge_id,
        points_earned=points,
        experience_earned=experience,
        level_up=level_up,
    )
    if occurred_at is not None:
        activity.occurred_at = occurred_at
    session.add(activity)
    await session.flush()
    return activity


async def list_activities(
    session: AsyncSession,
    user_id: int,
    limit: int = ACTIVITY_HISTORY_LIMIT,
) -> list[Activity]:
    """Most recent activity entries of a user, newest first."""
    result = await session.execute(
        select(Activity)
        .where(Activity.user_id == user_id)
        .order_by(Activity.occurred_at.desc(), Activity.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
