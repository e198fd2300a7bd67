"""Gamification API endpoints: progress, badges, achievements and activity."""

from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from profitdesk.api.deps import get_coordinator, get_current_user_id, get_db
from profitdesk.core.errors import ConflictError, NotFoundError
from profitdesk.models.gamification import Achievement, Activity, Badge, EarnedBadge
from profitdesk.services.coordinator import ConsistencyCoordinator
from profitdesk.services.gamification import (
    EXPERIENCE_PER_LEVEL,
    BadgeStatus,
    get_or_create_progress,
    list_achievements,
    list_activities,
    list_badges_with_status,
    list_earned_badges,
    set_badge_display,
)

router = APIRouter(prefix="/api/gamification", tags=["gamification"])


class ProgressResponse(BaseModel):
    user_id: int
    points: int
    experience: int
    level: int
    next_level_experience: int


class BadgeCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    category: str = Field(min_length=1, max_length=50)
    rarity: str = Field(default="common", max_length=20)
    reward_experience: int = Field(default=0, ge=0)
    reward_points: int = Field(default=0, ge=0)


class BadgeResponse(BaseModel):
    id: int
    name: str
    description: str
    category: str
    rarity: str
    reward_experience: int
    reward_points: int


class BadgeStatusResponse(BadgeResponse):
    earned: bool
    displayed: bool
    earned_at: datetime | None = None


class EarnedBadgeResponse(BaseModel):
    badge: BadgeResponse
    earned_at: datetime
    displayed: bool


class BadgeDisplayRequest(BaseModel):
    displayed: bool


class AchievementCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1)
    icon: str = Field(min_length=1, max_length=100)
    kind: Literal["progression", "unique", "secret"] = "progression"
    requirement_type: str = Field(min_length=1, max_length=50)
    requirement_target: int = Field(ge=1)
    reward_experience: int = Field(default=0, ge=0)
    reward_badge_id: int | None = None
    is_secret: bool = False


class AchievementResponse(BaseModel):
    id: int
    name: str
    description: str
    icon: str
    kind: str
    requirement_type: str
    requirement_target: int
    reward_experience: int
    reward_badge_id: int | None
    is_secret: bool


class ActivityCreateRequest(BaseModel):
    type: str = Field(min_length=1, max_length=50)
    description: str = Field(min_length=1)
    points: int = Field(default=0, ge=0)
    experience: int = Field(default=0, ge=0)


class ActivityResponse(BaseModel):
    id: int
    type: str
    description: str
    occurred_at: datetime
    task_id: int | None
    client_id: int | None
    badge_id: int | None
    points_earned: int
    experience_earned: int
    level_up: bool


def _to_badge_response(badge: Badge) -> BadgeResponse:
    return BadgeResponse(
        id=badge.id,
        name=badge.name,
        description=badge.description,
        category=badge.category,
        rarity=badge.rarity,
        reward_experience=badge.reward_experience,
        reward_points=badge.reward_points,
    )


def _to_badge_status_response(entry: BadgeStatus) -> BadgeStatusResponse:
    return BadgeStatusResponse(
        **_to_badge_response(entry.badge).model_dump(),
        earned=entry.earned,
        displayed=entry.displayed,
        earned_at=entry.earned_at,
    )


def _to_earned_response(earned: EarnedBadge) -> EarnedBadgeResponse:
    return EarnedBadgeResponse(
        badge=_to_badge_response(earned.badge),
        earned_at=earned.earned_at,
        displayed=earned.displayed,
    )


def _to_achievement_response(achievement: Achievement) -> AchievementResponse:
    return AchievementResponse(
        id=achievement.id,
        name=achievement.name,
        description=achievement.description,
        icon=achievement.icon,
        kind=achievement.kind,
        requirement_type=achievement.requirement_type,
        requirement_target=achievement.requirement_target,
        reward_experience=achievement.reward_experience,
        reward_badge_id=achievement.reward_badge_id,
        is_secret=achievement.is_secret,
    )


def _to_activity_response(activity: Activity) -> ActivityResponse:
    return ActivityResponse(
        id=activity.id,
        type=activity.type,
        description=activity.description,
        occurred_at=activity.occurred_at,
        task_id=activity.task_id,
        client_id=activity.client_id,
        badge_id=activity.badge_id,
        points_earned=activity.points_earned,
        experience_earned=activity.experience_earned,
        level_up=activity.level_up,
    )


@router.get("/progress", response_model=ProgressResponse)
async def get_progress(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ProgressResponse:
    """Points, experience and level of the caller."""
    progress = await get_or_create_progress(db, user_id)
    return ProgressResponse(
        user_id=user_id,
        points=progress.points,
        experience=progress.experience,
        level=progress.level,
        next_level_experience=progress.level * EXPERIENCE_PER_LEVEL,
    )


@router.get("/badges", response_model=list[BadgeStatusResponse])
async def get_badges(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[BadgeStatusResponse]:
    """Badge catalogue, each badge marked as earned and displayed for the caller."""
    return [
        _to_badge_status_response(entry)
        for entry in await list_badges_with_status(db, user_id)
    ]


@router.post("/badges", response_model=BadgeResponse, status_code=status.HTTP_201_CREATED)
async def create_badge(
    payload: BadgeCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> BadgeResponse:
    """Add a badge to the catalogue."""
    existing = await db.scalar(select(Badge.id).where(Badge.name == payload.name.strip()))
    if existing is not None:
        raise ConflictError("Badge name already exists")

    badge = Badge(
        name=payload.name.strip(),
        description=payload.description,
        category=payload.category,
        rarity=payload.rarity,
        reward_experience=payload.reward_experience,
        reward_points=payload.reward_points,
    )
    db.add(badge)
    await db.flush()
    return _to_badge_response(badge)


@router.get("/badges/earned", response_model=list[EarnedBadgeResponse])
async def get_earned_badges(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[EarnedBadgeResponse]:
    """Badges the caller has earned, newest first."""
    return [_to_earned_response(earned) for earned in await list_earned_badges(db, user_id)]


@router.post(
    "/badges/{badge_id}/award",
    response_model=EarnedBadgeResponse,
    status_code=status.HTTP_201_CREATED,
)
async def award_badge(
    badge_id: int,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> EarnedBadgeResponse:
    """Award a badge to the caller. A badge can only be earned once."""
    earned = await coordinator.award_badge(user_id, badge_id)
    return _to_earned_response(earned)


@router.put("/badges/{badge_id}/display", response_model=EarnedBadgeResponse)
async def update_badge_display(
    badge_id: int,
    payload: BadgeDisplayRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> EarnedBadgeResponse:
    """Show or hide an earned badge on the caller's profile."""
    earned = await set_badge_display(db, user_id, badge_id, payload.displayed)
    return _to_earned_response(earned)


@router.get("/achievements", response_model=list[AchievementResponse])
async def get_achievements(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[AchievementResponse]:
    """Achievements catalogue."""
    return [_to_achievement_response(item) for item in await list_achievements(db)]


@router.post(
    "/achievements",
    response_model=AchievementResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_achievement(
    payload: AchievementCreateRequest,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> AchievementResponse:
    """Add an achievement to the catalogue."""
    name = payload.name.strip()
    existing = await db.scalar(select(Achievement.id).where(Achievement.name == name))
    if existing is not None:
        raise ConflictError("Achievement name already exists")
    if payload.reward_badge_id is not None:
        if await db.get(Badge, payload.reward_badge_id) is None:
            raise NotFoundError("Badge", payload.reward_badge_id)

    achievement = Achievement(
        name=name,
        description=payload.description,
        icon=payload.icon,
        kind=payload.kind,
        requirement_type=payload.requirement_type,
        requirement_target=payload.requirement_target,
        reward_experience=payload.reward_experience,
        reward_badge_id=payload.reward_badge_id,
        is_secret=payload.is_secret,
    )
    db.add(achievement)
    await db.flush()
    return _to_achievement_response(achievement)


@router.get("/activity", response_model=list[ActivityResponse])
async def get_activity_history(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[ActivityResponse]:
    """The caller's 20 most recent activities, newest first."""
    return [_to_activity_response(item) for item in await list_activities(db, user_id)]


@router.post(
    "/activity",
    response_model=ActivityResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_activity(
    payload: ActivityCreateRequest,
    user_id: int = Depends(get_current_user_id),
    coordinator: ConsistencyCoordinator = Depends(get_coordinator),
) -> ActivityResponse:
    """Log an activity and credit its points and experience to the caller."""
    activity = await coordinator.record_activity(
        user_id,
        payload.type,
        payload.description,
        points=payload.points,
        experience=payload.experience,
    )
    return _to_activity_response(activity)
