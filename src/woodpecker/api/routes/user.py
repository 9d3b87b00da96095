"""User progress routes: achievements, streak, XP and settings.

All routes require an authenticated caller since they expose user-specific
progress.
"""
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from woodpecker.api.deps import get_current_user
from woodpecker.api.schemas import (
    AchievementsListResponse,
    AchievementWithStatus,
    LeaderboardCheckResponse,
    MilestoneResponse,
    StreakResponse,
    UnlockedAchievementResponse,
    UserSettingsRequest,
    UserSettingsResponse,
    XpResponse,
)
from woodpecker.models.base import get_db
from woodpecker.models.models import User
from woodpecker.models.progress_models import StreakMilestone
from woodpecker.services.achievement_service import AchievementService
from woodpecker.services.user_service import UserService

router = APIRouter()


def _milestone_response(milestone: Optional[StreakMilestone]) -> Optional[MilestoneResponse]:
    if milestone is None:
        return None
    return MilestoneResponse(
        days=milestone.days,
        title=milestone.title,
        message=milestone.message,
        emoji=milestone.emoji,
    )


@router.get("/achievements", response_model=AchievementsListResponse)
def get_achievements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get every achievement with the caller's unlock status."""
    statuses = AchievementService(db).get_user_achievements(current_user.id)
    achievements = [
        AchievementWithStatus(
            id=status.definition.id,
            name=status.definition.name,
            description=status.definition.description,
            category=status.definition.category.value,
            icon=status.definition.icon,
            is_unlocked=status.is_unlocked,
            unlocked_at=status.unlocked_at,
        )
        for status in statuses
    ]
    return AchievementsListResponse(
        achievements=achievements,
        total=len(achievements),
        unlocked=sum(1 for a in achievements if a.is_unlocked),
    )


@router.post("/achievements/leaderboard-check", response_model=LeaderboardCheckResponse)
def check_leaderboard_achievements(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Evaluate the leaderboard rank achievement; called when the leaderboard is viewed."""
    unlocked = AchievementService(db).check_leaderboard_rank(current_user.id)
    return LeaderboardCheckResponse(
        unlocked_achievements=[
            UnlockedAchievementResponse(
                id=a.id,
                name=a.name,
                description=a.description,
                icon=a.icon,
                unlocked_at=a.unlocked_at,
            )
            for a in unlocked
        ]
    )


@router.get("/streak", response_model=StreakResponse)
def get_streak(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    summary = UserService(db).get_streak_summary(current_user)
    return StreakResponse(
        current_streak=summary.current_streak,
        longest_streak=summary.longest_streak,
        last_trained_date=summary.last_trained_date,
        is_active_today=summary.status.is_active_today,
        is_at_risk=summary.status.is_at_risk,
        days_since_last_train=summary.status.days_since_last_train,
        milestone=_milestone_response(summary.milestone),
        next_milestone=_milestone_response(summary.next_milestone),
    )


@router.get("/xp", response_model=XpResponse)
def get_xp(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    summary = UserService(db).get_xp_summary(current_user)
    progress = summary.progress
    return XpResponse(
        total_xp=summary.total_xp,
        weekly_xp=summary.weekly_xp,
        week=summary.week,
        current_level=progress.current_level,
        current_level_xp=progress.current_level_xp,
        next_level_xp=progress.next_level_xp,
        xp_in_current_level=progress.xp_in_current_level,
        xp_needed_for_next_level=progress.xp_needed_for_next_level,
        progress_percent=progress.progress_percent,
        title=summary.title,
        icon=summary.icon,
    )


@router.patch("/settings", response_model=UserSettingsResponse)
def update_settings(
    body: UserSettingsRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Update the caller's settings; hiding from the leaderboard also stops rank achievements."""
    user = UserService(db).set_leaderboard_visibility(current_user, body.show_on_leaderboard)
    return UserSettingsResponse(show_on_leaderboard=user.show_on_leaderboard)
