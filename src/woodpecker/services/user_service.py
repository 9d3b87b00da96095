"""User service for managing users and reading their progress."""
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy.orm import Session

from woodpecker.models.models import User
from woodpecker.models.progress_models import LevelProgress, StreakMilestone, StreakStatus
from woodpecker.services.periods import as_utc, effective_weekly_value, format_iso_week
from woodpecker.services.streak_service import effective_streak, get_milestone, get_next_milestone, streak_status
from woodpecker.services.xp_service import level_progress, level_title

logger = logging.getLogger(__name__)


@dataclass
class StreakSummary:
    current_streak: int
    longest_streak: int
    last_trained_date: Optional[datetime]
    status: StreakStatus
    milestone: Optional[StreakMilestone]  # reached exactly at the current length
    next_milestone: Optional[StreakMilestone]


@dataclass
class XpSummary:
    total_xp: int
    weekly_xp: int
    week: str
    progress: LevelProgress
    title: str
    icon: str


class UserService:
    """Service for managing user data."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        """Get user by the identity provider's id."""
        return self.db.query(User).filter(User.external_id == external_id).first()

    def get_or_create_user(self, external_id: str, name: Optional[str] = None) -> User:
        """Get existing user or create a new one."""
        user = self.get_user_by_external_id(external_id)
        if user is not None:
            return user

        user = User(external_id=external_id, name=name)
        self.db.add(user)
        self.db.commit()
        logger.info(f"Created user {user.id} for external id {external_id}")
        return user

    def set_leaderboard_visibility(self, user: User, visible: bool) -> User:
        """Show or hide the user on the weekly leaderboard."""
        user.show_on_leaderboard = visible
        self.db.commit()
        logger.info(f"User {user.id} leaderboard visibility set to {visible}")
        return user

    def get_streak_summary(self, user: User, now: Optional[datetime] = None) -> StreakSummary:
        """Streak as it reads right now; a lapsed streak shows 0 until the next attempt."""
        now = now or datetime.now(UTC)
        last_trained_date = as_utc(user.last_trained_date)
        current = effective_streak(last_trained_date, user.current_streak, now)
        return StreakSummary(
            current_streak=current,
            longest_streak=user.longest_streak,
            last_trained_date=last_trained_date,
            status=streak_status(last_trained_date, user.current_streak, now),
            milestone=get_milestone(current),
            next_milestone=get_next_milestone(current),
        )

    def get_xp_summary(self, user: User, now: Optional[datetime] = None) -> XpSummary:
        """Total XP, this week's XP and progress through the current level."""
        now = now or datetime.now(UTC)
        progress = level_progress(user.total_xp)
        title, icon = level_title(progress.current_level)
        return XpSummary(
            total_xp=user.total_xp,
            weekly_xp=effective_weekly_value(user.weekly_xp, as_utc(user.weekly_xp_start_date), now),
            week=format_iso_week(now),
            progress=progress,
            title=title,
            icon=icon,
        )
