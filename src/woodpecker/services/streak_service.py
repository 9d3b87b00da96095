"""Daily training streak calculations.

Streaks count consecutive UTC calendar days with at least one attempt. Nothing
here touches the database; callers persist the results.
"""
from datetime import UTC, datetime
from typing import List, Optional

from woodpecker.models.progress_models import StreakMilestone, StreakStatus, StreakUpdate
from woodpecker.services.periods import start_of_day

STREAK_MILESTONES: List[StreakMilestone] = [
    StreakMilestone(3, "Habit Forming", "You're building a habit!", "🌱"),
    StreakMilestone(7, "One Week Strong", "A full week of training!", "🔥"),
    StreakMilestone(14, "Two Weeks", "Two weeks of dedication!", "⚡"),
    StreakMilestone(21, "Three Weeks", "The habit is sticking!", "🌟"),
    StreakMilestone(30, "One Month", "A full month! Incredible!", "🏆"),
    StreakMilestone(50, "Fifty Days", "Fifty days of progress!", "💪"),
    StreakMilestone(100, "Century", "100 days! True dedication!", "💯"),
    StreakMilestone(200, "Two Hundred", "200 days of excellence!", "🎯"),
    StreakMilestone(365, "Full Year", "A whole year! Legendary!", "👑"),
]


def days_between(first: datetime, second: datetime) -> int:
    """Number of whole UTC calendar days between two datetimes."""
    return abs((start_of_day(second) - start_of_day(first)).days)


def update_streak(
    last_trained_date: Optional[datetime],
    current_streak: int,
    longest_streak: int,
    now: Optional[datetime] = None,
) -> StreakUpdate:
    """Calculate the streak after training at ``now``.

    Training twice on the same day is a no-op, so the caller only needs to
    persist the result when ``incremented`` is true.
    """
    now = now or datetime.now(UTC)

    if last_trained_date is None:
        return StreakUpdate(
            new_streak=1,
            new_longest_streak=max(1, longest_streak),
            incremented=True,
            broken=False,
            is_new_record=longest_streak == 0,
        )

    gap = days_between(last_trained_date, now)

    if gap == 0:
        return StreakUpdate(
            new_streak=current_streak,
            new_longest_streak=longest_streak,
            incremented=False,
            broken=False,
            is_new_record=False,
        )

    if gap == 1:
        new_streak = current_streak + 1
        return StreakUpdate(
            new_streak=new_streak,
            new_longest_streak=max(new_streak, longest_streak),
            incremented=True,
            broken=False,
            is_new_record=new_streak > longest_streak,
        )

    return StreakUpdate(
        new_streak=1,
        new_longest_streak=longest_streak,
        incremented=True,
        broken=current_streak > 0,
        is_new_record=False,
    )


def streak_status(
    last_trained_date: Optional[datetime],
    current_streak: int,
    now: Optional[datetime] = None,
) -> StreakStatus:
    """Get the current streak status without modifying anything."""
    if last_trained_date is None:
        return StreakStatus(is_active_today=False, is_at_risk=False, days_since_last_train=-1)

    gap = days_between(last_trained_date, now or datetime.now(UTC))
    return StreakStatus(
        is_active_today=gap == 0,
        is_at_risk=gap == 1 and current_streak > 0,
        days_since_last_train=gap,
    )


def effective_streak(
    last_trained_date: Optional[datetime],
    current_streak: int,
    now: Optional[datetime] = None,
) -> int:
    """The streak as it stands now; a lapsed streak reads as 0 until the next attempt."""
    status = streak_status(last_trained_date, current_streak, now)
    if status.days_since_last_train > 1:
        return 0
    return current_streak


def get_milestone(streak: int) -> Optional[StreakMilestone]:
    """Milestone reached exactly at this streak length, if any."""
    return next((m for m in STREAK_MILESTONES if m.days == streak), None)


def get_next_milestone(streak: int) -> Optional[StreakMilestone]:
    """The next milestone above this streak length."""
    return next((m for m in STREAK_MILESTONES if m.days > streak), None)
