"""Attempt submission route."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from woodpecker.api.deps import get_current_user
from woodpecker.api.schemas import (
    AttemptRequest,
    AttemptResponse,
    AttemptSummary,
    CycleStats,
    StreakResult,
    UnlockedAchievementResponse,
    XpBreakdownEntry,
    XpResult,
)
from woodpecker.models.base import get_db
from woodpecker.models.models import User
from woodpecker.services.attempt_service import AttemptService

router = APIRouter()


@router.post("/{set_id}/cycles/{cycle_id}/attempts", response_model=AttemptResponse)
def record_attempt(
    set_id: int,
    cycle_id: int,
    body: AttemptRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Record an attempt on one puzzle of a cycle.

    Returns the updated cycle stats, streak, XP gained and any achievements
    the attempt unlocked.
    """
    outcome = AttemptService(db).record_attempt(
        user_id=current_user.id,
        puzzle_set_id=set_id,
        cycle_id=cycle_id,
        puzzle_in_set_id=body.puzzle_in_set_id,
        time_spent_ms=body.time_spent,
        is_correct=body.is_correct,
        was_skipped=body.was_skipped,
        moves_played=body.moves_played,
    )

    attempt, cycle, streak, xp = outcome.attempt, outcome.cycle, outcome.streak, outcome.xp
    return AttemptResponse(
        attempt=AttemptSummary(
            id=attempt.id,
            time_spent=attempt.time_spent,
            is_correct=attempt.is_correct,
            was_skipped=attempt.was_skipped,
        ),
        cycle_stats=CycleStats(
            solved_correct=cycle.solved_correct,
            solved_incorrect=cycle.solved_incorrect,
            skipped=cycle.skipped,
            total_time=cycle.total_time,
        ),
        is_last_puzzle=outcome.is_last_puzzle,
        streak=StreakResult(
            current=streak.new_streak,
            longest=streak.new_longest_streak,
            incremented=streak.incremented,
            broken=streak.broken,
            is_new_record=streak.is_new_record,
        ),
        xp=XpResult(
            gained=xp.total_xp,
            breakdown=[
                XpBreakdownEntry(source=item.source.value, amount=item.amount, label=item.label)
                for item in xp.breakdown
            ],
            new_total=xp.new_total_xp,
            previous_level=xp.previous_level,
            new_level=xp.new_level,
            leveled_up=xp.leveled_up,
        ),
        unlocked_achievements=[
            UnlockedAchievementResponse(
                id=a.id,
                name=a.name,
                description=a.description,
                icon=a.icon,
                unlocked_at=a.unlocked_at,
            )
            for a in outcome.unlocked_achievements
        ],
    )
