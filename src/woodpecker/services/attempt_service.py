"""Service for recording puzzle attempts and the progress they produce."""
import logging
import re
from datetime import UTC, datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from woodpecker import monitoring
from woodpecker.exceptions import (
    CycleStateError,
    DatabaseError,
    DuplicateAttemptError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from woodpecker.models.models import Attempt, Cycle, Puzzle, PuzzleInSet, PuzzleSet, User
from woodpecker.models.progress_models import (
    AchievementContext,
    AttemptFacts,
    AttemptOutcome,
    CycleCompletionFacts,
    PreviousAttempt,
    UnlockedAchievement,
    UserCounters,
)
from woodpecker.services.achievement_service import AchievementService
from woodpecker.services.periods import as_utc, roll_weekly_counter, today_utc
from woodpecker.services.streak_service import update_streak
from woodpecker.services.xp_service import combine_xp_gains, cycle_complete_xp, level_from_xp, puzzle_attempt_xp

logger = logging.getLogger(__name__)

MAX_TIME_SPENT_MS = 3_600_000
MOVE_PATTERN = re.compile(r"^[a-h][1-8][a-h][1-8][qrbn]?$")


def validate_attempt_input(
    time_spent_ms: int,
    moves_played: List[str],
    is_correct: bool = False,
    was_skipped: bool = False,
) -> None:
    """Raise ValidationError for an out-of-range time, malformed move codes or a skip marked correct."""
    if isinstance(time_spent_ms, bool) or not isinstance(time_spent_ms, int):
        raise ValidationError("Time spent must be an integer number of milliseconds", field="timeSpent")
    if not 1 <= time_spent_ms <= MAX_TIME_SPENT_MS:
        raise ValidationError(
            f"Time spent must be between 1 and {MAX_TIME_SPENT_MS} ms",
            field="timeSpent",
            details={"value": time_spent_ms},
        )
    invalid = [move for move in moves_played if not isinstance(move, str) or not MOVE_PATTERN.match(move)]
    if invalid:
        raise ValidationError("Invalid move codes", field="movesPlayed", details={"invalid": invalid})
    if is_correct and was_skipped:
        raise ValidationError("A skipped puzzle cannot be marked correct", field="isCorrect")


class AttemptService:
    """Service for recording puzzle attempts."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db
        self.achievement_service = AchievementService(db)

    def _load_preconditions(
        self,
        user_id: int,
        puzzle_set_id: int,
        cycle_id: int,
        puzzle_in_set_id: int,
    ) -> None:
        """Check ownership and idempotency before anything is written."""
        puzzle_set = self.db.query(PuzzleSet).filter(PuzzleSet.id == puzzle_set_id).first()
        if puzzle_set is None:
            raise NotFoundError("PuzzleSet", puzzle_set_id)
        if puzzle_set.user_id != user_id:
            raise ForbiddenError("Puzzle set belongs to another user", details={"puzzle_set_id": puzzle_set_id})

        cycle = (
            self.db.query(Cycle)
            .filter(Cycle.id == cycle_id, Cycle.puzzle_set_id == puzzle_set_id)
            .first()
        )
        if cycle is None:
            raise NotFoundError("Cycle", cycle_id)

        puzzle_in_set = (
            self.db.query(PuzzleInSet)
            .filter(PuzzleInSet.id == puzzle_in_set_id, PuzzleInSet.puzzle_set_id == puzzle_set_id)
            .first()
        )
        if puzzle_in_set is None:
            raise NotFoundError("PuzzleInSet", puzzle_in_set_id)

        duplicate = (
            self.db.query(Attempt.id)
            .filter(Attempt.cycle_id == cycle_id, Attempt.puzzle_in_set_id == puzzle_in_set_id)
            .first()
        )
        if duplicate is not None:
            monitoring.duplicate_attempts.inc()
            raise DuplicateAttemptError(cycle_id, puzzle_in_set_id)

        if cycle.is_completed:
            raise CycleStateError("Cycle is already completed", details={"cycle_id": cycle_id})

    def _get_previous_attempt(self, puzzle_in_set_id: int) -> Optional[PreviousAttempt]:
        """Most recent attempt on the same puzzle in an earlier cycle."""
        attempt = (
            self.db.query(Attempt)
            .filter(Attempt.puzzle_in_set_id == puzzle_in_set_id)
            .order_by(Attempt.attempted_at.desc(), Attempt.id.desc())
            .first()
        )
        if attempt is None:
            return None
        return PreviousAttempt(is_correct=attempt.is_correct, time_spent_ms=attempt.time_spent)

    def record_attempt(
        self,
        user_id: int,
        puzzle_set_id: int,
        cycle_id: int,
        puzzle_in_set_id: int,
        time_spent_ms: int,
        is_correct: bool,
        was_skipped: bool = False,
        moves_played: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> AttemptOutcome:
        """Record an attempt and apply its effect on the puzzle, cycle and user.

        The attempt row and every counter it touches are committed together.
        Achievements are evaluated afterwards against the committed values; a
        failure there is logged and leaves the recorded attempt untouched.

        Raises:
            ValidationError: time or moves are malformed, or a skip is marked correct
            NotFoundError: set, cycle or puzzle missing or not related
            ForbiddenError: set owned by another user
            DuplicateAttemptError: attempt already recorded for this cycle and puzzle
            CycleStateError: cycle already completed
            DatabaseError: the transaction failed and was rolled back
        """
        moves_played = list(moves_played or [])
        validate_attempt_input(time_spent_ms, moves_played, is_correct, was_skipped)
        now = as_utc(now) if now else datetime.now(UTC)

        self._load_preconditions(user_id, puzzle_set_id, cycle_id, puzzle_in_set_id)
        previous_attempt = self._get_previous_attempt(puzzle_in_set_id)

        try:
            # Lock the rows whose counters change; SQLite ignores FOR UPDATE
            cycle = (
                self.db.query(Cycle)
                .filter(Cycle.id == cycle_id)
                .populate_existing()
                .with_for_update()
                .one()
            )
            puzzle_in_set = (
                self.db.query(PuzzleInSet)
                .filter(PuzzleInSet.id == puzzle_in_set_id)
                .populate_existing()
                .with_for_update()
                .one()
            )
            user = (
                self.db.query(User)
                .filter(User.id == user_id)
                .populate_existing()
                .with_for_update()
                .one()
            )
            puzzle = self.db.query(Puzzle).filter(Puzzle.id == puzzle_in_set.puzzle_id).one()

            if cycle.is_completed:
                raise CycleStateError("Cycle is already completed", details={"cycle_id": cycle_id})

            attempt = Attempt(
                cycle_id=cycle_id,
                puzzle_in_set_id=puzzle_in_set_id,
                time_spent=time_spent_ms,
                is_correct=is_correct,
                was_skipped=was_skipped,
                moves_played=moves_played,
                attempted_at=now,
            )
            self.db.add(attempt)
            # Surface the unique constraint before touching any counter
            self.db.flush()

            is_first_attempt = puzzle_in_set.total_attempts == 0
            self._update_puzzle_stats(puzzle_in_set, time_spent_ms, is_correct)
            completion = self._update_cycle_stats(cycle, time_spent_ms, is_correct, was_skipped, now)

            streak = update_streak(
                as_utc(user.last_trained_date),
                user.current_streak,
                user.longest_streak,
                now,
            )
            if streak.incremented:
                user.current_streak = streak.new_streak
                user.longest_streak = streak.new_longest_streak
                user.last_trained_date = today_utc(now)
                user.streak_updated_at = now

            if is_correct:
                user.total_correct_attempts += 1
                user.weekly_correct_attempts, user.weekly_correct_start_date = roll_weekly_counter(
                    user.weekly_correct_attempts,
                    as_utc(user.weekly_correct_start_date),
                    1,
                    now,
                )

            gains = [
                puzzle_attempt_xp(
                    is_correct=is_correct,
                    time_spent_ms=time_spent_ms,
                    puzzle_rating=puzzle.rating,
                    current_streak=user.current_streak,
                    is_first_attempt=is_first_attempt,
                    current_total_xp=user.total_xp,
                    previous_attempt=previous_attempt,
                )
            ]
            if completion is not None:
                gains.append(
                    cycle_complete_xp(
                        correct_count=completion.correct_puzzles,
                        total_puzzles=completion.total_puzzles,
                        current_total_xp=gains[0].new_total_xp,
                    )
                )
            xp_gain = combine_xp_gains(gains)

            user.total_xp = xp_gain.new_total_xp
            user.current_level = level_from_xp(user.total_xp)
            if xp_gain.total_xp > 0:
                user.weekly_xp, user.weekly_xp_start_date = roll_weekly_counter(
                    user.weekly_xp,
                    as_utc(user.weekly_xp_start_date),
                    xp_gain.total_xp,
                    now,
                )

            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            monitoring.duplicate_attempts.inc()
            logger.warning(f"Duplicate attempt for cycle {cycle_id}, puzzle {puzzle_in_set_id}")
            raise DuplicateAttemptError(cycle_id, puzzle_in_set_id)
        except CycleStateError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            monitoring.db_errors.labels(error_type=type(e).__name__).inc()
            logger.error(f"Error recording attempt for cycle {cycle_id}: {e}")
            raise DatabaseError("Failed to record attempt", operation="record_attempt") from e

        outcome_label = "skipped" if was_skipped else "correct" if is_correct else "incorrect"
        monitoring.attempts_recorded.labels(outcome=outcome_label).inc()
        monitoring.xp_awarded.inc(xp_gain.total_xp)
        logger.info(
            f"User {user_id} recorded {outcome_label} attempt on puzzle {puzzle_in_set_id} "
            f"in cycle {cycle_id} (+{xp_gain.total_xp} XP, streak {user.current_streak})"
        )
        if completion is not None:
            monitoring.cycles_completed.inc()
            logger.info(f"Cycle {cycle_id} of puzzle set {puzzle_set_id} completed")
        if xp_gain.leveled_up:
            monitoring.level_ups.inc()
            logger.info(f"User {user_id} reached level {xp_gain.new_level}")

        context = AchievementContext(
            user_id=user_id,
            puzzle_set_id=puzzle_set_id,
            attempt=AttemptFacts(
                is_correct=is_correct,
                was_skipped=was_skipped,
                time_spent_ms=time_spent_ms,
                attempted_at=now,
                puzzle_rating=puzzle.rating,
                puzzle_themes=puzzle.theme_names,
            ),
            counters=UserCounters(
                total_correct_attempts=user.total_correct_attempts,
                weekly_correct_attempts=user.weekly_correct_attempts,
                current_streak=user.current_streak,
                longest_streak=user.longest_streak,
            ),
            cycle_completion=completion,
            streak_update=streak,
        )

        return AttemptOutcome(
            attempt=attempt,
            cycle=cycle,
            is_last_puzzle=completion is not None,
            streak=streak,
            xp=xp_gain,
            unlocked_achievements=self._check_achievements(context),
        )

    def _check_achievements(self, context: AchievementContext) -> List[UnlockedAchievement]:
        """Evaluate achievements; the attempt is already durable so failures only log."""
        try:
            return self.achievement_service.check_after_attempt(context)
        except Exception as e:
            self.db.rollback()
            monitoring.achievement_evaluation_failures.inc()
            logger.exception(f"Achievement evaluation failed for user {context.user_id}: {e}")
            return []

    @staticmethod
    def _update_puzzle_stats(puzzle_in_set: PuzzleInSet, time_spent_ms: int, is_correct: bool) -> None:
        old_count = puzzle_in_set.total_attempts
        old_average = puzzle_in_set.average_time or 0
        new_count = old_count + 1

        puzzle_in_set.total_attempts = new_count
        if is_correct:
            puzzle_in_set.correct_attempts += 1
        puzzle_in_set.average_time = (old_average * old_count + time_spent_ms) / new_count

    @staticmethod
    def _update_cycle_stats(
        cycle: Cycle,
        time_spent_ms: int,
        is_correct: bool,
        was_skipped: bool,
        now: datetime,
    ) -> Optional[CycleCompletionFacts]:
        """Apply the attempt to the cycle counters. Returns completion facts if it finished the cycle."""
        if was_skipped:
            cycle.skipped += 1
        elif is_correct:
            cycle.solved_correct += 1
        else:
            cycle.solved_incorrect += 1
        cycle.total_time += time_spent_ms

        if cycle.attempted_count < cycle.total_puzzles:
            return None

        cycle.completed_at = now
        return CycleCompletionFacts(
            puzzle_set_id=cycle.puzzle_set_id,
            cycle_number=cycle.cycle_number,
            total_puzzles=cycle.total_puzzles,
            correct_puzzles=cycle.solved_correct,
            total_time=cycle.total_time,
        )
