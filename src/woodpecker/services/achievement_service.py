"""Achievement evaluation and unlock persistence."""
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import List, Optional, Set

from sqlalchemy import String, case, cast, func, literal, null, select, union_all
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from woodpecker import monitoring
from woodpecker.achievements.definitions import (
    ACHIEVEMENTS,
    ACHIEVEMENTS_BY_ID,
    AchievementDefinition,
    CyclesSameSet,
    CycleTimeImprovement,
    HighRatingCount,
    LeaderboardRank,
    MultiThemeAccuracy,
    RecentStreak,
    ThemeAccuracy,
    Tier,
)
from woodpecker.achievements.rules import HistoricalStats, evaluate_context, evaluate_history, locked
from woodpecker.config import settings
from woodpecker.models.models import (
    Attempt,
    Cycle,
    Puzzle,
    PuzzleInSet,
    PuzzleSet,
    PuzzleTheme,
    User,
    UserAchievement,
)
from woodpecker.models.progress_models import AchievementContext, UnlockedAchievement
from woodpecker.services.periods import as_utc, effective_weekly_value, iso_week_start

logger = logging.getLogger(__name__)


@dataclass
class AchievementStatus:
    definition: AchievementDefinition
    unlocked_at: Optional[datetime]

    @property
    def is_unlocked(self) -> bool:
        return self.unlocked_at is not None


class AchievementService:
    """Service for evaluating and unlocking achievements."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def get_unlocked_ids(self, user_id: int) -> Set[str]:
        """Get the user's already unlocked achievement ids."""
        rows = (
            self.db.query(UserAchievement.achievement_id)
            .filter(UserAchievement.user_id == user_id)
            .all()
        )
        return {row.achievement_id for row in rows}

    def check_after_attempt(self, context: AchievementContext) -> List[UnlockedAchievement]:
        """Evaluate every per-attempt achievement and persist new unlocks.

        Context-tier rules cost nothing; history-tier rules share one
        aggregate query, issued only while one of them is still locked.
        """
        unlocked_ids = self.get_unlocked_ids(context.user_id)
        if len(unlocked_ids) >= len(ACHIEVEMENTS):
            return []

        to_unlock = evaluate_context(ACHIEVEMENTS, context, unlocked_ids)
        pending = unlocked_ids | set(to_unlock)

        history_locked = locked(ACHIEVEMENTS, pending, Tier.HISTORY)
        if history_locked:
            stats = self.load_historical_stats(context.user_id, context.puzzle_set_id, history_locked)
            to_unlock.extend(evaluate_history(history_locked, stats, pending))

        return self.unlock(context.user_id, to_unlock)

    def load_historical_stats(
        self,
        user_id: int,
        puzzle_set_id: int,
        definitions: List[AchievementDefinition],
    ) -> HistoricalStats:
        """Load the statistics the given history-tier definitions need, in one query."""
        criteria = [d.criterion for d in definitions]
        themes = set()
        for criterion in criteria:
            if isinstance(criterion, ThemeAccuracy):
                themes.add(criterion.theme)
            elif isinstance(criterion, MultiThemeAccuracy):
                themes.update(criterion.themes)
        min_ratings = sorted({c.min_rating for c in criteria if isinstance(c, HighRatingCount)})
        window = max((c.window for c in criteria if isinstance(c, RecentStreak)), default=0)
        needs_cycles = any(isinstance(c, (CyclesSameSet, CycleTimeImprovement)) for c in criteria)

        correct = case((Attempt.is_correct, 1), else_=0)

        def owned_attempts(*columns):
            return (
                select(*columns)
                .select_from(Attempt)
                .join(PuzzleInSet, Attempt.puzzle_in_set_id == PuzzleInSet.id)
                .join(PuzzleSet, PuzzleInSet.puzzle_set_id == PuzzleSet.id)
                .where(PuzzleSet.user_id == user_id)
            )

        parts = [
            owned_attempts(
                literal("total").label("metric"),
                cast(null(), String).label("key"),
                func.count(Attempt.id).label("a"),
                func.coalesce(func.sum(correct), 0).label("b"),
            )
        ]

        for min_rating in min_ratings:
            parts.append(
                owned_attempts(
                    literal("high_rated"),
                    literal(str(min_rating)),
                    func.count(Attempt.id),
                    literal(0),
                )
                .join(Puzzle, PuzzleInSet.puzzle_id == Puzzle.id)
                .where(Attempt.is_correct.is_(True), Puzzle.rating >= min_rating)
            )

        if themes:
            parts.append(
                owned_attempts(
                    literal("theme"),
                    PuzzleTheme.theme,
                    func.count(Attempt.id),
                    func.coalesce(func.sum(correct), 0),
                )
                .join(PuzzleTheme, PuzzleTheme.puzzle_id == PuzzleInSet.puzzle_id)
                .where(PuzzleTheme.theme.in_(sorted(themes)))
                .group_by(PuzzleTheme.theme)
            )

        if window:
            recent = (
                owned_attempts(correct.label("correct"), Attempt.time_spent.label("time_spent"))
                .order_by(Attempt.attempted_at.desc(), Attempt.id.desc())
                .limit(window)
                .subquery()
            )
            parts.append(
                select(
                    literal("recent"),
                    cast(null(), String),
                    recent.c.correct,
                    recent.c.time_spent,
                )
            )

        if needs_cycles:
            parts.append(
                select(
                    literal("cycle"),
                    cast(Cycle.cycle_number, String),
                    Cycle.total_time,
                    literal(0),
                ).where(Cycle.puzzle_set_id == puzzle_set_id, Cycle.completed_at.is_not(None))
            )

        stats = HistoricalStats()
        cycle_times = []
        for metric, key, a, b in self.db.execute(union_all(*parts)).all():
            if metric == "total":
                stats.total_attempts, stats.total_correct = int(a or 0), int(b or 0)
            elif metric == "high_rated":
                stats.high_rated_correct[int(key)] = int(a or 0)
            elif metric == "theme":
                stats.theme_stats[key] = (int(a or 0), int(b or 0))
            elif metric == "recent":
                stats.recent_attempts.append((bool(a), int(b)))
            elif metric == "cycle":
                cycle_times.append((int(key), int(a or 0)))
        stats.completed_cycle_times = [total_time for _, total_time in sorted(cycle_times)]
        return stats

    def unlock(self, user_id: int, achievement_ids: List[str]) -> List[UnlockedAchievement]:
        """Persist unlock records and return only the achievements this call inserted."""
        if not achievement_ids:
            return []

        achievement_ids = list(dict.fromkeys(achievement_ids))
        now = datetime.now(UTC)
        rows = [
            {"user_id": user_id, "achievement_id": achievement_id, "unlocked_at": now}
            for achievement_id in achievement_ids
        ]

        dialect = self.db.get_bind().dialect.name
        if dialect in ("postgresql", "sqlite"):
            insert = postgresql_insert if dialect == "postgresql" else sqlite_insert
            stmt = (
                insert(UserAchievement)
                .values(rows)
                .on_conflict_do_nothing(index_elements=["user_id", "achievement_id"])
                .returning(UserAchievement.achievement_id)
            )
            inserted = set(self.db.execute(stmt).scalars().all())
        else:
            inserted = set()
            for row in rows:
                try:
                    with self.db.begin_nested():
                        self.db.add(UserAchievement(**row))
                    inserted.add(row["achievement_id"])
                except IntegrityError:
                    logger.debug(f"Achievement {row['achievement_id']} already unlocked for user {user_id}")
        self.db.commit()

        # Only rows this call inserted are new; the rest were unlocked concurrently
        new_ids = [achievement_id for achievement_id in achievement_ids if achievement_id in inserted]
        unlocked = []
        for achievement_id in new_ids:
            definition = ACHIEVEMENTS_BY_ID[achievement_id]
            monitoring.achievements_unlocked.labels(achievement_id=achievement_id).inc()
            unlocked.append(
                UnlockedAchievement(
                    id=definition.id,
                    name=definition.name,
                    description=definition.description,
                    icon=definition.icon,
                    unlocked_at=now,
                )
            )
        if new_ids:
            logger.info(f"User {user_id} unlocked achievements: {', '.join(new_ids)}")
        return unlocked

    def check_leaderboard_rank(self, user_id: int, now: Optional[datetime] = None) -> List[UnlockedAchievement]:
        """Evaluate the leaderboard rank achievements for a user.

        Ranking needs the top of the weekly leaderboard, so this runs when the
        user looks at the leaderboard rather than after every attempt.
        """
        now = now or datetime.now(UTC)
        unlocked_ids = self.get_unlocked_ids(user_id)
        candidates = locked(ACHIEVEMENTS, unlocked_ids, Tier.LAZY)
        if not candidates:
            return []

        user = self.db.query(User).filter(User.id == user_id).first()
        if user is None or not user.show_on_leaderboard:
            return []

        weekly_xp = effective_weekly_value(user.weekly_xp, as_utc(user.weekly_xp_start_date), now)
        if weekly_xp <= 0:
            return []

        users_ahead = (
            self.db.query(func.count(User.id))
            .filter(
                User.show_on_leaderboard.is_(True),
                User.weekly_xp_start_date >= iso_week_start(now),
                User.weekly_xp > weekly_xp,
            )
            .scalar()
        )
        rank = users_ahead + 1
        logger.info(f"User {user_id} weekly leaderboard rank: {rank}")

        to_unlock = [
            d.id for d in candidates
            if isinstance(d.criterion, LeaderboardRank)
            and rank <= min(d.criterion.rank, settings.achievements.leaderboard_rank_limit)
        ]
        return self.unlock(user_id, to_unlock)

    def get_user_achievements(self, user_id: int) -> List[AchievementStatus]:
        """Get every achievement with the user's unlock status."""
        unlocked = dict(
            self.db.query(UserAchievement.achievement_id, UserAchievement.unlocked_at)
            .filter(UserAchievement.user_id == user_id)
            .all()
        )
        return [
            AchievementStatus(definition=d, unlocked_at=as_utc(unlocked.get(d.id)))
            for d in sorted(ACHIEVEMENTS, key=lambda d: d.sort_order)
        ]
