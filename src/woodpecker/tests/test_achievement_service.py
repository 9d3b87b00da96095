"""Tests for achievement evaluation against the database."""
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from woodpecker.achievements.definitions import ACHIEVEMENTS, Tier, get_achievements_by_tier
from woodpecker.config import settings
from woodpecker.models.models import Attempt, Cycle, UserAchievement
from woodpecker.models.progress_models import AchievementContext, AttemptFacts, UserCounters
from woodpecker.services.achievement_service import AchievementService
from woodpecker.services.periods import iso_week_start

NOW = datetime(2024, 3, 13, 12, 0, tzinfo=UTC)


@pytest.fixture
def achievement_service(db: Session) -> AchievementService:
    """Create an achievement service instance."""
    return AchievementService(db)


def add_attempts(db: Session, cycle: Cycle, puzzle_set, results) -> None:
    """Insert attempts directly; results are (is_correct, time_ms) per position."""
    for offset, (puzzle_in_set, (is_correct, time_spent)) in enumerate(zip(puzzle_set.puzzles, results)):
        db.add(Attempt(
            cycle_id=cycle.id,
            puzzle_in_set_id=puzzle_in_set.id,
            time_spent=time_spent,
            is_correct=is_correct,
            was_skipped=False,
            moves_played=[],
            attempted_at=NOW + timedelta(minutes=offset),
        ))
    db.commit()


def complete(db: Session, cycle: Cycle, total_time: int) -> None:
    cycle.total_time = total_time
    cycle.completed_at = NOW
    db.commit()


def context_for(user, puzzle_set, total_correct: int = 0) -> AchievementContext:
    return AchievementContext(
        user_id=user.id,
        puzzle_set_id=puzzle_set.id,
        attempt=AttemptFacts(is_correct=False, was_skipped=False, time_spent_ms=30000, attempted_at=NOW),
        counters=UserCounters(
            total_correct_attempts=total_correct,
            weekly_correct_attempts=total_correct,
            current_streak=1,
            longest_streak=1,
        ),
    )


def test_unlock_is_duplicate_safe(db: Session, achievement_service: AchievementService, user) -> None:
    """Test that unlocking an already unlocked achievement adds no row and is not reported again."""
    first = achievement_service.unlock(user.id, ["first-blood"])
    second = achievement_service.unlock(user.id, ["first-blood", "century", "century"])
    repeat = achievement_service.unlock(user.id, ["first-blood"])

    rows = db.query(UserAchievement).filter(UserAchievement.user_id == user.id).all()
    assert sorted(row.achievement_id for row in rows) == ["century", "first-blood"]
    assert first[0].id == "first-blood"
    assert first[0].name == "First Blood"
    assert [a.id for a in second] == ["century"]
    assert repeat == []
    assert achievement_service.get_unlocked_ids(user.id) == {"first-blood", "century"}


def test_unlock_nothing(achievement_service: AchievementService, user) -> None:
    assert achievement_service.unlock(user.id, []) == []


def test_load_historical_stats(db: Session, achievement_service, make_user, make_puzzle_set, start_cycle) -> None:
    """Test that one query gathers every history statistic for the user only."""
    owner = make_user()
    puzzle_set = make_puzzle_set(
        owner,
        ratings=[1900, 1850, 1200, 1000],
        themes=[("fork", "pin"), ("fork",), ("mate",), ()],
    )
    cycle = start_cycle(puzzle_set)
    add_attempts(db, cycle, puzzle_set, [(True, 2000), (False, 6000), (True, 1000), (True, 4000)])
    complete(db, cycle, 13000)
    second = start_cycle(puzzle_set)
    add_attempts(db, second, puzzle_set, [(True, 1500)])

    # Another user's history must not leak in
    stranger = make_user()
    other_set = make_puzzle_set(stranger, ratings=[2000], themes=[("fork",)])
    other_cycle = start_cycle(other_set)
    add_attempts(db, other_cycle, other_set, [(True, 500)])

    stats = achievement_service.load_historical_stats(
        owner.id, puzzle_set.id, get_achievements_by_tier(Tier.HISTORY)
    )

    assert stats.total_attempts == 5
    assert stats.total_correct == 4
    assert stats.high_rated_correct == {1800: 2}
    assert stats.theme_stats == {"fork": (3, 2), "pin": (2, 2), "mate": (1, 1)}
    assert sorted(stats.recent_attempts) == sorted(
        [(True, 2000), (False, 6000), (True, 1000), (True, 4000), (True, 1500)]
    )
    assert stats.completed_cycle_times == [13000]


def test_load_historical_stats_recent_window(db: Session, achievement_service, user, make_puzzle_set, start_cycle) -> None:
    puzzle_set = make_puzzle_set(user, ratings=[1200] * 12)
    cycle = start_cycle(puzzle_set)
    # Oldest two are wrong, the ten most recent are right
    add_attempts(db, cycle, puzzle_set, [(False, 3000)] * 2 + [(True, 3000)] * 10)
    definitions = [d for d in get_achievements_by_tier(Tier.HISTORY) if d.id == "speed-streak"]

    stats = achievement_service.load_historical_stats(user.id, puzzle_set.id, definitions)

    assert stats.recent_attempts == [(True, 3000)] * 10
    assert stats.theme_stats == {}
    assert stats.completed_cycle_times == []


def test_check_after_attempt_unlocks_history_rules(db: Session, achievement_service, user, make_puzzle_set, start_cycle) -> None:
    puzzle_set = make_puzzle_set(user, ratings=[1200, 1300])
    first = start_cycle(puzzle_set)
    add_attempts(db, first, puzzle_set, [(True, 30000), (True, 30000)])
    complete(db, first, 60000)
    second = start_cycle(puzzle_set)
    complete(db, second, 25000)

    unlocked = achievement_service.check_after_attempt(context_for(user, puzzle_set, total_correct=2))

    ids = {a.id for a in unlocked}
    assert "improvement-king" in ids
    assert "first-blood" in ids
    assert "woodpecker-pro" not in ids


def test_check_after_attempt_never_reunlocks(db: Session, achievement_service, user, make_puzzle_set) -> None:
    puzzle_set = make_puzzle_set(user)
    context = context_for(user, puzzle_set, total_correct=1)

    assert [a.id for a in achievement_service.check_after_attempt(context)] == ["first-blood"]
    assert achievement_service.check_after_attempt(context) == []
    assert db.query(UserAchievement).filter(UserAchievement.user_id == user.id).count() == 1


def test_check_after_attempt_short_circuits(db: Session, achievement_service, user, make_puzzle_set, monkeypatch) -> None:
    """Test that a user with every achievement triggers no further evaluation."""
    achievement_service.unlock(user.id, [a.id for a in ACHIEVEMENTS])

    def fail(*args, **kwargs):
        raise AssertionError("history should not be loaded")

    monkeypatch.setattr(achievement_service, "load_historical_stats", fail)
    puzzle_set = make_puzzle_set(user)

    assert achievement_service.check_after_attempt(context_for(user, puzzle_set, total_correct=1000)) == []


def test_history_query_skipped_when_history_rules_unlocked(db: Session, achievement_service, user, make_puzzle_set, monkeypatch) -> None:
    achievement_service.unlock(user.id, [a.id for a in get_achievements_by_tier(Tier.HISTORY)])

    def fail(*args, **kwargs):
        raise AssertionError("history should not be loaded")

    monkeypatch.setattr(achievement_service, "load_historical_stats", fail)
    puzzle_set = make_puzzle_set(user)

    unlocked = achievement_service.check_after_attempt(context_for(user, puzzle_set, total_correct=1))
    assert [a.id for a in unlocked] == ["first-blood"]


def test_leaderboard_rank(db: Session, achievement_service, make_user) -> None:
    week = iso_week_start(NOW)
    leader = make_user(weekly_xp=500, weekly_xp_start_date=week)
    user = make_user(weekly_xp=100, weekly_xp_start_date=week)
    # Stale and hidden users do not count against the rank
    make_user(weekly_xp=900, weekly_xp_start_date=week - timedelta(days=7))
    make_user(weekly_xp=900, weekly_xp_start_date=week, show_on_leaderboard=False)

    unlocked = achievement_service.check_leaderboard_rank(user.id, now=NOW)

    assert [a.id for a in unlocked] == ["rising-star"]
    assert achievement_service.check_leaderboard_rank(user.id, now=NOW) == []
    assert achievement_service.check_leaderboard_rank(leader.id, now=NOW)[0].id == "rising-star"


def test_leaderboard_rank_respects_limit(achievement_service, make_user, monkeypatch) -> None:
    week = iso_week_start(NOW)
    make_user(weekly_xp=500, weekly_xp_start_date=week)
    user = make_user(weekly_xp=100, weekly_xp_start_date=week)
    monkeypatch.setattr(settings.achievements, "leaderboard_rank_limit", 1)

    assert achievement_service.check_leaderboard_rank(user.id, now=NOW) == []


def test_leaderboard_rank_needs_visible_user_with_xp(achievement_service, make_user) -> None:
    week = iso_week_start(NOW)
    hidden = make_user(weekly_xp=100, weekly_xp_start_date=week, show_on_leaderboard=False)
    stale = make_user(weekly_xp=100, weekly_xp_start_date=week - timedelta(days=7))

    assert achievement_service.check_leaderboard_rank(hidden.id, now=NOW) == []
    assert achievement_service.check_leaderboard_rank(stale.id, now=NOW) == []


def test_get_user_achievements(achievement_service, user) -> None:
    achievement_service.unlock(user.id, ["century"])

    statuses = achievement_service.get_user_achievements(user.id)

    assert len(statuses) == 30
    assert [s.definition.sort_order for s in statuses] == sorted(s.definition.sort_order for s in statuses)
    unlocked = [s for s in statuses if s.is_unlocked]
    assert [s.definition.id for s in unlocked] == ["century"]
    assert unlocked[0].unlocked_at.tzinfo is not None
