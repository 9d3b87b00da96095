"""Tests for database models and catalog sync."""
import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from woodpecker.achievements.catalog import sync_catalog
from woodpecker.achievements.definitions import ACHIEVEMENTS
from woodpecker.models.models import Achievement, Attempt, Cycle, UserAchievement


def test_catalog_synced_on_init(db: Session) -> None:
    rows = {a.id: a for a in db.query(Achievement).all()}

    assert len(rows) == len(ACHIEVEMENTS)
    assert rows["century"].name == "Century"
    assert rows["rising-star"].category == "leaderboard"


def test_catalog_sync_updates_existing_rows(db: Session) -> None:
    row = db.query(Achievement).filter(Achievement.id == "century").one()
    row.name = "Old name"
    db.commit()

    assert sync_catalog(db) == len(ACHIEVEMENTS)

    db.refresh(row)
    assert row.name == "Century"
    assert db.query(Achievement).count() == len(ACHIEVEMENTS)


def test_attempt_unique_per_cycle_and_puzzle(db: Session, user, make_puzzle_set, start_cycle) -> None:
    puzzle_set = make_puzzle_set(user)
    cycle = start_cycle(puzzle_set)
    puzzle_in_set = puzzle_set.puzzles[0]

    for _ in range(2):
        db.add(Attempt(cycle_id=cycle.id, puzzle_in_set_id=puzzle_in_set.id, time_spent=1000, is_correct=True))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_user_achievement_unique(db: Session, user) -> None:
    db.add(UserAchievement(user_id=user.id, achievement_id="century"))
    db.commit()
    db.add(UserAchievement(user_id=user.id, achievement_id="century"))

    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_cycle_number_unique(db: Session, user, make_puzzle_set) -> None:
    puzzle_set = make_puzzle_set(user)
    db.add(Cycle(puzzle_set_id=puzzle_set.id, cycle_number=1, total_puzzles=1))
    db.add(Cycle(puzzle_set_id=puzzle_set.id, cycle_number=1, total_puzzles=1))

    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_cycle_properties() -> None:
    cycle = Cycle(total_puzzles=5, solved_correct=2, solved_incorrect=1, skipped=1)

    assert cycle.attempted_count == 4
    assert not cycle.is_completed
