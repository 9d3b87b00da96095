"""Tests for user service."""
from datetime import UTC, datetime, timedelta

import pytest
from faker import Faker
from sqlalchemy.orm import Session

from woodpecker.services.periods import iso_week_start
from woodpecker.services.user_service import UserService

fake = Faker()

NOW = datetime(2024, 3, 13, 12, 0, tzinfo=UTC)


@pytest.fixture
def user_service(db: Session) -> UserService:
    """Create a user service instance."""
    return UserService(db)


def test_get_or_create_user(user_service: UserService) -> None:
    """Test user creation and retrieval."""
    external_id = fake.uuid4()
    name = fake.name()
    user = user_service.get_or_create_user(external_id, name)

    assert user.external_id == external_id
    assert user.name == name
    assert user.current_level == 1
    assert user.total_xp == 0
    assert user.show_on_leaderboard

    existing_user = user_service.get_or_create_user(external_id, "Someone else")
    assert existing_user.id == user.id
    assert existing_user.name == name


def test_get_user_by_external_id(user_service: UserService, user) -> None:
    assert user_service.get_user_by_external_id(user.external_id).id == user.id
    assert user_service.get_user_by_external_id("missing") is None


def test_set_leaderboard_visibility(db: Session, user_service: UserService, user) -> None:
    user_service.set_leaderboard_visibility(user, False)
    db.expire_all()

    assert not user_service.get_user_by_external_id(user.external_id).show_on_leaderboard


def test_streak_summary_active(user_service: UserService, make_user) -> None:
    user = make_user(current_streak=6, longest_streak=9, last_trained_date=datetime(2024, 3, 12, tzinfo=UTC))

    summary = user_service.get_streak_summary(user, now=NOW)

    assert summary.current_streak == 6
    assert summary.longest_streak == 9
    assert summary.status.is_at_risk
    assert not summary.status.is_active_today
    assert summary.milestone is None
    assert summary.next_milestone.days == 7
    assert summary.last_trained_date == datetime(2024, 3, 12, tzinfo=UTC)


def test_streak_summary_lapsed(user_service: UserService, make_user) -> None:
    """Test that a broken streak reads as 0 before the next attempt."""
    user = make_user(current_streak=6, longest_streak=9, last_trained_date=datetime(2024, 3, 9, tzinfo=UTC))

    summary = user_service.get_streak_summary(user, now=NOW)

    assert summary.current_streak == 0
    assert summary.longest_streak == 9
    assert summary.status.days_since_last_train == 4
    assert summary.next_milestone.days == 3


def test_xp_summary(user_service: UserService, make_user) -> None:
    user = make_user(total_xp=600, weekly_xp=150, weekly_xp_start_date=iso_week_start(NOW))

    summary = user_service.get_xp_summary(user, now=NOW)

    assert summary.total_xp == 600
    assert summary.weekly_xp == 150
    assert summary.week == "2024-W11"
    assert summary.progress.current_level == 3
    assert summary.title == "Pawn"


def test_xp_summary_stale_week(user_service: UserService, make_user) -> None:
    user = make_user(weekly_xp=150, weekly_xp_start_date=iso_week_start(NOW) - timedelta(days=7))

    assert user_service.get_xp_summary(user, now=NOW).weekly_xp == 0


def test_streak_summary_on_milestone(user_service: UserService, make_user) -> None:
    user = make_user(current_streak=7, longest_streak=7, last_trained_date=datetime(2024, 3, 13, tzinfo=UTC))

    summary = user_service.get_streak_summary(user, now=NOW)

    assert summary.status.is_active_today
    assert summary.milestone.title == "One Week Strong"
    assert summary.next_milestone.days == 14
