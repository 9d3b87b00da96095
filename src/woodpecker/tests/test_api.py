"""Tests for the HTTP API."""
import re
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from woodpecker.achievements.definitions import ACHIEVEMENTS
from woodpecker.api.app import app
from woodpecker.models.models import Attempt
from woodpecker.services.periods import iso_week_start
from woodpecker.services.puzzle_set_service import PuzzleSetService


@pytest.fixture
def client(db: Session) -> TestClient:
    return TestClient(app)


def auth(user) -> dict:
    return {"X-User-Id": user.external_id}


def attempt_url(puzzle_set, cycle) -> str:
    return f"/puzzle-sets/{puzzle_set.id}/cycles/{cycle.id}/attempts"


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_record_attempt(client: TestClient, user, make_puzzle_set, start_cycle) -> None:
    puzzle_set = make_puzzle_set(user, ratings=[1200, 1300])
    cycle = start_cycle(puzzle_set)

    response = client.post(
        attempt_url(puzzle_set, cycle),
        headers=auth(user),
        json={
            "puzzleInSetId": puzzle_set.puzzles[0].id,
            "timeSpent": 30000,
            "isCorrect": True,
            "movesPlayed": ["f1c4", "g8f6", "f3g5"],
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["attempt"]["isCorrect"] is True
    assert data["attempt"]["wasSkipped"] is False
    assert data["cycleStats"] == {"solvedCorrect": 1, "solvedIncorrect": 0, "skipped": 0, "totalTime": 30000}
    assert data["isLastPuzzle"] is False
    assert data["streak"]["current"] == 1
    assert data["streak"]["incremented"] is True
    assert data["xp"]["gained"] == data["xp"]["newTotal"]
    assert {e["source"] for e in data["xp"]["breakdown"]} >= {"PUZZLE_CORRECT", "FIRST_ATTEMPT_BONUS"}
    assert "first-blood" in {a["id"] for a in data["unlockedAchievements"]}


@pytest.mark.parametrize("headers", [{}, {"X-User-Id": "nobody"}])
def test_unauthenticated_requests_are_rejected(client: TestClient, headers) -> None:
    response = client.get("/user/xp", headers=headers)

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.parametrize(
    "body, field",
    [
        ({"timeSpent": 0, "isCorrect": True}, "timeSpent"),
        ({"timeSpent": 3_600_001, "isCorrect": True}, "timeSpent"),
        ({"timeSpent": 1000, "isCorrect": True, "movesPlayed": ["e2e9"]}, "movesPlayed.0"),
    ],
)
def test_invalid_attempt_body(client: TestClient, db: Session, user, make_puzzle_set, start_cycle, body, field) -> None:
    puzzle_set = make_puzzle_set(user)
    cycle = start_cycle(puzzle_set)
    body["puzzleInSetId"] = puzzle_set.puzzles[0].id

    response = client.post(attempt_url(puzzle_set, cycle), headers=auth(user), json=body)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert field in {e["field"] for e in error["details"]["errors"]}
    assert db.query(Attempt).count() == 0


def test_duplicate_attempt(client: TestClient, user, make_puzzle_set, start_cycle) -> None:
    puzzle_set = make_puzzle_set(user, ratings=[1200, 1300])
    cycle = start_cycle(puzzle_set)
    body = {"puzzleInSetId": puzzle_set.puzzles[0].id, "timeSpent": 5000, "isCorrect": False}

    assert client.post(attempt_url(puzzle_set, cycle), headers=auth(user), json=body).status_code == 200
    response = client.post(attempt_url(puzzle_set, cycle), headers=auth(user), json=body)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "DUPLICATE_ATTEMPT"


def test_other_users_set(client: TestClient, make_user, make_puzzle_set, start_cycle) -> None:
    owner, other = make_user(), make_user()
    puzzle_set = make_puzzle_set(owner)
    cycle = start_cycle(puzzle_set)

    response = client.post(
        attempt_url(puzzle_set, cycle),
        headers=auth(other),
        json={"puzzleInSetId": puzzle_set.puzzles[0].id, "timeSpent": 5000, "isCorrect": True},
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "FORBIDDEN"


def test_missing_set(client: TestClient, user) -> None:
    response = client.get("/puzzle-sets/999/cycles", headers=auth(user))

    assert response.status_code == 404
    assert response.json()["error"]["details"]["resource_type"] == "PuzzleSet"


def test_create_set_and_cycles(client: TestClient, db: Session, user) -> None:
    service = PuzzleSetService(db)
    for i in range(4):
        service.add_puzzle(f"api{i}", "fen", "e2e4", 1450 + i * 10, ["fork"])

    response = client.post(
        "/puzzle-sets",
        headers=auth(user),
        json={"name": "Forks", "targetRating": 1500, "ratingRange": 200, "size": 3},
    )
    assert response.status_code == 201
    puzzle_set = response.json()
    assert puzzle_set["minRating"] == 1400
    assert puzzle_set["targetCycles"] == 7

    response = client.post(f"/puzzle-sets/{puzzle_set['id']}/cycles", headers=auth(user))
    assert response.status_code == 201
    cycle = response.json()
    assert cycle["cycleNumber"] == 1
    assert cycle["totalPuzzles"] == 3
    assert cycle["completedAt"] is None

    response = client.post(f"/puzzle-sets/{puzzle_set['id']}/cycles", headers=auth(user))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "CYCLE_STATE_ERROR"

    response = client.get(f"/puzzle-sets/{puzzle_set['id']}/cycles", headers=auth(user))
    assert [c["id"] for c in response.json()["cycles"]] == [cycle["id"]]


def test_create_set_with_too_few_puzzles(client: TestClient, user) -> None:
    response = client.post(
        "/puzzle-sets",
        headers=auth(user),
        json={"name": "Empty", "targetRating": 1500, "size": 10},
    )

    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "size"


def test_list_achievements(client: TestClient, user) -> None:
    response = client.get("/user/achievements", headers=auth(user))

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == len(ACHIEVEMENTS)
    assert data["unlocked"] == 0
    assert data["achievements"][0]["isUnlocked"] is False
    assert data["achievements"][0]["unlockedAt"] is None


def test_leaderboard_check(client: TestClient, make_user) -> None:
    user = make_user(weekly_xp=0)

    response = client.post("/user/achievements/leaderboard-check", headers=auth(user))

    assert response.status_code == 200
    assert response.json() == {"unlockedAchievements": []}


def test_streak_and_xp(client: TestClient, make_user) -> None:
    user = make_user(total_xp=300)

    streak = client.get("/user/streak", headers=auth(user)).json()
    assert streak["currentStreak"] == 0
    assert streak["daysSinceLastTrain"] == -1
    assert streak["nextMilestone"]["days"] == 3
    assert streak["milestone"] is None

    xp = client.get("/user/xp", headers=auth(user)).json()
    assert xp["totalXp"] == 300
    assert re.fullmatch(r"\d{4}-W\d{2}", xp["week"])
    assert xp["currentLevel"] == 2
    assert xp["xpInCurrentLevel"] == 18
    assert xp["title"] == "Pawn"


def test_skip_marked_correct(client: TestClient, db: Session, user, make_puzzle_set, start_cycle) -> None:
    puzzle_set = make_puzzle_set(user)
    cycle = start_cycle(puzzle_set)

    response = client.post(
        attempt_url(puzzle_set, cycle),
        headers=auth(user),
        json={"puzzleInSetId": puzzle_set.puzzles[0].id, "timeSpent": 5000, "isCorrect": True, "wasSkipped": True},
    )

    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "isCorrect"
    assert db.query(Attempt).count() == 0


def test_hide_from_leaderboard(client: TestClient, make_user) -> None:
    user = make_user(weekly_xp=50, weekly_xp_start_date=iso_week_start(datetime.now(UTC)))

    response = client.patch("/user/settings", headers=auth(user), json={"showOnLeaderboard": False})
    assert response.status_code == 200
    assert response.json() == {"showOnLeaderboard": False}

    response = client.post("/user/achievements/leaderboard-check", headers=auth(user))
    assert response.json() == {"unlockedAchievements": []}
