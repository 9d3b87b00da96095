"""Test configuration."""
import os
from pathlib import Path
from typing import Callable, Generator, Iterable, Optional

import pytest
from dotenv import load_dotenv
from faker import Faker

# Set test environment before any imports
os.environ["ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"

# Load test environment variables
test_env_path = Path(__file__).parent.parent.parent.parent / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from sqlalchemy.orm import Session

from woodpecker.models.base import Base, SessionLocal, engine, init_db
from woodpecker.models.models import Cycle, PuzzleInSet, PuzzleSet, User
from woodpecker.services.puzzle_set_service import PuzzleSetService
from woodpecker.services.user_service import UserService

fake = Faker()

START_FEN = "r1bqkbnr/pppp1ppp/2n5/4p3/4P3/5N2/PPPP1PPP/RNBQKB1R w KQkq - 2 3"


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create a fresh database session on an empty schema for each test."""
    Base.metadata.drop_all(bind=engine)
    init_db()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_user(db: Session) -> Callable[..., User]:
    """Factory for users with optional counter overrides."""

    def _make_user(**counters) -> User:
        user = UserService(db).get_or_create_user(fake.uuid4(), fake.name())
        for name, value in counters.items():
            setattr(user, name, value)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def user(make_user) -> User:
    return make_user()


@pytest.fixture
def make_puzzle_set(db: Session) -> Callable[..., PuzzleSet]:
    """Factory for puzzle sets with explicit puzzle ratings and themes."""

    def _make_puzzle_set(
        owner: User,
        ratings: Iterable[int] = (1200,),
        themes: Optional[Iterable[Iterable[str]]] = None,
        target_cycles: int = 7,
    ) -> PuzzleSet:
        ratings = list(ratings)
        themes = list(themes) if themes is not None else [()] * len(ratings)
        service = PuzzleSetService(db)
        puzzles = [
            service.add_puzzle(
                puzzle_id=fake.unique.bothify("?????###"),
                fen=START_FEN,
                moves="f1c4 g8f6 f3g5",
                rating=rating,
                themes=puzzle_themes,
            )
            for rating, puzzle_themes in zip(ratings, themes)
        ]
        puzzle_set = PuzzleSet(
            user_id=owner.id,
            name=fake.word(),
            target_rating=1500,
            min_rating=min(ratings),
            max_rating=max(ratings),
            size=len(puzzles),
            target_cycles=target_cycles,
        )
        puzzle_set.puzzles = [
            PuzzleInSet(puzzle_id=puzzle.id, position=position)
            for position, puzzle in enumerate(puzzles, start=1)
        ]
        db.add(puzzle_set)
        db.commit()
        return puzzle_set

    return _make_puzzle_set


@pytest.fixture
def start_cycle(db: Session) -> Callable[[PuzzleSet], Cycle]:
    def _start_cycle(puzzle_set: PuzzleSet) -> Cycle:
        return PuzzleSetService(db).start_cycle(puzzle_set.user_id, puzzle_set.id)

    return _start_cycle
