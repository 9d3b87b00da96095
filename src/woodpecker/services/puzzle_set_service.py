"""Service for puzzle sets and their training cycles."""
import logging
from datetime import UTC, datetime
from typing import Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from woodpecker.exceptions import CycleStateError, ForbiddenError, NotFoundError, ValidationError
from woodpecker.models.models import Cycle, Puzzle, PuzzleInSet, PuzzleSet, PuzzleTheme

logger = logging.getLogger(__name__)

MIN_PUZZLE_RATING = 800
MAX_PUZZLE_RATING = 2600


class PuzzleSetService:
    """Service for creating puzzle sets and moving them through cycles."""

    def __init__(self, db: Session):
        """Initialize the service with a database session."""
        self.db = db

    def add_puzzle(
        self,
        puzzle_id: str,
        fen: str,
        moves: str,
        rating: int,
        themes: Iterable[str] = (),
    ) -> Puzzle:
        """Add a puzzle to the puzzle database, or return it if it already exists."""
        puzzle = self.db.query(Puzzle).filter(Puzzle.id == puzzle_id).first()
        if puzzle is not None:
            return puzzle

        puzzle = Puzzle(id=puzzle_id, fen=fen, moves=moves, rating=rating)
        puzzle.themes = [PuzzleTheme(theme=theme) for theme in dict.fromkeys(themes)]
        self.db.add(puzzle)
        self.db.commit()
        return puzzle

    def get_puzzle_set(self, user_id: int, puzzle_set_id: int) -> PuzzleSet:
        """Get a puzzle set owned by the user."""
        puzzle_set = self.db.query(PuzzleSet).filter(PuzzleSet.id == puzzle_set_id).first()
        if puzzle_set is None:
            raise NotFoundError("PuzzleSet", puzzle_set_id)
        if puzzle_set.user_id != user_id:
            raise ForbiddenError("Puzzle set belongs to another user", details={"puzzle_set_id": puzzle_set_id})
        return puzzle_set

    def create_puzzle_set(
        self,
        user_id: int,
        name: str,
        target_rating: int,
        rating_range: int,
        size: int,
        target_cycles: int = 7,
        focus_theme: Optional[str] = None,
    ) -> PuzzleSet:
        """Create a set of random puzzles around the target rating.

        Puzzles are attached here and never afterwards, so every cycle of the
        set covers the same positions.
        """
        if size < 1:
            raise ValidationError("Set size must be positive", field="size")
        if target_cycles < 1:
            raise ValidationError("Target cycles must be positive", field="targetCycles")

        min_rating = max(MIN_PUZZLE_RATING, target_rating - rating_range // 2)
        max_rating = min(MAX_PUZZLE_RATING, target_rating + rating_range // 2)

        query = self.db.query(Puzzle).filter(Puzzle.rating >= min_rating, Puzzle.rating <= max_rating)
        if focus_theme:
            query = query.join(PuzzleTheme).filter(PuzzleTheme.theme == focus_theme)
        puzzles = query.order_by(func.random()).limit(size).all()

        if len(puzzles) < size:
            theme_note = f' for theme "{focus_theme}"' if focus_theme else ""
            raise ValidationError(
                f"Found {len(puzzles)} puzzles{theme_note} in rating range "
                f"{min_rating}-{max_rating}, but {size} requested",
                field="size",
            )

        puzzle_set = PuzzleSet(
            user_id=user_id,
            name=name,
            target_rating=target_rating,
            min_rating=min_rating,
            max_rating=max_rating,
            size=size,
            target_cycles=target_cycles,
        )
        puzzle_set.puzzles = [
            PuzzleInSet(puzzle_id=puzzle.id, position=position)
            for position, puzzle in enumerate(puzzles, start=1)
        ]
        self.db.add(puzzle_set)
        self.db.commit()
        logger.info(f"User {user_id} created puzzle set {puzzle_set.id} with {size} puzzles")
        return puzzle_set

    def start_cycle(self, user_id: int, puzzle_set_id: int, now: Optional[datetime] = None) -> Cycle:
        """Start the next cycle of a puzzle set.

        Raises:
            CycleStateError: the previous cycle is still open or the target is reached
        """
        puzzle_set = self.get_puzzle_set(user_id, puzzle_set_id)
        last_cycle = (
            self.db.query(Cycle)
            .filter(Cycle.puzzle_set_id == puzzle_set_id)
            .order_by(Cycle.cycle_number.desc())
            .first()
        )

        if last_cycle is not None and not last_cycle.is_completed:
            raise CycleStateError("Previous cycle is not yet complete", details={"cycle_id": last_cycle.id})
        if last_cycle is not None and last_cycle.cycle_number >= puzzle_set.target_cycles:
            raise CycleStateError(
                "All target cycles have been completed",
                details={"target_cycles": puzzle_set.target_cycles},
            )

        total_puzzles = (
            self.db.query(func.count(PuzzleInSet.id))
            .filter(PuzzleInSet.puzzle_set_id == puzzle_set_id)
            .scalar()
        )
        cycle = Cycle(
            puzzle_set_id=puzzle_set_id,
            cycle_number=last_cycle.cycle_number + 1 if last_cycle else 1,
            total_puzzles=total_puzzles,
            started_at=now or datetime.now(UTC),
        )
        self.db.add(cycle)
        try:
            self.db.commit()
        except IntegrityError:
            # Another request started the same cycle number first
            self.db.rollback()
            raise CycleStateError("Previous cycle is not yet complete")

        logger.info(f"Started cycle {cycle.cycle_number} of puzzle set {puzzle_set_id}")
        return cycle

    def list_cycles(self, user_id: int, puzzle_set_id: int) -> List[Cycle]:
        """Get every cycle of a puzzle set, oldest first."""
        self.get_puzzle_set(user_id, puzzle_set_id)
        return (
            self.db.query(Cycle)
            .filter(Cycle.puzzle_set_id == puzzle_set_id)
            .order_by(Cycle.cycle_number)
            .all()
        )
