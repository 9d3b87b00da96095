"""Puzzle set and cycle routes."""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from woodpecker.api.deps import get_current_user
from woodpecker.api.schemas import (
    CycleListResponse,
    CycleResponse,
    PuzzleSetCreateRequest,
    PuzzleSetResponse,
)
from woodpecker.models.base import get_db
from woodpecker.models.models import Cycle, PuzzleSet, User
from woodpecker.services.periods import as_utc
from woodpecker.services.puzzle_set_service import PuzzleSetService

router = APIRouter()


def _cycle_response(cycle: Cycle) -> CycleResponse:
    return CycleResponse(
        id=cycle.id,
        cycle_number=cycle.cycle_number,
        total_puzzles=cycle.total_puzzles,
        solved_correct=cycle.solved_correct,
        solved_incorrect=cycle.solved_incorrect,
        skipped=cycle.skipped,
        total_time=cycle.total_time,
        started_at=as_utc(cycle.started_at),
        completed_at=as_utc(cycle.completed_at),
    )


def _puzzle_set_response(puzzle_set: PuzzleSet) -> PuzzleSetResponse:
    return PuzzleSetResponse(
        id=puzzle_set.id,
        name=puzzle_set.name,
        size=puzzle_set.size,
        target_rating=puzzle_set.target_rating,
        min_rating=puzzle_set.min_rating,
        max_rating=puzzle_set.max_rating,
        target_cycles=puzzle_set.target_cycles,
    )


@router.post("", response_model=PuzzleSetResponse, status_code=201)
def create_puzzle_set(
    body: PuzzleSetCreateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a puzzle set of random puzzles around the target rating."""
    puzzle_set = PuzzleSetService(db).create_puzzle_set(
        user_id=current_user.id,
        name=body.name,
        target_rating=body.target_rating,
        rating_range=body.rating_range,
        size=body.size,
        target_cycles=body.target_cycles,
        focus_theme=body.focus_theme,
    )
    return _puzzle_set_response(puzzle_set)


@router.post("/{set_id}/cycles", response_model=CycleResponse, status_code=201)
def start_cycle(
    set_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Start the next cycle of a puzzle set."""
    cycle = PuzzleSetService(db).start_cycle(current_user.id, set_id)
    return _cycle_response(cycle)


@router.get("/{set_id}/cycles", response_model=CycleListResponse)
def list_cycles(
    set_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get all cycles of a puzzle set with their running stats."""
    cycles = PuzzleSetService(db).list_cycles(current_user.id, set_id)
    return CycleListResponse(cycles=[_cycle_response(c) for c in cycles])
