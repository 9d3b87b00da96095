"""Request and response models for the HTTP API."""
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field

MOVE_CODE_PATTERN = r"^[a-h][1-8][a-h][1-8][qrbn]?$"


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase."""
    components = string.split("_")
    return components[0] + "".join(x.title() for x in components[1:])


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Attempts
# =============================================================================


class AttemptRequest(CamelModel):
    """Body of an attempt submission."""

    puzzle_in_set_id: int = Field(..., description="Puzzle position being attempted")
    time_spent: int = Field(..., ge=1, le=3_600_000, description="Elapsed time in milliseconds")
    is_correct: bool
    was_skipped: bool = False
    moves_played: List[Annotated[str, Field(pattern=MOVE_CODE_PATTERN)]] = Field(
        default_factory=list, description="UCI move codes, e.g. e2e4 or e7e8q"
    )


class AttemptSummary(CamelModel):
    id: int
    time_spent: int
    is_correct: bool
    was_skipped: bool


class CycleStats(CamelModel):
    solved_correct: int
    solved_incorrect: int
    skipped: int
    total_time: int


class StreakResult(CamelModel):
    current: int
    longest: int
    incremented: bool
    broken: bool
    is_new_record: bool


class XpBreakdownEntry(CamelModel):
    source: str
    amount: int
    label: str


class XpResult(CamelModel):
    gained: int
    breakdown: List[XpBreakdownEntry]
    new_total: int
    previous_level: int
    new_level: int
    leveled_up: bool


class UnlockedAchievementResponse(CamelModel):
    id: str
    name: str
    description: str
    icon: str
    unlocked_at: datetime


class AttemptResponse(CamelModel):
    """Everything the client needs after an attempt."""

    attempt: AttemptSummary
    cycle_stats: CycleStats
    is_last_puzzle: bool
    streak: StreakResult
    xp: XpResult
    unlocked_achievements: List[UnlockedAchievementResponse] = Field(default_factory=list)


# =============================================================================
# Puzzle sets and cycles
# =============================================================================


class PuzzleSetCreateRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    target_rating: int = Field(..., ge=800, le=2600)
    rating_range: int = Field(200, ge=0, le=1000)
    size: int = Field(..., ge=1, le=1000)
    target_cycles: int = Field(7, ge=1, le=20)
    focus_theme: Optional[str] = None


class PuzzleSetResponse(CamelModel):
    id: int
    name: str
    size: int
    target_rating: int
    min_rating: int
    max_rating: int
    target_cycles: int


class CycleResponse(CamelModel):
    id: int
    cycle_number: int
    total_puzzles: int
    solved_correct: int
    solved_incorrect: int
    skipped: int
    total_time: int
    started_at: datetime
    completed_at: Optional[datetime] = None


class CycleListResponse(CamelModel):
    cycles: List[CycleResponse]


# =============================================================================
# User progress
# =============================================================================


class AchievementWithStatus(CamelModel):
    id: str
    name: str
    description: str
    category: str
    icon: str
    is_unlocked: bool
    unlocked_at: Optional[datetime] = None


class AchievementsListResponse(CamelModel):
    """All achievements with the caller's unlock status."""

    achievements: List[AchievementWithStatus]
    total: int = Field(..., description="Total number of achievements")
    unlocked: int = Field(..., description="Number of unlocked achievements")


class LeaderboardCheckResponse(CamelModel):
    unlocked_achievements: List[UnlockedAchievementResponse] = Field(default_factory=list)


class MilestoneResponse(CamelModel):
    days: int
    title: str
    message: str
    emoji: str


class StreakResponse(CamelModel):
    current_streak: int
    longest_streak: int
    last_trained_date: Optional[datetime] = None
    is_active_today: bool
    is_at_risk: bool
    days_since_last_train: int
    milestone: Optional[MilestoneResponse] = Field(None, description="Milestone reached at the current streak length")
    next_milestone: Optional[MilestoneResponse] = None


class XpResponse(CamelModel):
    total_xp: int
    weekly_xp: int
    week: str = Field(..., description="ISO week of weekly_xp, e.g. 2024-W11")
    current_level: int
    current_level_xp: int
    next_level_xp: int
    xp_in_current_level: int
    xp_needed_for_next_level: int
    progress_percent: int
    title: str
    icon: str


class UserSettingsRequest(CamelModel):
    show_on_leaderboard: bool


class UserSettingsResponse(CamelModel):
    show_on_leaderboard: bool
