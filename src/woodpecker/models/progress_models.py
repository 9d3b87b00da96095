"""Data structures passed between the progress components."""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from woodpecker.models.models import Attempt, Cycle


@dataclass
class StreakUpdate:
    """Result of applying one training day to a streak."""
    new_streak: int
    new_longest_streak: int
    incremented: bool
    broken: bool
    is_new_record: bool


@dataclass
class StreakStatus:
    """Read-only view of a streak at a point in time."""
    is_active_today: bool
    is_at_risk: bool  # streak alive but nothing trained today
    days_since_last_train: int  # -1 if never trained


@dataclass
class StreakMilestone:
    days: int
    title: str
    message: str
    emoji: str


class XpSource(str, Enum):
    """Where a piece of XP came from."""
    PUZZLE_CORRECT = "PUZZLE_CORRECT"
    PUZZLE_RATING_BONUS = "PUZZLE_RATING_BONUS"
    SPEED_BONUS = "SPEED_BONUS"
    STREAK_BONUS = "STREAK_BONUS"
    FIRST_ATTEMPT_BONUS = "FIRST_ATTEMPT_BONUS"
    IMPROVEMENT_BONUS = "IMPROVEMENT_BONUS"
    CYCLE_COMPLETE = "CYCLE_COMPLETE"
    CYCLE_ACCURACY_BONUS = "CYCLE_ACCURACY_BONUS"


@dataclass
class XpBreakdownItem:
    source: XpSource
    amount: int
    label: str


@dataclass
class XpGain:
    """XP awarded by one or more events."""
    total_xp: int
    breakdown: List[XpBreakdownItem]
    new_total_xp: int
    previous_level: int
    new_level: int
    leveled_up: bool


@dataclass
class LevelProgress:
    current_level: int
    current_level_xp: int
    next_level_xp: int
    xp_in_current_level: int
    xp_needed_for_next_level: int
    progress_percent: int


@dataclass
class PreviousAttempt:
    """The most recent earlier attempt on the same puzzle."""
    is_correct: bool
    time_spent_ms: int


@dataclass
class AttemptFacts:
    """Facts about the attempt that triggered an evaluation."""
    is_correct: bool
    was_skipped: bool
    time_spent_ms: int
    attempted_at: datetime
    puzzle_rating: Optional[int] = None
    puzzle_themes: List[str] = field(default_factory=list)


@dataclass
class CycleCompletionFacts:
    """Facts about a cycle completed by the triggering attempt."""
    puzzle_set_id: int
    cycle_number: int
    total_puzzles: int
    correct_puzzles: int
    total_time: int

    @property
    def accuracy(self) -> float:
        """Accuracy in percent (0-100)."""
        if self.total_puzzles == 0:
            return 0.0
        return self.correct_puzzles / self.total_puzzles * 100


@dataclass
class UserCounters:
    """Post-update user counters."""
    total_correct_attempts: int
    weekly_correct_attempts: int
    current_streak: int
    longest_streak: int


@dataclass
class AchievementContext:
    """Everything the rule engine may look at without touching the datastore."""
    user_id: int
    puzzle_set_id: int
    attempt: AttemptFacts
    counters: UserCounters
    cycle_completion: Optional[CycleCompletionFacts] = None
    streak_update: Optional[StreakUpdate] = None


@dataclass
class UnlockedAchievement:
    id: str
    name: str
    description: str
    icon: str
    unlocked_at: datetime


@dataclass
class AttemptOutcome:
    """Everything produced by recording one attempt."""
    attempt: Attempt
    cycle: Cycle
    is_last_puzzle: bool
    streak: StreakUpdate
    xp: XpGain
    unlocked_achievements: List[UnlockedAchievement] = field(default_factory=list)
