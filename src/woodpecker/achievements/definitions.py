"""Achievement definitions with their unlock criteria.

Each criterion is a small frozen dataclass describing the shape of the rule.
The ``tier`` on a criterion says what it needs to be decided:

* ``Tier.CONTEXT`` - only the attempt context and post-update user counters.
* ``Tier.HISTORY`` - aggregate statistics over the user's attempt history.
* ``Tier.LAZY`` - too expensive per attempt; evaluated on demand elsewhere.
"""
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple, Union


class Tier(str, Enum):
    CONTEXT = "context"
    HISTORY = "history"
    LAZY = "lazy"


class Category(str, Enum):
    PUZZLES = "puzzles"
    SPEED = "speed"
    CYCLES = "cycles"
    TIME = "time"
    STREAKS = "streaks"
    ACCURACY = "accuracy"
    THEMES = "themes"
    MASTERY = "mastery"
    LEADERBOARD = "leaderboard"


# Context-only criteria

@dataclass(frozen=True)
class PuzzleCount:
    """Lifetime correct attempts reach ``count``."""
    count: int
    tier: ClassVar[Tier] = Tier.CONTEXT


@dataclass(frozen=True)
class WeeklyPuzzleCount:
    """Correct attempts in the current ISO week reach ``count``."""
    count: int
    tier: ClassVar[Tier] = Tier.CONTEXT


@dataclass(frozen=True)
class SpeedUnder:
    """A correct solve faster than ``milliseconds``."""
    milliseconds: int
    tier: ClassVar[Tier] = Tier.CONTEXT


@dataclass(frozen=True)
class TimeOfDay:
    """An attempt with UTC hour in [after, before)."""
    before: Optional[int] = None
    after: Optional[int] = None
    tier: ClassVar[Tier] = Tier.CONTEXT


@dataclass(frozen=True)
class StreakDays:
    """Current or longest streak reaches ``days``."""
    days: int
    tier: ClassVar[Tier] = Tier.CONTEXT


@dataclass(frozen=True)
class CycleCompleted:
    """Any cycle completed."""
    tier: ClassVar[Tier] = Tier.CONTEXT


@dataclass(frozen=True)
class CycleAccuracy:
    """A completed cycle of at least ``min_puzzles`` puzzles at ``percent`` accuracy or better."""
    percent: int
    min_puzzles: int = 0
    tier: ClassVar[Tier] = Tier.CONTEXT


# Historical criteria

@dataclass(frozen=True)
class CyclesSameSet:
    """``count`` completed cycles on one puzzle set."""
    count: int
    tier: ClassVar[Tier] = Tier.HISTORY


@dataclass(frozen=True)
class CycleTimeImprovement:
    """Latest completed cycle of a set is ``percent`` faster than the first."""
    percent: int
    tier: ClassVar[Tier] = Tier.HISTORY


@dataclass(frozen=True)
class ThemeAccuracy:
    theme: str
    percent: int
    min_attempts: int
    tier: ClassVar[Tier] = Tier.HISTORY


@dataclass(frozen=True)
class MultiThemeAccuracy:
    """``theme_count`` of ``themes`` each at ``percent`` accuracy over ``min_attempts``."""
    themes: Tuple[str, ...]
    theme_count: int
    percent: int
    min_attempts: int
    tier: ClassVar[Tier] = Tier.HISTORY


@dataclass(frozen=True)
class RecentStreak:
    """The last ``window`` attempts were all correct (and under ``max_time_ms`` if set)."""
    window: int
    max_time_ms: Optional[int] = None
    tier: ClassVar[Tier] = Tier.HISTORY


@dataclass(frozen=True)
class OverallAccuracy:
    percent: int
    min_attempts: int
    tier: ClassVar[Tier] = Tier.HISTORY


@dataclass(frozen=True)
class HighRatingCount:
    """``count`` correct attempts on puzzles rated ``min_rating`` or above."""
    min_rating: int
    count: int
    tier: ClassVar[Tier] = Tier.HISTORY


# Lazy criteria

@dataclass(frozen=True)
class LeaderboardRank:
    """Weekly leaderboard rank within the top ``rank``."""
    rank: int
    tier: ClassVar[Tier] = Tier.LAZY


Criterion = Union[
    PuzzleCount,
    WeeklyPuzzleCount,
    SpeedUnder,
    TimeOfDay,
    StreakDays,
    CycleCompleted,
    CycleAccuracy,
    CyclesSameSet,
    CycleTimeImprovement,
    ThemeAccuracy,
    MultiThemeAccuracy,
    RecentStreak,
    OverallAccuracy,
    HighRatingCount,
    LeaderboardRank,
]


@dataclass(frozen=True)
class AchievementDefinition:
    id: str
    name: str
    description: str
    category: Category
    icon: str
    criterion: Criterion
    sort_order: int

    @property
    def tier(self) -> Tier:
        return self.criterion.tier


MASTERY_THEMES = (
    "fork",
    "pin",
    "skewer",
    "discoveredAttack",
    "doubleCheck",
    "mate",
    "mateIn1",
    "mateIn2",
    "sacrifice",
    "deflection",
    "decoy",
    "interference",
    "clearance",
    "xRayAttack",
    "zugzwang",
    "quietMove",
    "defensiveMove",
    "attraction",
)


ACHIEVEMENTS: List[AchievementDefinition] = [
    AchievementDefinition("first-blood", "First Blood", "Complete your first puzzle",
                          Category.PUZZLES, "🎯", PuzzleCount(1), 1),
    AchievementDefinition("century", "Century", "Solve 100 puzzles",
                          Category.PUZZLES, "💯", PuzzleCount(100), 2),
    AchievementDefinition("half-thousand", "Half Thousand", "Solve 500 puzzles correctly",
                          Category.PUZZLES, "🎖️", PuzzleCount(500), 3),
    AchievementDefinition("millennium", "Millennium", "Solve 1000 puzzles correctly",
                          Category.PUZZLES, "👑", PuzzleCount(1000), 4),
    AchievementDefinition("weekly-warrior", "Weekly Warrior", "Solve 100 puzzles in a single week",
                          Category.PUZZLES, "📅", WeeklyPuzzleCount(100), 5),
    AchievementDefinition("speed-demon", "Speed Demon", "Solve a puzzle in under 3 seconds",
                          Category.SPEED, "⚡", SpeedUnder(3000), 10),
    AchievementDefinition("lightning-fast", "Lightning Fast", "Solve a puzzle in under 1.5 seconds",
                          Category.SPEED, "⚡", SpeedUnder(1500), 11),
    AchievementDefinition("speed-streak", "Speed Streak", "Solve 10 consecutive puzzles in under 5 seconds each",
                          Category.SPEED, "💨", RecentStreak(10, max_time_ms=5000), 12),
    AchievementDefinition("perfectionist", "Perfectionist", "Complete a cycle with 100% accuracy",
                          Category.CYCLES, "✨", CycleAccuracy(100), 20),
    AchievementDefinition("woodpecker-pro", "Woodpecker Pro", "Complete 5 cycles of the same set",
                          Category.CYCLES, "🪶", CyclesSameSet(5), 21),
    AchievementDefinition("cycle-complete", "Cycle Complete", "Complete your first full cycle",
                          Category.CYCLES, "♻️", CycleCompleted(), 22),
    AchievementDefinition("woodpecker-master", "Woodpecker Master", "Complete 10 cycles of the same set",
                          Category.CYCLES, "🏆", CyclesSameSet(10), 23),
    AchievementDefinition("improvement-king", "Improvement King",
                          "Reduce cycle completion time by 50% compared to first cycle",
                          Category.CYCLES, "📈", CycleTimeImprovement(50), 24),
    AchievementDefinition("early-bird", "Early Bird", "Practice before 7am",
                          Category.TIME, "🌅", TimeOfDay(before=7), 30),
    AchievementDefinition("night-owl", "Night Owl", "Practice after midnight",
                          Category.TIME, "🦉", TimeOfDay(after=0, before=5), 31),
    AchievementDefinition("on-fire", "On Fire", "Reach a 7-day streak",
                          Category.STREAKS, "🔥", StreakDays(7), 40),
    AchievementDefinition("unstoppable", "Unstoppable", "Reach a 30-day streak",
                          Category.STREAKS, "🚀", StreakDays(30), 41),
    AchievementDefinition("consistent-trainer", "Consistent Trainer", "Train for 14 consecutive days",
                          Category.STREAKS, "💪", StreakDays(14), 42),
    AchievementDefinition("dedicated", "Dedicated", "Train for 60 consecutive days",
                          Category.STREAKS, "🔱", StreakDays(60), 43),
    AchievementDefinition("theme-master-fork", "Theme Master: Forks",
                          "90%+ accuracy on fork puzzles (min 20 attempts)",
                          Category.THEMES, "🍴", ThemeAccuracy("fork", 90, 20), 50),
    AchievementDefinition("theme-master-pin", "Theme Master: Pins",
                          "90%+ accuracy on pin puzzles (min 20 attempts)",
                          Category.THEMES, "📌", ThemeAccuracy("pin", 90, 20), 51),
    AchievementDefinition("theme-master-skewer", "Theme Master: Skewers",
                          "90%+ accuracy on skewer puzzles (min 20 attempts)",
                          Category.THEMES, "🗡️", ThemeAccuracy("skewer", 90, 20), 52),
    AchievementDefinition("mate-master", "Mate Master",
                          "90%+ accuracy on checkmate puzzles (min 30 attempts)",
                          Category.THEMES, "♟️", ThemeAccuracy("mate", 90, 30), 53),
    AchievementDefinition("sharp-shooter", "Sharp Shooter", "Maintain 95% accuracy over 50 puzzles in a cycle",
                          Category.ACCURACY, "🎯", CycleAccuracy(95, min_puzzles=50), 60),
    AchievementDefinition("flawless-streak", "Flawless Streak", "Solve 25 consecutive puzzles correctly",
                          Category.ACCURACY, "✅", RecentStreak(25), 61),
    AchievementDefinition("no-mistakes", "No Mistakes",
                          "Complete a full cycle without a single error (min 20 puzzles)",
                          Category.ACCURACY, "💎", CycleAccuracy(100, min_puzzles=20), 62),
    AchievementDefinition("tactical-prodigy", "Tactical Prodigy", "Achieve 85%+ accuracy across 200 total attempts",
                          Category.MASTERY, "🧠", OverallAccuracy(85, 200), 70),
    AchievementDefinition("rating-climber", "Rating Climber", "Solve 50 puzzles with rating 1800+",
                          Category.MASTERY, "📊", HighRatingCount(1800, 50), 71),
    AchievementDefinition("versatile", "Versatile",
                          "Solve puzzles from 5 different tactical themes with 80%+ accuracy (min 15 each)",
                          Category.MASTERY, "🎨", MultiThemeAccuracy(MASTERY_THEMES, 5, 80, 15), 72),
    AchievementDefinition("rising-star", "Rising Star", "Reach top 100 on the weekly leaderboard",
                          Category.LEADERBOARD, "⭐", LeaderboardRank(100), 80),
]

ACHIEVEMENTS_BY_ID: Dict[str, AchievementDefinition] = {a.id: a for a in ACHIEVEMENTS}


def get_achievement_definition(achievement_id: str) -> Optional[AchievementDefinition]:
    """Get achievement definition by ID."""
    return ACHIEVEMENTS_BY_ID.get(achievement_id)


def get_all_achievement_ids() -> List[str]:
    return [a.id for a in ACHIEVEMENTS]


def get_achievements_by_tier(tier: Tier) -> List[AchievementDefinition]:
    return [a for a in ACHIEVEMENTS if a.tier == tier]


def get_achievements_by_category(category: Category) -> List[AchievementDefinition]:
    return [a for a in ACHIEVEMENTS if a.category == category]
