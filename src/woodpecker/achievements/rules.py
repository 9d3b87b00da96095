"""Pure evaluation of achievement criteria.

``evaluate_context`` decides context-tier rules from an ``AchievementContext``
alone. ``evaluate_history`` decides history-tier rules from a
``HistoricalStats`` snapshot that the caller loads in one query. Neither
function performs I/O.
"""
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Set, Tuple

from woodpecker.achievements.definitions import (
    AchievementDefinition,
    CycleAccuracy,
    CycleCompleted,
    CyclesSameSet,
    CycleTimeImprovement,
    HighRatingCount,
    MultiThemeAccuracy,
    OverallAccuracy,
    PuzzleCount,
    RecentStreak,
    SpeedUnder,
    StreakDays,
    ThemeAccuracy,
    Tier,
    TimeOfDay,
    WeeklyPuzzleCount,
)
from woodpecker.models.progress_models import AchievementContext
from woodpecker.services.periods import as_utc


@dataclass
class HistoricalStats:
    """Aggregates over a user's attempt history."""
    total_attempts: int = 0
    total_correct: int = 0
    # min rating -> correct attempts on puzzles rated at least that
    high_rated_correct: Dict[int, int] = field(default_factory=dict)
    # theme -> (attempts, correct)
    theme_stats: Dict[str, Tuple[int, int]] = field(default_factory=dict)
    # newest first: (is_correct, time_spent_ms)
    recent_attempts: List[Tuple[bool, int]] = field(default_factory=list)
    # total_time of each completed cycle of the current set, by cycle number
    completed_cycle_times: List[int] = field(default_factory=list)

    @property
    def completed_cycles_in_set(self) -> int:
        return len(self.completed_cycle_times)


def meets_percent(correct: int, total: int, percent: int) -> bool:
    """correct / total >= percent%, in integer arithmetic."""
    return total > 0 and correct * 100 >= percent * total


# Context checks

def _puzzle_count(criterion: PuzzleCount, context: AchievementContext) -> bool:
    return context.counters.total_correct_attempts >= criterion.count


def _weekly_puzzle_count(criterion: WeeklyPuzzleCount, context: AchievementContext) -> bool:
    return context.counters.weekly_correct_attempts >= criterion.count


def _speed_under(criterion: SpeedUnder, context: AchievementContext) -> bool:
    attempt = context.attempt
    return attempt.is_correct and not attempt.was_skipped and attempt.time_spent_ms < criterion.milliseconds


def _time_of_day(criterion: TimeOfDay, context: AchievementContext) -> bool:
    hour = as_utc(context.attempt.attempted_at).hour
    if criterion.after is not None and hour < criterion.after:
        return False
    if criterion.before is not None and hour >= criterion.before:
        return False
    return True


def _streak_days(criterion: StreakDays, context: AchievementContext) -> bool:
    streak = max(context.counters.current_streak, context.counters.longest_streak)
    return streak >= criterion.days


def _cycle_completed(criterion: CycleCompleted, context: AchievementContext) -> bool:
    return context.cycle_completion is not None


def _cycle_accuracy(criterion: CycleAccuracy, context: AchievementContext) -> bool:
    completion = context.cycle_completion
    if completion is None or completion.total_puzzles < criterion.min_puzzles:
        return False
    return meets_percent(completion.correct_puzzles, completion.total_puzzles, criterion.percent)


CONTEXT_CHECKS: Dict[type, Callable] = {
    PuzzleCount: _puzzle_count,
    WeeklyPuzzleCount: _weekly_puzzle_count,
    SpeedUnder: _speed_under,
    TimeOfDay: _time_of_day,
    StreakDays: _streak_days,
    CycleCompleted: _cycle_completed,
    CycleAccuracy: _cycle_accuracy,
}


# History checks

def _cycles_same_set(criterion: CyclesSameSet, stats: HistoricalStats) -> bool:
    return stats.completed_cycles_in_set >= criterion.count


def _cycle_time_improvement(criterion: CycleTimeImprovement, stats: HistoricalStats) -> bool:
    times = stats.completed_cycle_times
    if len(times) < 2 or not times[0] or not times[-1]:
        return False
    reduction = times[0] - times[-1]
    return reduction * 100 >= criterion.percent * times[0]


def _theme_accuracy(criterion: ThemeAccuracy, stats: HistoricalStats) -> bool:
    total, correct = stats.theme_stats.get(criterion.theme, (0, 0))
    return total >= criterion.min_attempts and meets_percent(correct, total, criterion.percent)


def _multi_theme_accuracy(criterion: MultiThemeAccuracy, stats: HistoricalStats) -> bool:
    if stats.total_attempts < criterion.theme_count * criterion.min_attempts:
        return False
    qualifying = 0
    for theme in criterion.themes:
        total, correct = stats.theme_stats.get(theme, (0, 0))
        if total >= criterion.min_attempts and meets_percent(correct, total, criterion.percent):
            qualifying += 1
    return qualifying >= criterion.theme_count


def _recent_streak(criterion: RecentStreak, stats: HistoricalStats) -> bool:
    window = stats.recent_attempts[:criterion.window]
    if len(window) < criterion.window:
        return False
    return all(
        is_correct and (criterion.max_time_ms is None or time_spent < criterion.max_time_ms)
        for is_correct, time_spent in window
    )


def _overall_accuracy(criterion: OverallAccuracy, stats: HistoricalStats) -> bool:
    return (
        stats.total_attempts >= criterion.min_attempts
        and meets_percent(stats.total_correct, stats.total_attempts, criterion.percent)
    )


def _high_rating_count(criterion: HighRatingCount, stats: HistoricalStats) -> bool:
    return stats.high_rated_correct.get(criterion.min_rating, 0) >= criterion.count


HISTORY_CHECKS: Dict[type, Callable] = {
    CyclesSameSet: _cycles_same_set,
    CycleTimeImprovement: _cycle_time_improvement,
    ThemeAccuracy: _theme_accuracy,
    MultiThemeAccuracy: _multi_theme_accuracy,
    RecentStreak: _recent_streak,
    OverallAccuracy: _overall_accuracy,
    HighRatingCount: _high_rating_count,
}


def locked(definitions: Iterable[AchievementDefinition], unlocked_ids: Set[str], tier: Tier) -> List[AchievementDefinition]:
    """Definitions of the given tier that are not unlocked yet."""
    return [d for d in definitions if d.tier == tier and d.id not in unlocked_ids]


def evaluate_context(
    definitions: Iterable[AchievementDefinition],
    context: AchievementContext,
    unlocked_ids: Set[str],
) -> List[str]:
    """Ids of locked context-tier achievements that the context satisfies."""
    qualified = []
    for definition in locked(definitions, unlocked_ids, Tier.CONTEXT):
        check = CONTEXT_CHECKS[type(definition.criterion)]
        if check(definition.criterion, context):
            qualified.append(definition.id)
    return qualified


def evaluate_history(
    definitions: Iterable[AchievementDefinition],
    stats: HistoricalStats,
    unlocked_ids: Set[str],
) -> List[str]:
    """Ids of locked history-tier achievements that the statistics satisfy."""
    qualified = []
    for definition in locked(definitions, unlocked_ids, Tier.HISTORY):
        check = HISTORY_CHECKS[type(definition.criterion)]
        if check(definition.criterion, stats):
            qualified.append(definition.id)
    return qualified
