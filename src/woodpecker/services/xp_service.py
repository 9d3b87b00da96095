"""XP awards and level calculations.

All functions are pure. XP required to reach level N is
``floor(base * N ** exponent)`` (level 1 needs nothing), so early levels come
quickly and later ones take longer. Constants come from ``settings.xp``.
"""
import math
from typing import List, Optional

from woodpecker.config import XpSettings, settings
from woodpecker.models.progress_models import (
    LevelProgress,
    PreviousAttempt,
    XpBreakdownItem,
    XpGain,
    XpSource,
)

LEVEL_TITLES = [
    (1, "Pawn", "♟️"),
    (5, "Knight", "♞"),
    (10, "Bishop", "♝"),
    (20, "Rook", "♜"),
    (35, "Queen", "♛"),
    (50, "Grandmaster", "♚"),
]


def xp_for_level(level: int, xp: Optional[XpSettings] = None) -> int:
    """Total XP required to reach a level."""
    xp = xp or settings.xp
    if level <= 1:
        return 0
    return math.floor(xp.level_base_xp * level ** xp.level_exponent)


def level_from_xp(total_xp: int, xp: Optional[XpSettings] = None) -> int:
    """Level for a cumulative XP amount (at least 1)."""
    xp = xp or settings.xp
    if total_xp <= 0:
        return 1

    level = max(1, math.floor((total_xp / xp.level_base_xp) ** (1 / xp.level_exponent)))
    # Float rounding can land one level off right at a threshold
    while xp_for_level(level + 1, xp) <= total_xp:
        level += 1
    while level > 1 and xp_for_level(level, xp) > total_xp:
        level -= 1
    return level


def level_progress(total_xp: int, xp: Optional[XpSettings] = None) -> LevelProgress:
    """XP progress within the current level."""
    current_level = level_from_xp(total_xp, xp)
    current_level_xp = xp_for_level(current_level, xp)
    next_level_xp = xp_for_level(current_level + 1, xp)

    xp_in_current_level = max(0, total_xp) - current_level_xp
    xp_needed_for_next_level = next_level_xp - current_level_xp
    if xp_needed_for_next_level > 0:
        progress_percent = min(100, math.floor(xp_in_current_level / xp_needed_for_next_level * 100))
    else:
        progress_percent = 100

    return LevelProgress(
        current_level=current_level,
        current_level_xp=current_level_xp,
        next_level_xp=next_level_xp,
        xp_in_current_level=xp_in_current_level,
        xp_needed_for_next_level=xp_needed_for_next_level,
        progress_percent=progress_percent,
    )


def level_title(level: int) -> tuple[str, str]:
    """Title and icon for a level."""
    title, icon = LEVEL_TITLES[0][1], LEVEL_TITLES[0][2]
    for min_level, name, symbol in LEVEL_TITLES:
        if level >= min_level:
            title, icon = name, symbol
    return title, icon


def rating_bonus(puzzle_rating: Optional[int], xp: Optional[XpSettings] = None) -> int:
    xp = xp or settings.xp
    if puzzle_rating is None or puzzle_rating <= xp.rating_bonus_base:
        return 0
    return (puzzle_rating - xp.rating_bonus_base) // xp.rating_bonus_divisor


def streak_bonus(current_streak: int, xp: Optional[XpSettings] = None) -> int:
    xp = xp or settings.xp
    return max(0, min(current_streak, xp.max_streak_bonus_days)) * xp.streak_bonus_per_day


def cycle_accuracy_multiplier(correct: int, total: int) -> float:
    """100% = 2x, 90% = 1.5x, 80% = 1.2x, otherwise 1x."""
    if total <= 0:
        return 1.0
    accuracy = correct / total
    if accuracy >= 1:
        return 2.0
    if accuracy >= 0.9:
        return 1.5
    if accuracy >= 0.8:
        return 1.2
    return 1.0


def _gain(breakdown: List[XpBreakdownItem], current_total_xp: int, xp: Optional[XpSettings]) -> XpGain:
    total = sum(item.amount for item in breakdown)
    new_total_xp = current_total_xp + total
    previous_level = level_from_xp(current_total_xp, xp)
    new_level = level_from_xp(new_total_xp, xp)
    return XpGain(
        total_xp=total,
        breakdown=breakdown,
        new_total_xp=new_total_xp,
        previous_level=previous_level,
        new_level=new_level,
        leveled_up=new_level > previous_level,
    )


def puzzle_attempt_xp(
    is_correct: bool,
    time_spent_ms: int,
    puzzle_rating: Optional[int],
    current_streak: int,
    is_first_attempt: bool,
    current_total_xp: int,
    previous_attempt: Optional[PreviousAttempt] = None,
    xp: Optional[XpSettings] = None,
) -> XpGain:
    """XP gained from a single puzzle attempt. Only correct answers earn XP."""
    xp = xp or settings.xp
    breakdown: List[XpBreakdownItem] = []

    if not is_correct:
        return _gain(breakdown, current_total_xp, xp)

    breakdown.append(XpBreakdownItem(XpSource.PUZZLE_CORRECT, xp.puzzle_correct, "Correct answer"))

    bonus = rating_bonus(puzzle_rating, xp)
    if bonus > 0:
        breakdown.append(XpBreakdownItem(XpSource.PUZZLE_RATING_BONUS, bonus, f"Puzzle rating ({puzzle_rating})"))

    if time_spent_ms < xp.speed_bonus_threshold_ms:
        breakdown.append(XpBreakdownItem(XpSource.SPEED_BONUS, xp.speed_bonus, "Speed bonus"))

    bonus = streak_bonus(current_streak, xp)
    if bonus > 0:
        breakdown.append(XpBreakdownItem(XpSource.STREAK_BONUS, bonus, f"{current_streak} day streak"))

    if is_first_attempt:
        breakdown.append(XpBreakdownItem(XpSource.FIRST_ATTEMPT_BONUS, xp.first_attempt_bonus, "First attempt"))

    # Correct after a miss, or faster than a previous correct solve
    if previous_attempt is not None and (
        not previous_attempt.is_correct or time_spent_ms < previous_attempt.time_spent_ms
    ):
        breakdown.append(XpBreakdownItem(XpSource.IMPROVEMENT_BONUS, xp.improvement_bonus, "Improvement"))

    breakdown = [item for item in breakdown if item.amount > 0]
    return _gain(breakdown, current_total_xp, xp)


def cycle_complete_xp(
    correct_count: int,
    total_puzzles: int,
    current_total_xp: int,
    xp: Optional[XpSettings] = None,
) -> XpGain:
    """XP gained from completing a cycle, scaled by the cycle's accuracy."""
    xp = xp or settings.xp
    breakdown = [XpBreakdownItem(XpSource.CYCLE_COMPLETE, xp.cycle_complete, "Cycle complete")]

    multiplier = cycle_accuracy_multiplier(correct_count, total_puzzles)
    bonus = math.floor(xp.cycle_complete * multiplier) - xp.cycle_complete
    if bonus > 0:
        accuracy = round(correct_count / total_puzzles * 100)
        breakdown.append(XpBreakdownItem(XpSource.CYCLE_ACCURACY_BONUS, bonus, f"{accuracy}% accuracy bonus"))

    breakdown = [item for item in breakdown if item.amount > 0]
    return _gain(breakdown, current_total_xp, xp)


def combine_xp_gains(gains: List[XpGain]) -> XpGain:
    """Combine gains applied one after another (e.g. attempt then cycle completion)."""
    if not gains:
        return XpGain(
            total_xp=0,
            breakdown=[],
            new_total_xp=0,
            previous_level=1,
            new_level=1,
            leveled_up=False,
        )

    breakdown: List[XpBreakdownItem] = []
    for gain in gains:
        breakdown.extend(gain.breakdown)

    previous_level = gains[0].previous_level
    new_level = gains[-1].new_level
    return XpGain(
        total_xp=sum(gain.total_xp for gain in gains),
        breakdown=breakdown,
        new_total_xp=gains[-1].new_total_xp,
        previous_level=previous_level,
        new_level=new_level,
        leveled_up=new_level > previous_level,
    )
