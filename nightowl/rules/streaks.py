"""
Streak transitions and multiplier tiers.
"""

import math
from typing import Tuple

# (minimum count, multiplier), highest tier first
MULTIPLIER_TIERS = (
    (66, 2.0),
    (30, 1.5),
    (7, 1.25),
    (0, 1.0),
)

MAX_CHECK_IN_BONUS_DAYS = 7
CHECK_IN_BONUS_PER_DAY = 5

STREAK_MILESTONES = (7, 21, 30, 66)


def multiplier_for(count: int) -> float:
    for minimum, multiplier in MULTIPLIER_TIERS:
        if count >= minimum:
            return multiplier
    return 1.0


def increment(current_count: int, longest_count: int) -> Tuple[int, int]:
    """Returns the new (current, longest) pair. Frozen streaks still count."""
    new_count = current_count + 1
    return new_count, max(longest_count, new_count)


def hard_reset(current_count: int) -> int:
    return 0


def soft_reset(current_count: int, preserve_percentage: float) -> int:
    """
    Keep a fraction of a broken streak.

    The result is always below ``current_count`` and, for counts of two or
    more, never drops to zero.
    """
    if not 0 < preserve_percentage < 1:
        raise ValueError(
            f"preserve_percentage must be between 0 and 1, got {preserve_percentage}"
        )
    if current_count <= 1:
        return 0
    preserved = math.floor(current_count * preserve_percentage)
    return min(current_count - 1, max(1, preserved))


def check_in_bonus(streak_count: int) -> int:
    """Extra XP for a daily check-in, growing for the first week."""
    return min(streak_count, MAX_CHECK_IN_BONUS_DAYS) * CHECK_IN_BONUS_PER_DAY


def is_milestone(count: int) -> bool:
    return count in STREAK_MILESTONES
