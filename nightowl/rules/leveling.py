"""
Leveling curve.

Leaving level L costs int(100 * L^1.5) cumulative XP, so level 2 is reached at
100 XP, level 3 at 282 XP, level 4 at 519 XP and so on. Level 1 is the floor.
"""

from typing import Dict


def xp_for_next_level(level: int) -> int:
    """Cumulative XP needed to move past ``level``."""
    return int(100 * (level**1.5))


def level_threshold(level: int) -> int:
    """Cumulative XP at which ``level`` is reached."""
    if level <= 1:
        return 0
    return xp_for_next_level(level - 1)


def derive_level(total_xp: int) -> int:
    """Largest level whose threshold is covered by ``total_xp``."""
    level = 1
    while total_xp >= level_threshold(level + 1):
        level += 1
    return level


def level_progress(total_xp: int) -> Dict[str, int]:
    level = derive_level(total_xp)
    floor = level_threshold(level)
    ceiling = level_threshold(level + 1)
    span = ceiling - floor
    into_level = max(0, total_xp - floor)
    return {
        "level": level,
        "xp_into_level": into_level,
        "xp_to_next_level": ceiling - max(total_xp, floor),
        "progress_percent": min(100, max(0, round(into_level * 100 / span))),
    }
