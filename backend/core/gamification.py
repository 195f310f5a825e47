"""
Gamification rules: level curve, streak bonus and point values.
"""

import math

POINTS_PER_LEVEL_UNIT = 100

STREAK_BONUS_INTERVAL_DAYS = 7
STREAK_BONUS_POINTS = 50

# Points per action type
POINT_VALUES = {
    "booking": 100,
    "review": 30,
    "referral": 200,
    "daily_login": 5,
    "streak_bonus": STREAK_BONUS_POINTS,
    "challenge_completed": 0,  # reward comes from the challenge itself
}


def level_for_points(total_points: int) -> int:
    """
    Level for a points total.

    Level L starts at (L-1)^2 * 100 points: level 1 at 0, level 2 at 100,
    level 3 at 400, level 4 at 900.
    """
    if total_points <= 0:
        return 1
    return math.isqrt(total_points // POINTS_PER_LEVEL_UNIT) + 1


def points_for_level(level: int) -> int:
    """Points needed to reach ``level``."""
    return (max(level, 1) - 1) ** 2 * POINTS_PER_LEVEL_UNIT


def points_to_next_level(total_points: int) -> int:
    level = level_for_points(total_points)
    return points_for_level(level + 1) - total_points


def level_progress(total_points: int) -> float:
    """Percent progress through the current level, 0-100."""
    level = level_for_points(total_points)
    floor = points_for_level(level)
    ceiling = points_for_level(level + 1)
    return round((total_points - floor) / (ceiling - floor) * 100, 1)
