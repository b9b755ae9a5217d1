"""
Scoring policy for Color Rush.
Time budgets, points per correct answer, level progression and streak bonuses.
"""
import math

from .models import GameMode, Difficulty

# Base time budget per mode, in seconds
BASE_TIMES = {
    GameMode.CLASSIC: 60,
    GameMode.SPEED: 30,
    GameMode.ENDLESS: 120,
    GameMode.CHALLENGE: 45,
}

# Scales the base time budget
TIME_MULTIPLIERS = {
    Difficulty.EASY: 1.5,
    Difficulty.NORMAL: 1.0,
    Difficulty.HARD: 0.8,
    Difficulty.EXPERT: 0.6,
}

# Scales the points of every correct answer
SCORE_MULTIPLIERS = {
    Difficulty.EASY: 0.8,
    Difficulty.NORMAL: 1.0,
    Difficulty.HARD: 1.3,
    Difficulty.EXPERT: 1.6,
}

MATCHES_PER_LEVEL = 10
STREAK_BONUS_STEP = 5
STREAK_BONUS_POINTS = 5
PERFECT_MATCH_STREAK = 10
PERFECT_MATCH_BONUS = 50
WRONG_ANSWER_TIME_PENALTY = 2


def initial_time(mode: GameMode, difficulty: Difficulty) -> int:
    """
    Compute the starting time budget for a game.

    Args:
        mode: Game mode
        difficulty: Game difficulty

    Returns:
        Whole seconds, floored
    """
    return math.floor(BASE_TIMES[mode] * TIME_MULTIPLIERS[difficulty])


def points_for_correct_answer(
    level: int,
    streak: int,
    difficulty: Difficulty,
    bonus_multiplier: float = 1.0
) -> int:
    """
    Points earned by a correct answer.

    Args:
        level: Current level (before any level-up from this answer)
        streak: Streak including this answer
        difficulty: Game difficulty
        bonus_multiplier: Active power-up multiplier

    Returns:
        Points, floored to an integer
    """
    base_score = 10 * level
    streak_bonus = (streak // STREAK_BONUS_STEP) * STREAK_BONUS_POINTS
    return math.floor((base_score + streak_bonus) * SCORE_MULTIPLIERS[difficulty] * bonus_multiplier)


def is_level_up(colors_matched: int) -> bool:
    """True when this match count completes a level."""
    return colors_matched > 0 and colors_matched % MATCHES_PER_LEVEL == 0


def is_perfect_match(streak: int) -> bool:
    """True on streak milestones 10, 20, 30 ..."""
    return streak >= PERFECT_MATCH_STREAK and streak % PERFECT_MATCH_STREAK == 0


def perfect_match_bonus(level: int) -> int:
    return PERFECT_MATCH_BONUS * level
