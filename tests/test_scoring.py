"""
Unit tests for the scoring policy.
"""
import unittest

from color_rush import scoring
from color_rush.models import Difficulty, GameMode


class TestInitialTime(unittest.TestCase):
    """Time budget per mode and difficulty."""

    def test_every_mode_and_difficulty_pair(self):
        """timeLeft is floor(base time x difficulty multiplier) for all pairs."""
        expected = {
            GameMode.CLASSIC: {Difficulty.EASY: 90, Difficulty.NORMAL: 60, Difficulty.HARD: 48, Difficulty.EXPERT: 36},
            GameMode.SPEED: {Difficulty.EASY: 45, Difficulty.NORMAL: 30, Difficulty.HARD: 24, Difficulty.EXPERT: 18},
            GameMode.ENDLESS: {Difficulty.EASY: 180, Difficulty.NORMAL: 120, Difficulty.HARD: 96, Difficulty.EXPERT: 72},
            GameMode.CHALLENGE: {Difficulty.EASY: 67, Difficulty.NORMAL: 45, Difficulty.HARD: 36, Difficulty.EXPERT: 27},
        }
        for mode, by_difficulty in expected.items():
            for difficulty, seconds in by_difficulty.items():
                with self.subTest(mode=mode, difficulty=difficulty):
                    result = scoring.initial_time(mode, difficulty)
                    self.assertEqual(result, seconds)
                    self.assertIsInstance(result, int)


class TestPoints(unittest.TestCase):
    """Points for a correct answer."""

    def test_base_points_scale_with_level(self):
        self.assertEqual(scoring.points_for_correct_answer(1, 1, Difficulty.NORMAL), 10)
        self.assertEqual(scoring.points_for_correct_answer(3, 1, Difficulty.NORMAL), 30)

    def test_streak_bonus_every_five(self):
        self.assertEqual(scoring.points_for_correct_answer(1, 4, Difficulty.NORMAL), 10)
        self.assertEqual(scoring.points_for_correct_answer(1, 5, Difficulty.NORMAL), 15)
        self.assertEqual(scoring.points_for_correct_answer(1, 12, Difficulty.NORMAL), 20)

    def test_difficulty_multiplier_is_floored(self):
        self.assertEqual(scoring.points_for_correct_answer(1, 1, Difficulty.EASY), 8)
        self.assertEqual(scoring.points_for_correct_answer(1, 1, Difficulty.HARD), 13)
        self.assertEqual(scoring.points_for_correct_answer(1, 1, Difficulty.EXPERT), 16)
        # (10*2 + 5) * 1.3 = 32.5
        self.assertEqual(scoring.points_for_correct_answer(2, 5, Difficulty.HARD), 32)

    def test_bonus_multiplier(self):
        self.assertEqual(scoring.points_for_correct_answer(1, 1, Difficulty.NORMAL, 2.0), 20)
        # (10 + 5) * 1.6 * 2.0 = 48
        self.assertEqual(scoring.points_for_correct_answer(1, 5, Difficulty.EXPERT, 2.0), 48)


class TestMilestones(unittest.TestCase):
    """Level-up and perfect-match rules."""

    def test_level_up_only_on_multiples_of_ten(self):
        self.assertTrue(scoring.is_level_up(10))
        self.assertTrue(scoring.is_level_up(20))
        for matched in (0, 1, 9, 11, 19, 25):
            with self.subTest(matched=matched):
                self.assertFalse(scoring.is_level_up(matched))

    def test_perfect_match_only_on_streak_multiples_of_ten(self):
        self.assertTrue(scoring.is_perfect_match(10))
        self.assertTrue(scoring.is_perfect_match(30))
        for streak in (0, 5, 9, 15, 21):
            with self.subTest(streak=streak):
                self.assertFalse(scoring.is_perfect_match(streak))

    def test_perfect_match_bonus(self):
        self.assertEqual(scoring.perfect_match_bonus(1), 50)
        self.assertEqual(scoring.perfect_match_bonus(3), 150)


if __name__ == '__main__':
    unittest.main()
