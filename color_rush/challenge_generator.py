"""
Challenge generation for Color Rush.
Picks target colors, builds distractor options and shuffles them.
"""
import itertools
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from .models import ColorChallenge, ColorOption, Difficulty

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorFamily:
    """A named color with its canonical shade and near-duplicate variants."""
    name: str
    color: str
    variants: Tuple[str, str, str]


@dataclass(frozen=True)
class DifficultySettings:
    """Challenge shape for one difficulty level."""
    options: int
    time_limit: int  # milliseconds
    similar_colors: bool


COLOR_FAMILIES: Tuple[ColorFamily, ...] = (
    ColorFamily("red", "#dc2626", ("#ef4444", "#f87171", "#fca5a5")),
    ColorFamily("orange", "#f59e0b", ("#f97316", "#fb923c", "#fdba74")),
    ColorFamily("blue", "#3b82f6", ("#2563eb", "#60a5fa", "#93c5fd")),
    ColorFamily("green", "#10b981", ("#059669", "#34d399", "#6ee7b7")),
    ColorFamily("purple", "#8b5cf6", ("#7c3aed", "#a78bfa", "#c4b5fd")),
    ColorFamily("pink", "#ec4899", ("#db2777", "#f472b6", "#f9a8d4")),
    ColorFamily("yellow", "#eab308", ("#ca8a04", "#facc15", "#fde047")),
    ColorFamily("teal", "#14b8a6", ("#0d9488", "#2dd4bf", "#5eead4")),
)

DIFFICULTY_SETTINGS: Dict[Difficulty, DifficultySettings] = {
    Difficulty.EASY: DifficultySettings(options=3, time_limit=5000, similar_colors=False),
    Difficulty.NORMAL: DifficultySettings(options=4, time_limit=4000, similar_colors=True),
    Difficulty.HARD: DifficultySettings(options=5, time_limit=3000, similar_colors=True),
    Difficulty.EXPERT: DifficultySettings(options=6, time_limit=2500, similar_colors=True),
}


class ChallengeGenerator:
    """Builds color-matching challenges from the fixed palette."""

    def __init__(self, rng: Optional[random.Random] = None):
        """
        Initialize the generator.

        Args:
            rng: Random source; pass a seeded instance for reproducible challenges
        """
        self._rng = rng or random.Random()
        self._sequence = itertools.count(1)

    def generate(self, difficulty: Difficulty, level: int) -> ColorChallenge:
        """
        Generate a new challenge.

        Args:
            difficulty: Configured game difficulty (option count, shades, time limit)
            level: Current game level, reported as the challenge difficulty

        Returns:
            A fresh ColorChallenge with exactly one correct option
        """
        settings = DIFFICULTY_SETTINGS[difficulty]
        target_family = self._rng.choice(COLOR_FAMILIES)
        target_color = self._pick_shade(target_family, settings.similar_colors)

        used_ids: Set[str] = set()
        options: List[ColorOption] = [
            ColorOption(
                id=self._new_option_id(used_ids),
                color=target_color,
                color_name=target_family.name,
                is_correct=True,
            )
        ]

        other_families = [family for family in COLOR_FAMILIES if family.name != target_family.name]
        for _ in range(settings.options - 1):
            wrong_family = self._rng.choice(other_families)
            options.append(
                ColorOption(
                    id=self._new_option_id(used_ids),
                    color=self._pick_shade(wrong_family, settings.similar_colors),
                    color_name=wrong_family.name,
                    is_correct=False,
                )
            )

        shuffled = self.shuffle_options(options)

        challenge = ColorChallenge(
            id=f"challenge-{next(self._sequence)}-{self._rng.getrandbits(32):08x}",
            target_color=target_color,
            target_color_name=target_family.name,
            options=tuple(shuffled),
            time_limit=settings.time_limit,
            difficulty=level,
        )
        logger.debug(
            f"Generated {challenge.id}: target {target_family.name} ({target_color}), {len(shuffled)} options",
            extra={
                'event_type': 'challenge_generated',
                'challenge_id': challenge.id,
                'difficulty': difficulty.value,
                'level': level,
            }
        )
        return challenge

    def shuffle_options(self, options: List[ColorOption]) -> List[ColorOption]:
        """
        Shuffle options without bias toward any position.

        Args:
            options: Options to shuffle

        Returns:
            New list with options in random order
        """
        shuffled = options.copy()
        # random.shuffle is a Fisher-Yates shuffle
        self._rng.shuffle(shuffled)
        return shuffled

    def _pick_shade(self, family: ColorFamily, similar_colors: bool) -> str:
        if similar_colors and self._rng.random() < 0.5:
            return self._rng.choice(family.variants)
        return family.color

    def _new_option_id(self, used_ids: Set[str]) -> str:
        while True:
            option_id = f"opt-{self._rng.getrandbits(32):08x}"
            if option_id not in used_ids:
                used_ids.add(option_id)
                return option_id
