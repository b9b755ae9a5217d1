"""
Core data models for the Color Rush game engine.
"""
import asyncio
from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class GameMode(str, Enum):
    """Game modes; each has its own base time budget."""
    CLASSIC = "classic"
    SPEED = "speed"
    ENDLESS = "endless"
    CHALLENGE = "challenge"


class Difficulty(str, Enum):
    """Difficulty levels; drive time budget, scoring and challenge generation."""
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"
    EXPERT = "expert"


class PowerUpKind(str, Enum):
    """Power-ups the engine knows how to apply."""
    TIME_FREEZE = "time_freeze"
    SCORE_MULTIPLIER = "score_multiplier"
    EXTRA_LIFE = "extra_life"
    HINT = "hint"


class PauseReason(str, Enum):
    """Why a game is currently paused."""
    PLAYER = "player"
    TIME_FREEZE = "time_freeze"


STARTING_LIVES = 3


@dataclass(frozen=True)
class ColorOption:
    """One selectable answer within a challenge."""
    id: str
    color: str
    color_name: str
    is_correct: bool


@dataclass(frozen=True)
class ColorChallenge:
    """A single "pick the matching color" puzzle."""
    id: str
    target_color: str
    target_color_name: str
    options: Tuple[ColorOption, ...]
    time_limit: int
    difficulty: int

    def find_option(self, option_id: str):
        """Return the option with the given id, or None."""
        for option in self.options:
            if option.id == option_id:
                return option
        return None

    @property
    def correct_option(self) -> ColorOption:
        return next(option for option in self.options if option.is_correct)


@dataclass(frozen=True)
class GameResult:
    """Completed-game record handed to the persistence collaborator."""
    score: int
    level: int
    colors_matched: int
    perfect_matches: int
    max_streak: int
    time_played: int
    game_mode: str
    difficulty: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class GameSnapshot:
    """Read-only copy of the engine state delivered to the host."""
    score: int
    level: int
    streak: int
    max_streak: int
    time_left: int
    time_played: int
    lives: int
    is_playing: bool
    is_paused: bool
    is_game_over: bool
    game_mode: GameMode
    difficulty: Difficulty
    colors_matched: int
    perfect_matches: int
    power_ups_used: Tuple[str, ...]
    bonus_multiplier: float

    def to_result(self) -> GameResult:
        """Build the persistence record for this (final) state."""
        return GameResult(
            score=self.score,
            level=self.level,
            colors_matched=self.colors_matched,
            perfect_matches=self.perfect_matches,
            max_streak=self.max_streak,
            time_played=self.time_played,
            game_mode=self.game_mode.value,
            difficulty=self.difficulty.value,
        )


@dataclass
class GameState:
    """Mutable game state; owned and mutated by the engine only."""
    score: int = 0
    level: int = 1
    streak: int = 0
    max_streak: int = 0
    time_left: int = 60
    time_played: int = 0
    lives: int = STARTING_LIVES
    is_playing: bool = False
    is_paused: bool = False
    is_game_over: bool = False
    game_mode: GameMode = GameMode.CLASSIC
    difficulty: Difficulty = Difficulty.NORMAL
    colors_matched: int = 0
    perfect_matches: int = 0
    power_ups_used: List[str] = field(default_factory=list)
    bonus_multiplier: float = 1.0

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            score=self.score,
            level=self.level,
            streak=self.streak,
            max_streak=self.max_streak,
            time_left=self.time_left,
            time_played=self.time_played,
            lives=self.lives,
            is_playing=self.is_playing,
            is_paused=self.is_paused,
            is_game_over=self.is_game_over,
            game_mode=self.game_mode,
            difficulty=self.difficulty,
            colors_matched=self.colors_matched,
            perfect_matches=self.perfect_matches,
            power_ups_used=tuple(self.power_ups_used),
            bonus_multiplier=self.bonus_multiplier,
        )


@dataclass
class EngineSettings:
    """Timing configuration for a game engine instance."""
    tick_interval: float = 1.0
    time_freeze_duration: float = 5.0
    score_multiplier_duration: float = 10.0


@dataclass
class GameSession:
    """A Discord channel's game: the engine plus what the host last rendered."""
    channel_id: int
    player_id: int
    started_at: datetime
    engine: Optional[Any] = None
    channel: Optional[Any] = None
    message: Optional[Any] = None
    state: Optional[GameSnapshot] = None
    challenge: Optional[ColorChallenge] = None
    hint_option_id: Optional[str] = None
    final_score: Optional[int] = None
    save_result: Optional[Dict[str, Any]] = None
    render_pending: bool = False
    render_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
