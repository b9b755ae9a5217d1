"""
Real-time game engine for Color Rush.
Owns game time, challenge generation, scoring, lives and power-up effects,
and reports every change to its host through three callbacks.
"""
import logging
import random
import time
from typing import Callable, Dict, Optional, Set

from .challenge_generator import ChallengeGenerator
from .models import (
    ColorChallenge,
    Difficulty,
    EngineSettings,
    GameMode,
    GameSnapshot,
    GameState,
    PauseReason,
    PowerUpKind,
)
from .scheduler import GameScheduler, ScheduledTask
from . import scoring

logger = logging.getLogger(__name__)

SCORE_MULTIPLIER_BONUS = 2.0


class GameEngine:
    """
    Finite-state machine driving one game at a time.

    States: idle -> playing -> (paused <-> playing) -> game over. The engine
    is the only mutator of its GameState; the host receives frozen snapshots
    through on_state_change and must never compute scores itself.
    """

    def __init__(
        self,
        on_state_change: Callable[[GameSnapshot], None],
        on_challenge_change: Callable[[ColorChallenge], None],
        on_game_end: Callable[[int], None],
        settings: Optional[EngineSettings] = None,
        scheduler: Optional[GameScheduler] = None,
        generator: Optional[ChallengeGenerator] = None,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the engine in the idle state.

        Args:
            on_state_change: Called with a snapshot after every mutation
            on_challenge_change: Called with each newly generated challenge
            on_game_end: Called once per game with the final score
            settings: Tick and power-up timings
            scheduler: Timer scheduler owned by this engine; every pending task on
                it is cancelled when a game starts, ends or is destroyed
            generator: Challenge generator; built from rng when omitted
            rng: Random source for the default generator
        """
        self._on_state_change = on_state_change
        self._on_challenge_change = on_challenge_change
        self._on_game_end = on_game_end
        self.settings = settings or EngineSettings()
        self._scheduler = scheduler or GameScheduler()
        self._generator = generator or ChallengeGenerator(rng)

        self._state = GameState()
        self._challenge: Optional[ColorChallenge] = None
        self._clock: Optional[ScheduledTask] = None
        self._effect_timers: Dict[PowerUpKind, ScheduledTask] = {}
        self._pause_reasons: Set[PauseReason] = set()

    # ------------------------------------------------------------------
    # Lifecycle / clock
    # ------------------------------------------------------------------

    def start_game(self, mode=GameMode.CLASSIC, difficulty=Difficulty.NORMAL) -> None:
        """
        Start a fresh game, discarding any game in progress.

        Args:
            mode: Game mode (enum member or its string value)
            difficulty: Difficulty (enum member or its string value)

        Raises:
            ValueError: If mode or difficulty is not recognized
        """
        mode = GameMode(mode)
        difficulty = Difficulty(difficulty)

        if self._state.is_playing:
            logger.info(
                "Restarting while a game is in progress; discarding current game",
                extra={'event_type': 'game_discarded', 'score': self._state.score, 'timestamp': time.time()}
            )
        self._cancel_timers()
        self._pause_reasons.clear()

        self._state = GameState(
            game_mode=mode,
            difficulty=difficulty,
            is_playing=True,
            time_left=scoring.initial_time(mode, difficulty),
        )
        self._clock = self._scheduler.call_every(self.settings.tick_interval, self._tick, name="game-clock")

        logger.info(
            f"Game started: mode={mode.value}, difficulty={difficulty.value}, time={self._state.time_left}s",
            extra={
                'event_type': 'game_started',
                'game_mode': mode.value,
                'difficulty': difficulty.value,
                'time_left': self._state.time_left,
                'timestamp': time.time()
            }
        )

        self._generate_challenge()
        self._emit_state()

    def _tick(self) -> None:
        state = self._state
        if not state.is_playing or state.is_paused:
            return

        state.time_left -= 1
        state.time_played += 1

        if state.time_left <= 0:
            logger.info("Time expired", extra={'event_type': 'time_expired', 'timestamp': time.time()})
            self.end_game()
        else:
            self._emit_state()

    def pause_game(self) -> None:
        """Pause the game on the player's behalf."""
        if not self._state.is_playing:
            logger.debug("Ignoring pause: no game in progress")
            return
        self._pause_reasons.add(PauseReason.PLAYER)
        self._sync_pause()
        self._emit_state()

    def resume_game(self) -> None:
        """Lift the player's pause; an active time freeze keeps the game paused."""
        if not self._state.is_playing:
            logger.debug("Ignoring resume: no game in progress")
            return
        self._pause_reasons.discard(PauseReason.PLAYER)
        self._sync_pause()
        self._emit_state()

    def end_game(self) -> None:
        """
        End the current game.

        Cancels every pending timer, reports the final score through
        on_game_end and emits a final state change. Ignored when no game is
        in progress.
        """
        state = self._state
        if not state.is_playing:
            logger.debug("Ignoring end_game: no game in progress")
            return

        state.is_playing = False
        state.is_paused = False
        state.is_game_over = True
        self._pause_reasons.clear()
        self._cancel_timers()

        logger.info(
            f"Game over: score={state.score}, level={state.level}, matched={state.colors_matched}",
            extra={
                'event_type': 'game_ended',
                'score': state.score,
                'level': state.level,
                'colors_matched': state.colors_matched,
                'time_played': state.time_played,
                'timestamp': time.time()
            }
        )

        self._on_game_end(state.score)
        self._emit_state()

    def destroy(self) -> None:
        """Cancel every pending timer and return to idle. Safe to call repeatedly."""
        self._cancel_timers()
        self._pause_reasons.clear()
        self._state = GameState()
        self._challenge = None

    # ------------------------------------------------------------------
    # Answer processing
    # ------------------------------------------------------------------

    def handle_color_selection(self, option_id: str, challenge: Optional[ColorChallenge] = None) -> None:
        """
        Process the player's answer.

        Args:
            option_id: Id of the selected option
            challenge: Challenge the option belongs to; defaults to the current one
        """
        if not self._state.is_playing or self._state.is_paused:
            logger.debug(f"Ignoring selection {option_id}: game not accepting answers")
            return

        challenge = challenge or self._challenge
        option = challenge.find_option(option_id) if challenge else None
        if option is None:
            logger.debug(f"Ignoring selection: unknown option {option_id}")
            return

        if option.is_correct:
            self._apply_correct_answer()
        else:
            self._apply_wrong_answer()

        self._generate_challenge()

    def _apply_correct_answer(self) -> None:
        state = self._state
        state.streak += 1
        state.colors_matched += 1
        state.max_streak = max(state.max_streak, state.streak)

        points = scoring.points_for_correct_answer(
            state.level, state.streak, state.difficulty, state.bonus_multiplier
        )
        state.score += points

        if scoring.is_level_up(state.colors_matched):
            state.level += 1
            logger.info(
                f"Level up: {state.level}",
                extra={'event_type': 'level_up', 'level': state.level, 'timestamp': time.time()}
            )

        if scoring.is_perfect_match(state.streak):
            state.perfect_matches += 1
            state.score += scoring.perfect_match_bonus(state.level)

        logger.debug(
            f"Correct answer: +{points} points, streak {state.streak}",
            extra={'event_type': 'answer_correct', 'points': points, 'streak': state.streak}
        )
        self._emit_state()

    def _apply_wrong_answer(self) -> None:
        state = self._state
        state.streak = 0
        state.lives -= 1

        logger.debug(
            f"Wrong answer: {state.lives} lives left",
            extra={'event_type': 'answer_wrong', 'lives': state.lives}
        )

        if state.lives <= 0:
            self.end_game()
        else:
            state.time_left = max(0, state.time_left - scoring.WRONG_ANSWER_TIME_PENALTY)
            self._emit_state()

    def _generate_challenge(self) -> None:
        self._challenge = self._generator.generate(self._state.difficulty, self._state.level)
        self._on_challenge_change(self._challenge)

    # ------------------------------------------------------------------
    # Power-ups
    # ------------------------------------------------------------------

    def activate_power_up(self, kind: str) -> None:
        """
        Apply a power-up effect. The host must check entitlement first.

        Args:
            kind: Power-up identifier; unknown kinds are recorded but have no effect
        """
        state = self._state
        if not state.is_playing:
            logger.debug(f"Ignoring power-up {kind}: no game in progress")
            return

        kind_value = kind.value if isinstance(kind, PowerUpKind) else str(kind)
        state.power_ups_used.append(kind_value)

        try:
            power_up = PowerUpKind(kind_value)
        except ValueError:
            logger.warning(
                f"Unrecognized power-up recorded without effect: {kind_value}",
                extra={'event_type': 'power_up_unknown', 'power_up': kind_value, 'timestamp': time.time()}
            )
            self._emit_state()
            return

        if power_up is PowerUpKind.TIME_FREEZE:
            self._pause_reasons.add(PauseReason.TIME_FREEZE)
            self._sync_pause()
            self._start_effect_timer(power_up, self.settings.time_freeze_duration, self._expire_time_freeze)
        elif power_up is PowerUpKind.SCORE_MULTIPLIER:
            state.bonus_multiplier = SCORE_MULTIPLIER_BONUS
            self._start_effect_timer(
                power_up, self.settings.score_multiplier_duration, self._expire_score_multiplier
            )
        elif power_up is PowerUpKind.EXTRA_LIFE:
            state.lives += 1
        # HINT: revealing the answer is up to the host

        logger.info(
            f"Power-up activated: {power_up.value}",
            extra={'event_type': 'power_up_activated', 'power_up': power_up.value, 'timestamp': time.time()}
        )
        self._emit_state()

    def _start_effect_timer(self, kind: PowerUpKind, duration: float, callback: Callable[[], None]) -> None:
        previous = self._effect_timers.pop(kind, None)
        if previous is not None:
            previous.cancel()
        self._effect_timers[kind] = self._scheduler.call_later(duration, callback, name=f"{kind.value}-expiry")

    def _expire_time_freeze(self) -> None:
        self._effect_timers.pop(PowerUpKind.TIME_FREEZE, None)
        self._pause_reasons.discard(PauseReason.TIME_FREEZE)
        self._sync_pause()
        logger.debug("Time freeze expired", extra={'event_type': 'power_up_expired', 'power_up': 'time_freeze'})
        self._emit_state()

    def _expire_score_multiplier(self) -> None:
        self._effect_timers.pop(PowerUpKind.SCORE_MULTIPLIER, None)
        self._state.bonus_multiplier = 1.0
        logger.debug(
            "Score multiplier expired", extra={'event_type': 'power_up_expired', 'power_up': 'score_multiplier'}
        )
        self._emit_state()

    # ------------------------------------------------------------------
    # Accessors and helpers
    # ------------------------------------------------------------------

    def get_game_state(self) -> GameSnapshot:
        """Return a read-only snapshot of the current state."""
        return self._state.snapshot()

    @property
    def current_challenge(self) -> Optional[ColorChallenge]:
        return self._challenge

    @property
    def pause_reasons(self) -> frozenset:
        return frozenset(self._pause_reasons)

    def _sync_pause(self) -> None:
        self._state.is_paused = bool(self._pause_reasons)

    def _cancel_timers(self) -> None:
        self._scheduler.cancel_all()
        self._clock = None
        self._effect_timers.clear()

    def _emit_state(self) -> None:
        self._on_state_change(self._state.snapshot())
