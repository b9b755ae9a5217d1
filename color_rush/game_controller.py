"""
Game session controller for the Color Rush Discord bot.
Owns one game engine per Discord channel, routes player input to it and
renders engine state back to the channel.
"""
import asyncio
import logging
import random
import time
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Optional, Set

import discord

from .config_manager import ConfigManager
from .data_manager import DataManager
from .game_engine import GameEngine
from .models import (
    ColorChallenge,
    Difficulty,
    GameMode,
    GameSession,
    GameSnapshot,
    PauseReason,
    PowerUpKind,
)
from .scheduler import GameScheduler

POWER_UP_LABELS = {
    PowerUpKind.TIME_FREEZE: "❄️ Time Freeze",
    PowerUpKind.SCORE_MULTIPLIER: "✖️ Score Multiplier",
    PowerUpKind.EXTRA_LIFE: "❤️ Extra Life",
    PowerUpKind.HINT: "💡 Hint",
}


class SessionState(Enum):
    """Enumeration of possible game session states."""
    INACTIVE = "inactive"
    PLAYING = "playing"
    PAUSED = "paused"
    GAME_OVER = "game_over"


class ColorRushError(Exception):
    """Base exception for game controller errors."""
    pass


class SessionConflictError(ColorRushError):
    """Raised when another player's game is already running in the channel."""
    pass


class SessionNotFoundError(ColorRushError):
    """Raised when attempting to operate on a non-existent session."""
    pass


class InvalidSessionStateError(ColorRushError):
    """Raised when session is in an invalid state for the requested operation."""
    pass


class PowerUpUnavailableError(ColorRushError):
    """Raised when a player has none of the requested power-up left."""
    pass


class GameController:
    """
    Orchestrates game sessions across Discord channels.

    Each channel holds at most one session. The controller never computes
    game outcomes itself: every score, life and timer change comes from the
    session's GameEngine through its callbacks.
    """

    def __init__(
        self,
        data_manager: DataManager,
        config_manager: ConfigManager,
        scheduler_factory: Callable[[], Any] = GameScheduler,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the game controller.

        Args:
            data_manager: Persistence for results, stats and inventories
            config_manager: Source of defaults and engine timings
            scheduler_factory: Builds one timer scheduler per engine
            rng: Shared random source for challenge generation
        """
        self.logger = logging.getLogger(__name__)
        self.data_manager = data_manager
        self.config_manager = config_manager
        self.scheduler_factory = scheduler_factory
        self.rng = rng

        # Sessions mapped by channel ID
        self._sessions: Dict[int, GameSession] = {}
        self._render_tasks: Set[asyncio.Task] = set()

        self.logger.info("GameController initialized")

    # ------------------------------------------------------------------
    # Session lookup
    # ------------------------------------------------------------------

    def get_session(self, channel_id: int) -> Optional[GameSession]:
        return self._sessions.get(channel_id)

    def get_session_state(self, channel_id: int) -> SessionState:
        """
        Get the current state of a channel's session.

        Args:
            channel_id: Discord channel identifier

        Returns:
            SessionState enum value
        """
        session = self._sessions.get(channel_id)
        if session is None:
            return SessionState.INACTIVE

        state = session.engine.get_game_state()
        if state.is_game_over:
            return SessionState.GAME_OVER
        if state.is_paused:
            return SessionState.PAUSED
        if state.is_playing:
            return SessionState.PLAYING
        return SessionState.INACTIVE

    def get_session_status(self, channel_id: int) -> Optional[Dict[str, Any]]:
        """
        Summarize a channel's session for display.

        Returns:
            Dictionary of session details, or None if no session exists
        """
        session = self._sessions.get(channel_id)
        if session is None:
            return None

        state = session.engine.get_game_state()
        return {
            'player_id': session.player_id,
            'state': self.get_session_state(channel_id).value,
            'game_mode': state.game_mode.value,
            'difficulty': state.difficulty.value,
            'score': state.score,
            'level': state.level,
            'lives': state.lives,
            'streak': state.streak,
            'time_left': state.time_left,
            'colors_matched': state.colors_matched,
            'started_at': session.started_at,
        }

    def get_all_sessions(self) -> Dict[int, Dict[str, Any]]:
        return {channel_id: self.get_session_status(channel_id) for channel_id in self._sessions}

    def _require_session(self, channel_id: int) -> GameSession:
        session = self._sessions.get(channel_id)
        if session is None:
            raise SessionNotFoundError(f"No game in channel {channel_id}")
        return session

    def _require_player(self, session: GameSession, player_id: int) -> None:
        if session.player_id != player_id:
            raise InvalidSessionStateError(
                f"Player {player_id} is not the owner of the game in channel {session.channel_id}"
            )

    # ------------------------------------------------------------------
    # Player operations
    # ------------------------------------------------------------------

    def start_game(
        self,
        channel_id: int,
        player_id: int,
        mode: Optional[str] = None,
        difficulty: Optional[str] = None,
        channel: Optional[Any] = None
    ) -> Dict[str, Any]:
        """
        Start a game in a channel. The same player may restart at any time.

        Args:
            channel_id: Discord channel identifier
            player_id: Discord user starting the game
            mode: Game mode name; configured default when omitted
            difficulty: Difficulty name; configured default when omitted
            channel: Discord channel to render the game into

        Returns:
            Dictionary with operation results and error information
        """
        try:
            game_mode = GameMode(mode) if mode else self.config_manager.get_default_mode()
            game_difficulty = Difficulty(difficulty) if difficulty else self.config_manager.get_default_difficulty()

            existing = self._sessions.get(channel_id)
            if existing is not None:
                if existing.player_id != player_id and existing.engine.get_game_state().is_playing:
                    raise SessionConflictError(f"Game already running in channel {channel_id}")
                existing.engine.destroy()

            session = GameSession(channel_id=channel_id, player_id=player_id, started_at=datetime.now())
            session.channel = channel
            session.engine = GameEngine(
                on_state_change=lambda snapshot: self._handle_state_change(session, snapshot),
                on_challenge_change=lambda challenge: self._handle_challenge_change(session, challenge),
                on_game_end=lambda final_score: self._handle_game_end(session, final_score),
                settings=self.config_manager.get_engine_settings(),
                scheduler=self.scheduler_factory(),
                rng=self.rng,
            )
            self._sessions[channel_id] = session
            session.engine.start_game(game_mode, game_difficulty)

            self.logger.info(
                f"Started {game_mode.value}/{game_difficulty.value} game for player {player_id} "
                f"in channel {channel_id}",
                extra={
                    'event_type': 'session_started',
                    'channel_id': channel_id,
                    'player_id': player_id,
                    'timestamp': time.time()
                }
            )
            return {
                'success': True,
                'message': f"{game_mode.value.title()} game started on {game_difficulty.value} difficulty",
                'session_info': self.get_session_status(channel_id)
            }

        except Exception as e:
            return self._handle_session_error(channel_id, e, "start_game")

    def submit_answer(self, channel_id: int, player_id: int, challenge_id: str, option_id: str) -> Dict[str, Any]:
        """
        Forward a button press to the engine.

        Args:
            channel_id: Discord channel identifier
            player_id: Discord user who pressed the button
            challenge_id: Challenge the button belonged to
            option_id: Selected option

        Returns:
            Dictionary with success status and whether the answer was correct
        """
        try:
            session = self._require_session(channel_id)
            self._require_player(session, player_id)
            state = session.engine.get_game_state()
            if not state.is_playing:
                raise InvalidSessionStateError(f"Game in channel {channel_id} is not running")

            if state.is_paused:
                return {
                    'success': False,
                    'message': "Game is paused",
                    'user_message': "⏸️ The game is paused. Use `/resume` to keep playing."
                }

            challenge = session.engine.current_challenge
            option = challenge.find_option(option_id) if challenge and challenge.id == challenge_id else None
            if option is None:
                self.logger.debug(f"Stale answer {option_id} for {challenge_id} in channel {channel_id}")
                return {
                    'success': False,
                    'message': "Challenge already answered",
                    'user_message': "⌛ That color has already been answered. Pick from the latest one!"
                }

            session.engine.handle_color_selection(option_id, challenge)
            return {
                'success': True,
                'correct': option.is_correct,
                'state': session.engine.get_game_state()
            }

        except Exception as e:
            return self._handle_session_error(channel_id, e, "submit_answer")

    def pause_game(self, channel_id: int, player_id: int) -> Dict[str, Any]:
        """Pause the channel's game."""
        try:
            session = self._require_session(channel_id)
            self._require_player(session, player_id)
            state = session.engine.get_game_state()
            if not state.is_playing:
                raise InvalidSessionStateError(f"Game in channel {channel_id} is not running")
            if PauseReason.PLAYER in session.engine.pause_reasons:
                return {
                    'success': False,
                    'message': "Game is already paused",
                    'user_message': "⏸️ The game is already paused."
                }

            session.engine.pause_game()
            self.logger.info(f"Paused game in channel {channel_id}")
            return {
                'success': True,
                'message': "Game paused",
                'session_info': self.get_session_status(channel_id)
            }

        except Exception as e:
            return self._handle_session_error(channel_id, e, "pause_game")

    def resume_game(self, channel_id: int, player_id: int) -> Dict[str, Any]:
        """Resume the channel's game. A running time freeze keeps the clock stopped."""
        try:
            session = self._require_session(channel_id)
            self._require_player(session, player_id)
            state = session.engine.get_game_state()
            if not state.is_playing:
                raise InvalidSessionStateError(f"Game in channel {channel_id} is not running")
            if not state.is_paused:
                return {
                    'success': False,
                    'message': "Game is not paused",
                    'user_message': "▶️ The game is already running."
                }

            session.engine.resume_game()
            still_frozen = session.engine.get_game_state().is_paused
            self.logger.info(f"Resumed game in channel {channel_id}")
            return {
                'success': True,
                'message': "Game resumed, time freeze still active" if still_frozen else "Game resumed",
                'session_info': self.get_session_status(channel_id)
            }

        except Exception as e:
            return self._handle_session_error(channel_id, e, "resume_game")

    def stop_game(self, channel_id: int, player_id: int) -> Dict[str, Any]:
        """
        End the channel's game early and remove the session.

        A game still in progress is ended normally first, so its result is
        saved like any other finished game.

        Returns:
            Dictionary with the final state and save outcome
        """
        try:
            session = self._require_session(channel_id)
            self._require_player(session, player_id)

            session.engine.end_game()
            final_state = session.state or session.engine.get_game_state()
            session.engine.destroy()
            del self._sessions[channel_id]

            self.logger.info(
                f"Stopped game in channel {channel_id}",
                extra={'event_type': 'session_stopped', 'channel_id': channel_id, 'timestamp': time.time()}
            )
            return {
                'success': True,
                'message': "Game stopped",
                'final_state': final_state,
                'save_result': session.save_result
            }

        except Exception as e:
            return self._handle_session_error(channel_id, e, "stop_game")

    def use_power_up(self, channel_id: int, player_id: int, kind: str) -> Dict[str, Any]:
        """
        Spend one power-up from the player's inventory and apply it.

        Args:
            channel_id: Discord channel identifier
            player_id: Discord user using the power-up
            kind: Power-up name

        Returns:
            Dictionary with remaining quantity; hints include the option to reveal
        """
        try:
            power_up = PowerUpKind(kind)
            session = self._require_session(channel_id)
            self._require_player(session, player_id)
            if not session.engine.get_game_state().is_playing:
                raise InvalidSessionStateError(f"Game in channel {channel_id} is not running")

            consumed = self.data_manager.consume_power_up(player_id, power_up)
            if not consumed['success']:
                raise PowerUpUnavailableError(f"{power_up.value}: {consumed['error']}")

            session.engine.activate_power_up(power_up)

            result = {
                'success': True,
                'power_up': power_up.value,
                'message': f"{POWER_UP_LABELS[power_up]} activated",
                'remaining': consumed['remaining']
            }
            if power_up is PowerUpKind.HINT and session.engine.current_challenge is not None:
                session.hint_option_id = session.engine.current_challenge.correct_option.id
                result['hint_option_id'] = session.hint_option_id
                self._request_render(session)
            return result

        except Exception as e:
            return self._handle_session_error(channel_id, e, "use_power_up")

    def shutdown(self) -> int:
        """
        Destroy every session's engine.

        Returns:
            Number of sessions shut down
        """
        count = len(self._sessions)
        for session in self._sessions.values():
            session.engine.destroy()
        self._sessions.clear()
        for task in list(self._render_tasks):
            task.cancel()
        self.logger.info(f"Shut down {count} game sessions")
        return count

    # ------------------------------------------------------------------
    # Engine callbacks
    # ------------------------------------------------------------------

    def _handle_state_change(self, session: GameSession, snapshot: GameSnapshot) -> None:
        session.state = snapshot
        self._request_render(session)

    def _handle_challenge_change(self, session: GameSession, challenge: ColorChallenge) -> None:
        session.challenge = challenge
        session.hint_option_id = None
        self._request_render(session)

    def _handle_game_end(self, session: GameSession, final_score: int) -> None:
        session.final_score = final_score
        result = session.engine.get_game_state().to_result()
        try:
            session.save_result = self.data_manager.save_game_result(session.player_id, result)
        except Exception as e:
            self.logger.error(f"Error saving result for channel {session.channel_id}: {e}", exc_info=True)
            session.save_result = {'success': False, 'error': str(e)}

        if not session.save_result['success']:
            self.logger.warning(
                f"Game result for player {session.player_id} was not saved: {session.save_result['error']}"
            )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _request_render(self, session: GameSession) -> None:
        """Schedule one redraw; changes made before it runs are drawn together."""
        if session.channel is None or session.render_pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        session.render_pending = True
        task = loop.create_task(self.render_session(session))
        self._render_tasks.add(task)
        task.add_done_callback(self._render_tasks.discard)

    async def render_session(self, session: GameSession) -> None:
        """
        Send or update the session's game message.

        Args:
            session: Session whose latest state should be displayed
        """
        async with session.render_lock:
            session.render_pending = False
            embed = self.build_game_embed(session)
            view = None
            if session.state is not None and session.state.is_playing and session.challenge is not None:
                view = ChallengeView(
                    self,
                    session.channel_id,
                    session.challenge,
                    hint_option_id=session.hint_option_id,
                    disabled=session.state.is_paused
                )

            try:
                if session.message is None:
                    session.message = await session.channel.send(embed=embed, view=view)
                else:
                    await session.message.edit(embed=embed, view=view)
            except discord.HTTPException as e:
                self.logger.error(f"Failed to update game message in channel {session.channel_id}: {e}")

    def build_game_embed(self, session: GameSession) -> discord.Embed:
        """
        Build the embed showing a session's current state.

        The embed sidebar shows the target color; the buttons name the colors.
        """
        state = session.state or session.engine.get_game_state()

        if state.is_game_over:
            embed = discord.Embed(
                title="🏁 Game Over",
                description=f"Final score: **{state.score}**",
                color=0xff6600
            )
            embed.add_field(name="📈 Level", value=str(state.level), inline=True)
            embed.add_field(name="🎯 Colors Matched", value=str(state.colors_matched), inline=True)
            embed.add_field(name="🔥 Best Streak", value=str(state.max_streak), inline=True)
            embed.add_field(name="✨ Perfect Matches", value=str(state.perfect_matches), inline=True)
            embed.add_field(name="⏱️ Time Played", value=f"{state.time_played}s", inline=True)
            if session.save_result is not None and not session.save_result['success']:
                embed.add_field(
                    name="⚠️ Not Saved",
                    value="Your result could not be saved this time.",
                    inline=False
                )
            embed.set_footer(text="Use /play to start a new game")
            return embed

        challenge = session.challenge
        embed = discord.Embed(
            title="🎨 Which color is this?",
            description="Pick the name matching the color on the left.",
            color=int(challenge.target_color.lstrip('#'), 16) if challenge else 0x6699ff
        )

        timer_emoji = "⏱️" if state.time_left > 10 else "⚠️" if state.time_left > 3 else "🚨"
        embed.add_field(name=f"{timer_emoji} Time Left", value=f"{state.time_left}s", inline=True)
        embed.add_field(name="🏆 Score", value=str(state.score), inline=True)
        embed.add_field(name="❤️ Lives", value=str(state.lives), inline=True)
        embed.add_field(name="📈 Level", value=str(state.level), inline=True)
        embed.add_field(name="🔥 Streak", value=str(state.streak), inline=True)
        if state.bonus_multiplier > 1:
            embed.add_field(name="✖️ Multiplier", value=f"x{state.bonus_multiplier:g}", inline=True)

        if state.is_paused:
            embed.set_footer(text="⏸️ Paused")
        else:
            embed.set_footer(text=f"{state.game_mode.value.title()} · {state.difficulty.value.title()}")
        return embed

    # ------------------------------------------------------------------
    # Error handling
    # ------------------------------------------------------------------

    def _handle_session_error(self, channel_id: int, error: Exception, operation: str) -> Dict[str, Any]:
        """
        Handle session errors with logging.

        Args:
            channel_id: Discord channel identifier
            error: The exception that occurred
            operation: Description of the operation that failed

        Returns:
            Dictionary with error handling results
        """
        error_msg = f"Error in {operation} for channel {channel_id}: {error}"
        if isinstance(error, (ColorRushError, ValueError)):
            self.logger.info(error_msg)
        else:
            self.logger.error(error_msg, exc_info=True)

        return {
            'success': False,
            'error': str(error),
            'operation': operation,
            'user_message': self._get_user_friendly_error_message(error, operation)
        }

    def _get_user_friendly_error_message(self, error: Exception, operation: str) -> str:
        """
        Generate user-friendly error messages.

        Args:
            error: The exception that occurred
            operation: Description of the operation that failed

        Returns:
            User-friendly error message
        """
        if isinstance(error, SessionConflictError):
            return "❌ Someone else is already playing in this channel. Wait for their game to finish."

        elif isinstance(error, SessionNotFoundError):
            return "❌ No game in this channel. Start one with `/play`."

        elif isinstance(error, PowerUpUnavailableError):
            return "❌ You don't have any of that power-up left. Check `/inventory`."

        elif isinstance(error, InvalidSessionStateError):
            if "not the owner" in str(error):
                return "❌ Only the player who started this game can do that."
            return "❌ The game is not running. Start a new one with `/play`."

        elif isinstance(error, ValueError):
            return f"❌ Invalid choice: {error}"

        elif "permission" in str(error).lower():
            return "❌ Permission error. Please check bot permissions in this channel."

        else:
            return f"❌ An unexpected error occurred during {operation}. Please try again."


class ChallengeView(discord.ui.View):
    """One button per color option of a challenge."""

    def __init__(
        self,
        controller: GameController,
        channel_id: int,
        challenge: ColorChallenge,
        hint_option_id: Optional[str] = None,
        disabled: bool = False
    ):
        super().__init__(timeout=None)
        self.controller = controller
        self.channel_id = channel_id
        self.challenge = challenge

        for option in challenge.options:
            button = discord.ui.Button(
                label=option.color_name.title(),
                style=discord.ButtonStyle.success if option.id == hint_option_id else discord.ButtonStyle.secondary,
                custom_id=f"{challenge.id}:{option.id}",
                disabled=disabled
            )
            button.callback = self._make_callback(option.id)
            self.add_item(button)

    def _make_callback(self, option_id: str):
        async def callback(interaction: discord.Interaction):
            result = self.controller.submit_answer(
                self.channel_id, interaction.user.id, self.challenge.id, option_id
            )
            if result['success']:
                # The engine callbacks redraw the message
                await interaction.response.defer()
            else:
                await interaction.response.send_message(result['user_message'], ephemeral=True)
        return callback
