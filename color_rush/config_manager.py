"""
Configuration manager for Color Rush game settings and parameters.
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import Difficulty, EngineSettings, GameMode, PowerUpKind


class ConfigManager:
    """Manages game defaults, engine timings and storage settings."""

    # Default configuration values
    DEFAULT_GAME_MODE = GameMode.CLASSIC
    DEFAULT_DIFFICULTY = Difficulty.NORMAL
    DEFAULT_TICK_INTERVAL = 1.0
    DEFAULT_TIME_FREEZE_DURATION = 5.0
    DEFAULT_SCORE_MULTIPLIER_DURATION = 10.0
    DEFAULT_DATA_DIRECTORY = "./data/"
    DEFAULT_STARTING_POWER_UPS = {
        PowerUpKind.TIME_FREEZE.value: 1,
        PowerUpKind.SCORE_MULTIPLIER.value: 1,
        PowerUpKind.EXTRA_LIFE.value: 1,
        PowerUpKind.HINT.value: 3,
    }

    # Validation limits
    MIN_TICK_INTERVAL = 0.1
    MAX_TICK_INTERVAL = 5.0
    MIN_EFFECT_DURATION = 1.0
    MAX_EFFECT_DURATION = 60.0
    MAX_STARTING_POWER_UPS = 99

    def __init__(self):
        """Initialize ConfigManager with default settings."""
        self.logger = logging.getLogger(__name__)
        self.reset_to_defaults()

    def reset_to_defaults(self) -> None:
        """Reset all settings to their default values."""
        self._default_mode = self.DEFAULT_GAME_MODE
        self._default_difficulty = self.DEFAULT_DIFFICULTY
        self._tick_interval = self.DEFAULT_TICK_INTERVAL
        self._time_freeze_duration = self.DEFAULT_TIME_FREEZE_DURATION
        self._score_multiplier_duration = self.DEFAULT_SCORE_MULTIPLIER_DURATION
        self._data_directory = self.DEFAULT_DATA_DIRECTORY
        self._starting_power_ups = dict(self.DEFAULT_STARTING_POWER_UPS)
        self.logger.info("All settings reset to default values")

    def get_engine_settings(self) -> EngineSettings:
        """
        Build engine timing settings from the current configuration.

        Returns:
            EngineSettings object with current configuration
        """
        return EngineSettings(
            tick_interval=self._tick_interval,
            time_freeze_duration=self._time_freeze_duration,
            score_multiplier_duration=self._score_multiplier_duration
        )

    def apply_config(self, game_config: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        Apply the "game" section of config.json.

        Args:
            game_config: Parsed configuration section; missing keys keep their defaults

        Returns:
            List of failed setter results (empty when everything applied)
        """
        setters = {
            'default_mode': self.set_default_mode,
            'default_difficulty': self.set_default_difficulty,
            'tick_interval': self.set_tick_interval,
            'time_freeze_duration': lambda value: self.set_effect_duration(PowerUpKind.TIME_FREEZE, value),
            'score_multiplier_duration': lambda value: self.set_effect_duration(PowerUpKind.SCORE_MULTIPLIER, value),
            'data_directory': self.set_data_directory,
            'starting_power_ups': self.set_starting_power_ups,
        }
        failures = []
        for key, setter in setters.items():
            if key in game_config:
                result = setter(game_config[key])
                if not result['success']:
                    failures.append(result)
        return failures

    def set_default_mode(self, mode: str) -> Dict[str, Any]:
        """
        Set the game mode used when a player does not pick one.

        Args:
            mode: Game mode name

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            self._default_mode = GameMode(mode)
        except ValueError:
            error_msg = f"Unknown game mode: {mode}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Unknown mode. Choose one of: {', '.join(m.value for m in GameMode)}"
            }

        self.logger.info(f"Default game mode set to {self._default_mode.value}")
        return {
            'success': True,
            'message': f"Default game mode set to {self._default_mode.value}",
            'user_message': f"✅ Default mode set to {self._default_mode.value}"
        }

    def get_default_mode(self) -> GameMode:
        return self._default_mode

    def set_default_difficulty(self, difficulty: str) -> Dict[str, Any]:
        """
        Set the difficulty used when a player does not pick one.

        Args:
            difficulty: Difficulty name

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        try:
            self._default_difficulty = Difficulty(difficulty)
        except ValueError:
            error_msg = f"Unknown difficulty: {difficulty}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Unknown difficulty. Choose one of: {', '.join(d.value for d in Difficulty)}"
            }

        self.logger.info(f"Default difficulty set to {self._default_difficulty.value}")
        return {
            'success': True,
            'message': f"Default difficulty set to {self._default_difficulty.value}",
            'user_message': f"✅ Default difficulty set to {self._default_difficulty.value}"
        }

    def get_default_difficulty(self) -> Difficulty:
        return self._default_difficulty

    def set_tick_interval(self, interval: float) -> Dict[str, Any]:
        """
        Set the game clock interval.

        Args:
            interval: Seconds between clock ticks

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        result = self._validate_number("Tick interval", interval, self.MIN_TICK_INTERVAL, self.MAX_TICK_INTERVAL)
        if not result['success']:
            return result

        self._tick_interval = float(interval)
        self.logger.info(f"Tick interval set to {self._tick_interval} seconds")
        return {
            'success': True,
            'message': f"Tick interval set to {self._tick_interval} seconds",
            'user_message': f"✅ Clock ticks every {self._tick_interval} seconds"
        }

    def get_tick_interval(self) -> float:
        return self._tick_interval

    def set_effect_duration(self, kind: PowerUpKind, duration: float) -> Dict[str, Any]:
        """
        Set how long a timed power-up lasts.

        Args:
            kind: TIME_FREEZE or SCORE_MULTIPLIER
            duration: Effect duration in seconds

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if kind not in (PowerUpKind.TIME_FREEZE, PowerUpKind.SCORE_MULTIPLIER):
            error_msg = f"Power-up {kind.value} has no duration"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {kind.value} is not a timed power-up"
            }

        label = f"{kind.value} duration"
        result = self._validate_number(label, duration, self.MIN_EFFECT_DURATION, self.MAX_EFFECT_DURATION)
        if not result['success']:
            return result

        if kind is PowerUpKind.TIME_FREEZE:
            self._time_freeze_duration = float(duration)
        else:
            self._score_multiplier_duration = float(duration)

        self.logger.info(f"{label} set to {float(duration)} seconds")
        return {
            'success': True,
            'message': f"{label} set to {float(duration)} seconds",
            'user_message': f"✅ {kind.value} lasts {float(duration)} seconds"
        }

    def get_effect_duration(self, kind: PowerUpKind) -> Optional[float]:
        if kind is PowerUpKind.TIME_FREEZE:
            return self._time_freeze_duration
        if kind is PowerUpKind.SCORE_MULTIPLIER:
            return self._score_multiplier_duration
        return None

    def set_data_directory(self, directory: str) -> Dict[str, Any]:
        """
        Set the directory used for results and player data.

        Args:
            directory: Path to the data directory

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(directory, str):
            error_msg = f"Data directory must be a string, got {type(directory).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a path string, got {type(directory).__name__}"
            }

        if not directory.strip():
            error_msg = "Data directory cannot be empty"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Directory path cannot be empty"
            }

        try:
            normalized_path = str(Path(directory).resolve())
        except (OSError, ValueError) as e:
            error_msg = f"Invalid directory path format: {e}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid path format: {directory}"
            }

        system_dirs = ['/bin', '/usr', '/etc', '/sys', '/proc', 'C:\\Windows', 'C:\\Program Files']
        if any(normalized_path.startswith(sys_dir) for sys_dir in system_dirs):
            error_msg = f"Cannot use system directory: {normalized_path}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Cannot use system directory: {directory}"
            }

        self._data_directory = normalized_path
        self.logger.info(f"Data directory set to {normalized_path}")
        return {
            'success': True,
            'message': f"Data directory set to {normalized_path}",
            'user_message': f"✅ Data directory set to {normalized_path}"
        }

    def get_data_directory(self) -> str:
        return self._data_directory

    def set_starting_power_ups(self, power_ups: Dict[str, int]) -> Dict[str, Any]:
        """
        Set the inventory granted to new players.

        Args:
            power_ups: Mapping of power-up name to quantity

        Returns:
            Dictionary with success status, error message, and user-friendly message
        """
        if not isinstance(power_ups, dict):
            error_msg = f"Starting power-ups must be a mapping, got {type(power_ups).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': "❌ Invalid input: Expected power-up quantities"
            }

        validated = {}
        for name, quantity in power_ups.items():
            try:
                kind = PowerUpKind(name)
            except ValueError:
                error_msg = f"Unknown power-up: {name}"
                self.logger.error(error_msg)
                return {
                    'success': False,
                    'error': error_msg,
                    'user_message': f"❌ Unknown power-up: {name}"
                }
            if isinstance(quantity, bool) or not isinstance(quantity, int) or not 0 <= quantity <= self.MAX_STARTING_POWER_UPS:
                error_msg = f"Quantity for {name} must be an integer between 0 and {self.MAX_STARTING_POWER_UPS}"
                self.logger.error(error_msg)
                return {
                    'success': False,
                    'error': error_msg,
                    'user_message': f"❌ Invalid quantity for {name}"
                }
            validated[kind.value] = quantity

        self._starting_power_ups = validated
        self.logger.info(f"Starting power-ups set to {validated}")
        return {
            'success': True,
            'message': f"Starting power-ups set to {validated}",
            'user_message': "✅ Starting inventory updated"
        }

    def get_starting_power_ups(self) -> Dict[str, int]:
        return dict(self._starting_power_ups)

    def validate_settings(self) -> Dict[str, Any]:
        """
        Validate current settings and return validation results.

        Returns:
            Dictionary with validation results and any issues found
        """
        validation_result = {
            "valid": True,
            "issues": []
        }

        if not self.MIN_TICK_INTERVAL <= self._tick_interval <= self.MAX_TICK_INTERVAL:
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid tick interval: {self._tick_interval}")

        for label, duration in (
            ("time freeze duration", self._time_freeze_duration),
            ("score multiplier duration", self._score_multiplier_duration),
        ):
            if not self.MIN_EFFECT_DURATION <= duration <= self.MAX_EFFECT_DURATION:
                validation_result["valid"] = False
                validation_result["issues"].append(f"Invalid {label}: {duration}")

        if not isinstance(self._data_directory, str) or not self._data_directory.strip():
            validation_result["valid"] = False
            validation_result["issues"].append(f"Invalid data directory: {self._data_directory}")

        return validation_result

    def get_settings_summary(self) -> str:
        """
        Get a formatted summary of current settings.

        Returns:
            Human-readable string describing current settings
        """
        inventory = ", ".join(f"{name} x{qty}" for name, qty in self._starting_power_ups.items()) or "none"
        return (
            f"Game Settings:\n"
            f"• Default mode: {self._default_mode.value}\n"
            f"• Default difficulty: {self._default_difficulty.value}\n"
            f"• Clock tick: {self._tick_interval} seconds\n"
            f"• Time freeze: {self._time_freeze_duration} seconds\n"
            f"• Score multiplier: {self._score_multiplier_duration} seconds\n"
            f"• Starting power-ups: {inventory}\n"
            f"• Data Directory: {self._data_directory}"
        )

    def get_configuration_health_check(self) -> Dict[str, Any]:
        """
        Perform a health check of the configuration.

        Returns:
            Dictionary with health status and recommendations
        """
        health_check = {
            'healthy': True,
            'warnings': [],
            'errors': [],
            'recommendations': []
        }

        validation_result = self.validate_settings()
        if not validation_result['valid']:
            health_check['healthy'] = False
            health_check['errors'].extend(f"❌ {issue}" for issue in validation_result['issues'])

        data_dir = Path(self._data_directory)
        if not data_dir.exists():
            health_check['warnings'].append(f"⚠️ Data directory does not exist: {self._data_directory}")
            health_check['recommendations'].append(
                "The data directory will be created automatically when the first result is saved."
            )
        elif not os.access(data_dir, os.W_OK):
            health_check['healthy'] = False
            health_check['errors'].append(f"❌ Cannot write to data directory: {self._data_directory}")
            health_check['recommendations'].append("Check file permissions for the data directory.")

        if self._tick_interval != 1.0:
            health_check['warnings'].append(
                f"⚠️ Clock tick is {self._tick_interval}s; game times are counted in ticks, not seconds"
            )

        return health_check

    def _validate_number(self, label: str, value: Any, minimum: float, maximum: float) -> Dict[str, Any]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            error_msg = f"{label} must be a number, got {type(value).__name__}"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ Invalid input: Expected a number, got {type(value).__name__}"
            }

        if not minimum <= value <= maximum:
            error_msg = f"{label} must be between {minimum} and {maximum} seconds"
            self.logger.error(error_msg)
            return {
                'success': False,
                'error': error_msg,
                'user_message': f"❌ {label} out of range: {minimum}-{maximum} seconds"
            }

        return {'success': True}
