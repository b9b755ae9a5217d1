"""
Data manager for persisted game results, player statistics and power-up inventory.
"""
import json
import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .models import GameResult, PowerUpKind

RESULTS_FILE = "results.json"
PLAYERS_FILE = "players.json"

XP_PER_SCORE_POINTS = 10
XP_PER_LEVEL = 1000


class DataManager:
    """Stores completed games and per-player data in JSON files."""

    def __init__(self, data_directory: str = "./data/", starting_power_ups: Optional[Dict[str, int]] = None):
        """
        Initialize DataManager with data directory path.

        Args:
            data_directory: Directory holding results.json and players.json
            starting_power_ups: Inventory granted to players on first contact
        """
        self.data_directory = Path(data_directory)
        self.starting_power_ups = dict(starting_power_ups or {})
        self.logger = logging.getLogger(__name__)
        self.load_errors: List[str] = []  # Track loading errors for user feedback
        self._results: List[Dict[str, Any]] = []
        self._players: Dict[str, Dict[str, Any]] = {}

    def load(self) -> Dict[str, Any]:
        """
        Load results and players from disk. Missing or corrupt files load as empty.

        Returns:
            Loading summary dictionary
        """
        self.load_errors.clear()

        results = self._load_json_file(self.data_directory / RESULTS_FILE, default=[])
        if not isinstance(results, list):
            self.load_errors.append(f"{RESULTS_FILE}: expected a list of results")
            results = []
        self._results = results

        players = self._load_json_file(self.data_directory / PLAYERS_FILE, default={})
        if not isinstance(players, dict):
            self.load_errors.append(f"{PLAYERS_FILE}: expected an object keyed by player id")
            players = {}
        self._players = players

        self.logger.info(f"Loaded {len(self._results)} results for {len(self._players)} players")
        if self.load_errors:
            self.logger.warning(f"Encountered {len(self.load_errors)} loading errors")
        return self.get_loading_summary()

    def _load_json_file(self, file_path: Path, default):
        if not file_path.exists():
            return default
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in {file_path}: {e}")
            self.load_errors.append(f"{file_path.name}: invalid JSON ({e})")
        except OSError as e:
            self.logger.error(f"Failed to read {file_path}: {e}")
            self.load_errors.append(f"{file_path.name}: {e}")
        return default

    def save_game_result(self, player_id, result: GameResult) -> Dict[str, Any]:
        """
        Persist a completed game and update the player's statistics.

        Args:
            player_id: Player identifier
            result: Final game record

        Returns:
            Dictionary with success status, updated stats or error message
        """
        key = str(player_id)
        now = datetime.now().isoformat()
        record = {'player_id': key, 'recorded_at': now, **result.to_dict()}

        player = self._get_or_create_player(key)
        stats = player['stats']
        previous_stats = dict(stats)

        stats['total_games_played'] += 1
        stats['total_score'] += result.score
        stats['best_score'] = max(stats['best_score'], result.score)
        stats['best_streak'] = max(stats['best_streak'], result.max_streak)
        stats['experience_points'] += result.score // XP_PER_SCORE_POINTS
        stats['level'] = stats['experience_points'] // XP_PER_LEVEL + 1
        stats['last_played_at'] = now

        self._results.append(record)

        def rollback():
            self._results.pop()
            player['stats'] = previous_stats

        write_result = self._persist(rollback)
        if not write_result['success']:
            return write_result

        self.logger.info(
            f"Saved game result for player {key}: score={result.score}",
            extra={'event_type': 'result_saved', 'player_id': key, 'score': result.score}
        )
        return {'success': True, 'stats': dict(stats)}

    def get_player_stats(self, player_id) -> Optional[Dict[str, Any]]:
        """
        Get a player's aggregate statistics.

        Returns:
            Stats dictionary, or None if the player has never been seen
        """
        player = self._players.get(str(player_id))
        return dict(player['stats']) if player else None

    def get_recent_results(self, player_id, limit: int = 5) -> List[Dict[str, Any]]:
        """Most recent results for a player, newest first."""
        key = str(player_id)
        results = [record for record in self._results if record.get('player_id') == key]
        return list(reversed(results[-limit:])) if limit > 0 else []

    def get_inventory(self, player_id) -> Dict[str, int]:
        """Power-up quantities for a player (starting inventory for new players)."""
        player = self._players.get(str(player_id))
        if player is None:
            return dict(self.starting_power_ups)
        return dict(player['inventory'])

    def consume_power_up(self, player_id, kind) -> Dict[str, Any]:
        """
        Take one unit of a power-up out of a player's inventory.

        Args:
            player_id: Player identifier
            kind: Power-up kind or name

        Returns:
            Dictionary with success status and remaining quantity, or error message
        """
        name = kind.value if isinstance(kind, PowerUpKind) else str(kind)
        key = str(player_id)
        player = self._get_or_create_player(key)
        quantity = player['inventory'].get(name, 0)

        if quantity <= 0:
            self.logger.info(f"Player {key} has no {name} left")
            return {
                'success': False,
                'error': "Power-up not available",
                'remaining': 0
            }

        player['inventory'][name] = quantity - 1
        write_result = self._persist(lambda: player['inventory'].update({name: quantity}))
        if not write_result['success']:
            return write_result

        self.logger.info(
            f"Player {key} used {name}, {quantity - 1} left",
            extra={'event_type': 'power_up_consumed', 'player_id': key, 'power_up': name}
        )
        return {'success': True, 'remaining': quantity - 1}

    def _get_or_create_player(self, key: str) -> Dict[str, Any]:
        player = self._players.get(key)
        if player is None:
            player = {
                'stats': {
                    'total_games_played': 0,
                    'total_score': 0,
                    'best_score': 0,
                    'best_streak': 0,
                    'experience_points': 0,
                    'level': 1,
                    'last_played_at': None,
                },
                'inventory': dict(self.starting_power_ups),
            }
            self._players[key] = player
            self.logger.info(f"Created player record {key}")
        return player

    def _persist(self, rollback: Callable[[], None]) -> Dict[str, Any]:
        """
        Write both data files, all or nothing.

        Each file is replaced atomically. When players.json cannot be written
        after results.json was, the in-memory change is undone with rollback
        and results.json is rewritten from the restored list.

        Args:
            rollback: Undoes the in-memory change being persisted

        Returns:
            Dictionary with success status or error message
        """
        results_written = False
        try:
            self.data_directory.mkdir(parents=True, exist_ok=True)
            self._write_json_atomic(self.data_directory / RESULTS_FILE, self._results)
            results_written = True
            self._write_json_atomic(self.data_directory / PLAYERS_FILE, self._players)
            return {'success': True}
        except PermissionError:
            error_msg = f"Permission denied: Cannot write to {self.data_directory}"
        except OSError as e:
            error_msg = f"System error writing to {self.data_directory}: {e}"
        self.logger.error(error_msg)

        rollback()
        if results_written:
            try:
                self._write_json_atomic(self.data_directory / RESULTS_FILE, self._results)
            except OSError as e:
                self.logger.error(
                    f"Could not restore {RESULTS_FILE} after failed save: {e}",
                    extra={'event_type': 'results_restore_failed'}
                )
        return {'success': False, 'error': error_msg}

    def _write_json_atomic(self, file_path: Path, data) -> None:
        fd, temp_path = tempfile.mkstemp(dir=file_path.parent, prefix=f".{file_path.stem}-", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
            os.replace(temp_path, file_path)
        except OSError:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise

    def get_load_errors(self) -> List[str]:
        return self.load_errors.copy()

    def has_load_errors(self) -> bool:
        return len(self.load_errors) > 0

    def get_loading_summary(self) -> Dict[str, Any]:
        """
        Get a summary of the loading process.

        Returns:
            Dictionary with loading statistics and status
        """
        return {
            'total_results': len(self._results),
            'total_players': len(self._players),
            'has_errors': self.has_load_errors(),
            'error_count': len(self.load_errors),
            'errors': self.get_load_errors(),
            'data_directory': str(self.data_directory)
        }
