"""
Comprehensive integration tests for Color Rush.
Tests complete game flows across engine, controller and persistence.
"""
import asyncio
import json
import logging
import random
import shutil
import tempfile
import unittest
from pathlib import Path

from color_rush.config_manager import ConfigManager
from color_rush.data_manager import DataManager
from color_rush.game_controller import GameController, SessionState
from tests.test_fixtures import ManualScheduler, MockDiscordObjects

CHANNEL_ID = 12345
PLAYER_ID = 67890


class TestCompleteGameFlow(unittest.TestCase):
    """Full games on a virtual clock with results written to disk."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()
        self.config_manager = ConfigManager()
        self.config_manager.set_data_directory(self.temp_dir)
        self.data_manager = DataManager(self.temp_dir, self.config_manager.get_starting_power_ups())
        self.data_manager.load()
        self.scheduler = ManualScheduler()
        self.controller = GameController(
            self.data_manager, self.config_manager, lambda: self.scheduler, rng=random.Random(99)
        )

    def tearDown(self):
        self.controller.shutdown()
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    def play(self, correct: bool):
        challenge = self.controller.get_session(CHANNEL_ID).engine.current_challenge
        option = next(o for o in challenge.options if o.is_correct == correct)
        return self.controller.submit_answer(CHANNEL_ID, PLAYER_ID, challenge.id, option.id)

    def test_classic_game_to_time_out(self):
        self.controller.start_game(CHANNEL_ID, PLAYER_ID, "classic", "normal")

        for _ in range(25):
            self.play(True)
            self.scheduler.advance(1)
        self.play(False)
        self.controller.use_power_up(CHANNEL_ID, PLAYER_ID, "time_freeze")
        self.scheduler.advance(60)

        session = self.controller.get_session(CHANNEL_ID)
        state = session.state
        self.assertTrue(state.is_game_over)
        self.assertEqual(state.colors_matched, 25)
        self.assertEqual(state.level, 3)
        self.assertEqual(state.perfect_matches, 2)
        self.assertEqual(state.max_streak, 25)
        self.assertEqual(state.lives, 2)
        # 25 ticks, a two second penalty and a five second freeze
        self.assertEqual(state.time_played, 60 - 2)
        self.assertEqual(self.controller.get_session_state(CHANNEL_ID), SessionState.GAME_OVER)
        self.assertEqual(session.final_score, state.score)

        with open(Path(self.temp_dir) / "results.json", encoding='utf-8') as f:
            records = json.load(f)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0]['score'], state.score)
        self.assertEqual(records[0]['time_played'], 58)
        self.assertEqual(records[0]['perfect_matches'], 2)

        with open(Path(self.temp_dir) / "players.json", encoding='utf-8') as f:
            players = json.load(f)
        self.assertEqual(players[str(PLAYER_ID)]['inventory']['time_freeze'], 0)
        self.assertEqual(players[str(PLAYER_ID)]['stats']['best_streak'], 25)

    def test_lives_exhausted_then_new_game(self):
        self.controller.start_game(CHANNEL_ID, PLAYER_ID, "endless", "expert")
        self.play(True)
        self.controller.use_power_up(CHANNEL_ID, PLAYER_ID, "extra_life")
        for _ in range(3):
            self.play(False)
        self.assertEqual(self.controller.get_session_state(CHANNEL_ID), SessionState.PLAYING)
        self.play(False)
        self.assertEqual(self.controller.get_session_state(CHANNEL_ID), SessionState.GAME_OVER)

        self.controller.start_game(CHANNEL_ID, PLAYER_ID, "classic", "easy")
        self.play(True)
        self.controller.stop_game(CHANNEL_ID, PLAYER_ID)

        stats = self.data_manager.get_player_stats(PLAYER_ID)
        self.assertEqual(stats['total_games_played'], 2)
        self.assertEqual(stats['total_score'], 16 + 8)
        self.assertEqual(stats['best_score'], 16)

        reloaded = DataManager(self.temp_dir)
        reloaded.load()
        self.assertEqual(reloaded.get_player_stats(PLAYER_ID), stats)
        self.assertEqual([r['score'] for r in reloaded.get_recent_results(PLAYER_ID)], [8, 16])

    def test_channels_are_independent(self):
        schedulers = []

        def new_scheduler():
            schedulers.append(ManualScheduler())
            return schedulers[-1]

        self.controller = GameController(self.data_manager, self.config_manager, new_scheduler)
        self.controller.start_game(CHANNEL_ID, PLAYER_ID)
        self.controller.start_game(999, 424242)
        self.play(True)

        self.assertEqual(self.controller.get_session_status(CHANNEL_ID)['score'], 10)
        self.assertEqual(self.controller.get_session_status(999)['score'], 0)
        self.controller.stop_game(999, 424242)
        self.assertEqual(self.controller.get_session_state(CHANNEL_ID), SessionState.PLAYING)

        schedulers[0].advance(5)
        self.assertEqual(self.controller.get_session_status(CHANNEL_ID)['time_left'], 60 - 5)
        self.assertEqual(schedulers[1].pending_count, 0)


class TestRealClockGame(unittest.IsolatedAsyncioTestCase):
    """A short game on the real event loop clock."""

    async def asyncSetUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()
        self.config_manager = ConfigManager()
        self.config_manager.set_tick_interval(0.1)
        self.data_manager = DataManager(self.temp_dir)
        self.controller = GameController(self.data_manager, self.config_manager)

    async def asyncTearDown(self):
        self.controller.shutdown()
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    async def test_game_times_out_and_renders_final_state(self):
        channel = MockDiscordObjects.create_mock_channel(CHANNEL_ID)
        result = self.controller.start_game(CHANNEL_ID, PLAYER_ID, "speed", "expert", channel=channel)
        self.assertEqual(result['session_info']['time_left'], 18)

        await asyncio.sleep(18 * 0.1 + 0.5)

        session = self.controller.get_session(CHANNEL_ID)
        self.assertTrue(session.state.is_game_over)
        self.assertEqual(session.state.time_played, 18)
        self.assertTrue(session.save_result['success'])
        channel.send.assert_awaited_once()
        final_edit = session.message.edit.call_args.kwargs
        self.assertIn("Game Over", final_edit['embed'].title)
        self.assertIsNone(final_edit['view'])


if __name__ == '__main__':
    unittest.main()
