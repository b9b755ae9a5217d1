"""
Unit tests for the command line entry point.
"""
import io
import logging
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

import main
from color_rush.models import Difficulty
from tests.test_fixtures import TestFixtures


class TestEntryPoint(unittest.TestCase):
    """Config loading, validation and token lookup before the bot starts."""

    def setUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_path = Path(self.temp_dir.name) / "config.json"

    def tearDown(self):
        self.temp_dir.cleanup()
        logging.disable(logging.NOTSET)

    def write_config(self, game=None, token="abc.def"):
        game_config = TestFixtures.create_game_config()
        game_config['data_directory'] = self.temp_dir.name
        game_config.update(game or {})
        return TestFixtures.write_json(self.config_path, {'bot': {'token': token}, 'game': game_config})

    def test_load_config_missing_file(self):
        with self.assertRaises(main.StartupError) as ctx:
            main.load_config(self.config_path)
        self.assertIn("not found", str(ctx.exception))

    def test_load_config_rejects_bad_json(self):
        self.config_path.write_text("{broken", encoding='utf-8')
        with self.assertRaises(main.StartupError):
            main.load_config(self.config_path)

        TestFixtures.write_json(self.config_path, ["not", "an", "object"])
        with self.assertRaises(main.StartupError):
            main.load_config(self.config_path)

    def test_check_game_config_applies_settings(self):
        config = main.load_config(self.write_config({'default_difficulty': 'hard'}))
        config_manager = main.check_game_config(config)
        self.assertEqual(config_manager.get_default_difficulty(), Difficulty.HARD)
        self.assertEqual(config_manager.get_data_directory(), self.temp_dir.name)

    def test_check_game_config_reports_every_rejected_value(self):
        config = main.load_config(self.write_config({'default_mode': 'marathon', 'tick_interval': 0}))
        with self.assertRaises(main.StartupError) as ctx:
            main.check_game_config(config)
        self.assertIn("marathon", str(ctx.exception))
        self.assertIn("tick", str(ctx.exception).lower())

    def test_resolve_token_prefers_environment(self):
        config = {'bot': {'token': "from-file"}}
        with patch.dict(os.environ, {'DISCORD_BOT_TOKEN': "from-env"}):
            self.assertEqual(main.resolve_token(config), "from-env")
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(main.resolve_token(config), "from-file")

    def test_resolve_token_rejects_placeholder(self):
        with patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(main.StartupError):
                main.resolve_token({'bot': {'token': main.PLACEHOLDER_TOKEN}})

    def test_check_flag_prints_settings_without_starting(self):
        self.write_config({'default_mode': 'speed'})
        out = io.StringIO()
        with patch.object(main, 'setup_logging') as setup_logging, \
                patch.object(main, 'run_bot') as run_bot, redirect_stdout(out):
            exit_code = main.main(['--config', str(self.config_path), '--check'])

        self.assertEqual(exit_code, 0)
        self.assertIn("Default mode: speed", out.getvalue())
        setup_logging.assert_called_once_with(None)
        run_bot.assert_not_called()

    def test_invalid_config_exits_with_error(self):
        self.write_config({'default_difficulty': 'brutal'})
        out = io.StringIO()
        with patch.object(main, 'setup_logging'), patch.object(main, 'run_bot') as run_bot, redirect_stdout(out):
            exit_code = main.main(['--config', str(self.config_path)])

        self.assertEqual(exit_code, 1)
        self.assertIn("brutal", out.getvalue())
        run_bot.assert_not_called()


if __name__ == '__main__':
    unittest.main()
