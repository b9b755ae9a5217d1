"""
Unit tests for Discord bot command handlers with mocked Discord API.
"""
import logging
import shutil
import tempfile
import unittest
from unittest.mock import Mock

import discord

from color_rush.bot import ColorRushBot
from color_rush.config_manager import ConfigManager
from tests.test_fixtures import MockDiscordObjects

CHANNEL_ID = 12345
PLAYER_ID = 67890


class TestBotCommands(unittest.IsolatedAsyncioTestCase):
    """Slash command handlers driving a real controller."""

    async def asyncSetUp(self):
        logging.disable(logging.CRITICAL)
        self.temp_dir = tempfile.mkdtemp()
        self.bot = ColorRushBot({
            'bot': {'command_prefix': '?'},
            'game': {'default_difficulty': 'easy', 'data_directory': self.temp_dir},
        })
        await self.bot.setup_hook()

    async def asyncTearDown(self):
        self.bot.game_controller.shutdown()
        shutil.rmtree(self.temp_dir, ignore_errors=True)
        logging.disable(logging.NOTSET)

    def interaction(self, user_id: int = PLAYER_ID) -> Mock:
        return MockDiscordObjects.create_mock_interaction(CHANNEL_ID, user_id)

    def sent_embed(self, interaction: Mock) -> discord.Embed:
        return interaction.response.send_message.call_args.kwargs['embed']

    async def test_setup_applies_configuration(self):
        self.assertEqual(self.bot.command_prefix, '?')
        self.assertEqual(self.bot.config_manager.get_default_difficulty().value, "easy")
        self.assertEqual(str(self.bot.data_manager.data_directory), self.bot.config_manager.get_data_directory())

        names = {command.name for command in self.bot.tree.get_commands()}
        self.assertEqual(
            names, {"help", "play", "pause", "resume", "stop", "powerup", "inventory", "stats", "status"}
        )

    async def test_setup_keeps_prepared_config_manager(self):
        config_manager = ConfigManager()
        config_manager.set_default_mode("endless")
        config_manager.set_data_directory(self.temp_dir)
        bot = ColorRushBot({'game': {'default_mode': 'speed'}}, config_manager=config_manager)
        await bot.setup_hook()

        self.assertIs(bot.config_manager, config_manager)
        self.assertEqual(bot.config_manager.get_default_mode().value, "endless")
        self.assertIs(bot.game_controller.config_manager, config_manager)
        bot.game_controller.shutdown()

    async def test_help(self):
        interaction = self.interaction()
        await self.bot.handle_help(interaction)
        embed = self.sent_embed(interaction)
        self.assertIn("Color Rush", embed.title)
        self.assertTrue(any("/play" in field.value for field in embed.fields))

    async def test_play_announces_game(self):
        interaction = self.interaction()
        await self.bot.handle_play(interaction, "speed", None)

        embed = self.sent_embed(interaction)
        values = [field.value for field in embed.fields]
        self.assertIn("Speed", values)
        self.assertIn("Easy", values)
        self.assertIn("45s", values)
        self.assertIsNotNone(self.bot.game_controller.get_session(CHANNEL_ID))

    async def test_play_conflict_is_reported(self):
        await self.bot.handle_play(self.interaction(), None, None)
        interaction = self.interaction(user_id=11111)
        await self.bot.handle_play(interaction, None, None)

        embed = self.sent_embed(interaction)
        self.assertEqual(embed.title, "❌ Cannot Start Game")
        self.assertTrue(interaction.response.send_message.call_args.kwargs['ephemeral'])

    async def test_pause_resume_stop(self):
        await self.bot.handle_play(self.interaction(), None, None)

        interaction = self.interaction()
        await self.bot.handle_pause(interaction)
        self.assertIn("paused", interaction.response.send_message.call_args.args[0])

        interaction = self.interaction()
        await self.bot.handle_resume(interaction)
        self.assertIn("Game resumed", interaction.response.send_message.call_args.args[0])

        interaction = self.interaction()
        await self.bot.handle_stop(interaction)
        self.assertEqual(self.sent_embed(interaction).title, "🛑 Game Stopped")
        self.assertEqual(self.bot.data_manager.get_player_stats(PLAYER_ID)['total_games_played'], 1)

    async def test_stop_without_game(self):
        interaction = self.interaction()
        await self.bot.handle_stop(interaction)
        self.assertEqual(self.sent_embed(interaction).title, "ℹ️ No Game to Stop")

    async def test_powerup_and_inventory(self):
        await self.bot.handle_play(self.interaction(), None, None)

        interaction = self.interaction()
        await self.bot.handle_powerup(interaction, "hint")
        message = interaction.response.send_message.call_args.args[0]
        self.assertIn("2 left", message)
        self.assertIn("highlighted", message)

        interaction = self.interaction()
        await self.bot.handle_inventory(interaction)
        fields = {field.name: field.value for field in self.sent_embed(interaction).fields}
        self.assertEqual(fields["💡 Hint"], "2")

    async def test_powerup_without_game_warns(self):
        interaction = self.interaction()
        await self.bot.handle_powerup(interaction, "hint")
        self.assertEqual(self.sent_embed(interaction).title, "⚠️ Power-up Not Used")

    async def test_stats(self):
        interaction = self.interaction()
        await self.bot.handle_stats(interaction)
        self.assertEqual(self.sent_embed(interaction).title, "ℹ️ No Stats Yet")

        await self.bot.handle_play(self.interaction(), None, None)
        await self.bot.handle_stop(self.interaction())

        interaction = self.interaction()
        await self.bot.handle_stats(interaction)
        fields = {field.name: field.value for field in self.sent_embed(interaction).fields}
        self.assertEqual(fields["🎮 Games"], "1")
        self.assertIn("🕒 Recent Games", fields)

    async def test_status(self):
        interaction = self.interaction()
        await self.bot.handle_status(interaction)
        self.assertEqual(self.sent_embed(interaction).title, "ℹ️ No Active Game")

        await self.bot.handle_play(self.interaction(), None, None)
        interaction = self.interaction()
        await self.bot.handle_status(interaction)
        self.assertIn("playing", self.sent_embed(interaction).description)

    async def test_error_response_uses_followup_when_done(self):
        interaction = self.interaction()
        interaction.response.is_done.return_value = True
        await self.bot.send_error_response(interaction, "Something failed")
        interaction.followup.send.assert_awaited_once()

    async def test_error_response_survives_http_error(self):
        interaction = self.interaction()
        interaction.response.send_message.side_effect = discord.HTTPException(Mock(status=500), "down")
        await self.bot.send_warning_response(interaction, "careful")


if __name__ == '__main__':
    unittest.main()
