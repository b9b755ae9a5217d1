import discord
from discord import app_commands
from discord.ext import commands
import logging
import asyncio
from typing import Optional
import os
from pathlib import Path

from .data_manager import DataManager
from .config_manager import ConfigManager
from .game_controller import GameController, POWER_UP_LABELS
from .models import Difficulty, GameMode, PowerUpKind


def setup_logging(log_config=None):
    """
    Set up console and file logging.

    Args:
        log_config: The "logging" section of config.json; "level" and
            "log_directory" fall back to INFO and ./logs/
    """
    log_config = log_config or {}
    level = getattr(logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)
    logs_dir = Path(log_config.get('log_directory', './logs/'))
    logs_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),  # Console output
            logging.FileHandler(logs_dir / "bot.log", encoding='utf-8'),  # File output
        ]
    )

    # Set up error-specific logging
    error_handler = logging.FileHandler(logs_dir / "errors.log", encoding='utf-8')
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s\n%(exc_info)s'
    ))
    logging.getLogger().addHandler(error_handler)

    # Reduce discord.py noise
    logging.getLogger('discord').setLevel(logging.WARNING)
    logging.getLogger('discord.http').setLevel(logging.WARNING)


logger = logging.getLogger(__name__)

MODE_CHOICES = [app_commands.Choice(name=mode.value.title(), value=mode.value) for mode in GameMode]
DIFFICULTY_CHOICES = [app_commands.Choice(name=level.value.title(), value=level.value) for level in Difficulty]
POWER_UP_CHOICES = [app_commands.Choice(name=POWER_UP_LABELS[kind], value=kind.value) for kind in PowerUpKind]


class ColorRushBot(commands.Bot):
    """Discord bot hosting Color Rush games"""

    def __init__(self, config=None, config_manager: Optional[ConfigManager] = None):
        # Slash commands and button interactions only need the guilds intent
        intents = discord.Intents.none()
        intents.guilds = True

        command_prefix = '!'
        if config and 'bot' in config:
            command_prefix = config['bot'].get('command_prefix', '!')

        super().__init__(
            command_prefix=command_prefix,  # Fallback prefix, mainly using slash commands
            intents=intents,
            help_command=None
        )

        self.app_config = config or {}

        self.data_manager: Optional[DataManager] = None
        self.config_manager: Optional[ConfigManager] = config_manager
        self.game_controller: Optional[GameController] = None

    async def setup_hook(self):
        """Called when the bot is starting up"""
        try:
            logger.info("Setting up bot components...")

            if self.config_manager is None:
                self.config_manager = ConfigManager()
                if self.app_config:
                    await self.apply_configuration()

            self.data_manager = DataManager(
                self.config_manager.get_data_directory(),
                self.config_manager.get_starting_power_ups()
            )
            summary = self.data_manager.load()
            if summary['has_errors']:
                logger.warning(f"Player data loaded with errors: {summary['errors']}")

            self.game_controller = GameController(self.data_manager, self.config_manager)

            await self.setup_commands()

            logger.info("Bot setup completed successfully")

        except Exception as e:
            logger.error(f"Error during bot setup: {e}")
            raise

    async def apply_configuration(self):
        """Apply settings from configuration file to the config manager."""
        failures = self.config_manager.apply_config(self.app_config.get('game', {}))
        for failure in failures:
            logger.warning(f"Ignoring invalid configuration value: {failure['error']}")

        health = self.config_manager.get_configuration_health_check()
        for problem in health['errors'] + health['warnings']:
            logger.warning(problem)
        logger.info("Configuration applied")

    async def setup_commands(self):
        """Register all slash commands"""
        @self.tree.command(name="help", description="Display available commands and how to play")
        async def help_command(interaction: discord.Interaction):
            await self.handle_help(interaction)

        @self.tree.command(name="play", description="Start a Color Rush game in this channel")
        @app_commands.describe(mode="Game mode", difficulty="Difficulty level")
        @app_commands.choices(mode=MODE_CHOICES, difficulty=DIFFICULTY_CHOICES)
        async def play_command(
            interaction: discord.Interaction,
            mode: Optional[app_commands.Choice[str]] = None,
            difficulty: Optional[app_commands.Choice[str]] = None
        ):
            await self.handle_play(
                interaction,
                mode.value if mode else None,
                difficulty.value if difficulty else None
            )

        @self.tree.command(name="pause", description="Pause your game")
        async def pause_command(interaction: discord.Interaction):
            await self.handle_pause(interaction)

        @self.tree.command(name="resume", description="Resume your paused game")
        async def resume_command(interaction: discord.Interaction):
            await self.handle_resume(interaction)

        @self.tree.command(name="stop", description="End your game now and save the result")
        async def stop_command(interaction: discord.Interaction):
            await self.handle_stop(interaction)

        @self.tree.command(name="powerup", description="Use a power-up from your inventory")
        @app_commands.describe(kind="Power-up to use")
        @app_commands.choices(kind=POWER_UP_CHOICES)
        async def powerup_command(interaction: discord.Interaction, kind: app_commands.Choice[str]):
            await self.handle_powerup(interaction, kind.value)

        @self.tree.command(name="inventory", description="Show your power-ups")
        async def inventory_command(interaction: discord.Interaction):
            await self.handle_inventory(interaction)

        @self.tree.command(name="stats", description="Show your Color Rush statistics")
        async def stats_command(interaction: discord.Interaction):
            await self.handle_stats(interaction)

        @self.tree.command(name="status", description="Show the game running in this channel")
        async def status_command(interaction: discord.Interaction):
            await self.handle_status(interaction)

        logger.info("Slash commands registered successfully")

    async def on_ready(self):
        """Called when the bot has successfully connected to Discord"""
        logger.info(f"Bot is ready! Logged in as {self.user}")
        logger.info(f"Bot is in {len(self.guilds)} guilds")
        print(f"🎨 {self.user} is Ready and Online!")

        try:
            synced = await self.tree.sync()
            logger.info(f"Synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")

    async def on_error(self, event, *args, **kwargs):
        """Handle general bot errors"""
        logger.error(f"An error occurred in event {event}", exc_info=True)

    async def close(self):
        """Stop every game before disconnecting."""
        if self.game_controller is not None:
            self.game_controller.shutdown()
        await super().close()

    async def handle_help(self, interaction: discord.Interaction):
        """Handle /help command"""
        try:
            help_embed = discord.Embed(
                title="🎨 Color Rush",
                description=(
                    "A color appears in the game card's sidebar. Press the button naming it "
                    "before the clock runs out! Wrong answers cost a life and two seconds."
                ),
                color=0x00ff00
            )
            help_embed.add_field(
                name="🎮 Game Commands",
                value=(
                    "`/play [mode] [difficulty]` - Start a game in this channel\n"
                    "`/pause` - Pause your game\n"
                    "`/resume` - Resume your game\n"
                    "`/stop` - End your game and save the result\n"
                    "`/status` - Show the game in this channel"
                ),
                inline=False
            )
            help_embed.add_field(
                name="⚡ Power-ups",
                value=(
                    "`/powerup <kind>` - Use a power-up\n"
                    "`/inventory` - Show your power-ups\n"
                    + "\n".join(f"{label}" for label in POWER_UP_LABELS.values())
                ),
                inline=False
            )
            help_embed.add_field(name="📊 Progress", value="`/stats` - Your scores and level", inline=False)
            help_embed.add_field(
                name="⚙️ Current Settings",
                value=f"```\n{self.config_manager.get_settings_summary()}\n```",
                inline=False
            )
            help_embed.set_footer(text="Every 10 matches raises the level, every 10-streak is a perfect match")

            await interaction.response.send_message(embed=help_embed)

        except Exception as e:
            logger.error(f"Error in help command: {e}")
            await self.send_error_response(interaction, "Failed to display help", "❌ Help Error")

    async def handle_play(self, interaction: discord.Interaction, mode: Optional[str], difficulty: Optional[str]):
        """Handle /play command"""
        try:
            result = self.game_controller.start_game(
                interaction.channel_id,
                interaction.user.id,
                mode,
                difficulty,
                channel=interaction.channel
            )
            if not result['success']:
                await self.send_error_response(interaction, result['user_message'], "❌ Cannot Start Game")
                return

            info = result['session_info']
            embed = discord.Embed(
                title="🎨 Color Rush!",
                description=f"{interaction.user.mention} started a game. Get ready!",
                color=0x00ff00
            )
            embed.add_field(name="🕹️ Mode", value=info['game_mode'].title(), inline=True)
            embed.add_field(name="🎚️ Difficulty", value=info['difficulty'].title(), inline=True)
            embed.add_field(name="⏱️ Time", value=f"{info['time_left']}s", inline=True)
            await interaction.response.send_message(embed=embed)

        except Exception as e:
            logger.error(f"Error in play command: {e}")
            await self.send_error_response(interaction, "Failed to start game", "❌ Game Control Error")

    async def handle_pause(self, interaction: discord.Interaction):
        """Handle /pause command"""
        try:
            result = self.game_controller.pause_game(interaction.channel_id, interaction.user.id)
            if result['success']:
                await interaction.response.send_message("⏸️ Game paused. Use `/resume` to continue.")
            else:
                await self.send_warning_response(interaction, result['user_message'], "⚠️ Cannot Pause")

        except Exception as e:
            logger.error(f"Error in pause command: {e}")
            await self.send_error_response(interaction, "Failed to pause game", "❌ Game Control Error")

    async def handle_resume(self, interaction: discord.Interaction):
        """Handle /resume command"""
        try:
            result = self.game_controller.resume_game(interaction.channel_id, interaction.user.id)
            if result['success']:
                await interaction.response.send_message(f"▶️ {result['message']}.")
            else:
                await self.send_warning_response(interaction, result['user_message'], "⚠️ Cannot Resume")

        except Exception as e:
            logger.error(f"Error in resume command: {e}")
            await self.send_error_response(interaction, "Failed to resume game", "❌ Game Control Error")

    async def handle_stop(self, interaction: discord.Interaction):
        """Handle /stop command"""
        try:
            result = self.game_controller.stop_game(interaction.channel_id, interaction.user.id)
            if not result['success']:
                await self.send_info_response(interaction, result['user_message'], "ℹ️ No Game to Stop")
                return

            final_state = result['final_state']
            embed = discord.Embed(
                title="🛑 Game Stopped",
                description=f"Final score: **{final_state.score}**",
                color=0xff6600
            )
            embed.add_field(
                name="📊 Final Stats",
                value=(
                    f"Level: {final_state.level}\n"
                    f"Colors matched: {final_state.colors_matched}\n"
                    f"Best streak: {final_state.max_streak}"
                ),
                inline=False
            )
            save_result = result['save_result']
            if save_result is not None and not save_result['success']:
                embed.add_field(name="⚠️ Not Saved", value="The result could not be saved.", inline=False)
            embed.set_footer(text="Use /play to begin a new game")
            await interaction.response.send_message(embed=embed)

        except Exception as e:
            logger.error(f"Error in stop command: {e}")
            await self.send_error_response(interaction, "Failed to stop game", "❌ Game Control Error")

    async def handle_powerup(self, interaction: discord.Interaction, kind: str):
        """Handle /powerup command"""
        try:
            result = self.game_controller.use_power_up(interaction.channel_id, interaction.user.id, kind)
            if not result['success']:
                await self.send_warning_response(interaction, result['user_message'], "⚠️ Power-up Not Used")
                return

            message = f"{result['message']}! {result['remaining']} left."
            if 'hint_option_id' in result:
                message += " The right color is highlighted in green."
            await interaction.response.send_message(message, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in powerup command: {e}")
            await self.send_error_response(interaction, "Failed to use power-up", "❌ Power-up Error")

    async def handle_inventory(self, interaction: discord.Interaction):
        """Handle /inventory command"""
        try:
            inventory = self.data_manager.get_inventory(interaction.user.id)
            embed = discord.Embed(title="🎒 Your Power-ups", color=0x6699ff)
            for kind, label in POWER_UP_LABELS.items():
                embed.add_field(name=label, value=str(inventory.get(kind.value, 0)), inline=True)
            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in inventory command: {e}")
            await self.send_error_response(interaction, "Failed to load inventory", "❌ Inventory Error")

    async def handle_stats(self, interaction: discord.Interaction):
        """Handle /stats command"""
        try:
            stats = self.data_manager.get_player_stats(interaction.user.id)
            if stats is None:
                await self.send_info_response(
                    interaction, "You haven't finished a game yet. Try `/play`!", "ℹ️ No Stats Yet"
                )
                return

            embed = discord.Embed(title=f"📊 Stats for {interaction.user.display_name}", color=0x6699ff)
            embed.add_field(name="⭐ Level", value=str(stats['level']), inline=True)
            embed.add_field(name="✨ XP", value=str(stats['experience_points']), inline=True)
            embed.add_field(name="🎮 Games", value=str(stats['total_games_played']), inline=True)
            embed.add_field(name="🏆 Best Score", value=str(stats['best_score']), inline=True)
            embed.add_field(name="🔥 Best Streak", value=str(stats['best_streak']), inline=True)
            embed.add_field(name="➕ Total Score", value=str(stats['total_score']), inline=True)

            recent = self.data_manager.get_recent_results(interaction.user.id)
            if recent:
                embed.add_field(
                    name="🕒 Recent Games",
                    value="\n".join(
                        f"{record['score']} pts · {record['game_mode']}/{record['difficulty']}" for record in recent
                    ),
                    inline=False
                )
            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in stats command: {e}")
            await self.send_error_response(interaction, "Failed to load stats", "❌ Stats Error")

    async def handle_status(self, interaction: discord.Interaction):
        """Handle /status command"""
        try:
            status = self.game_controller.get_session_status(interaction.channel_id)
            if status is None:
                await self.send_info_response(
                    interaction, "No game in this channel. Start one with `/play`.", "ℹ️ No Active Game"
                )
                return

            embed = discord.Embed(
                title="🎨 Game Status",
                description=f"<@{status['player_id']}> is playing ({status['state'].replace('_', ' ')})",
                color=0x6699ff
            )
            embed.add_field(name="🏆 Score", value=str(status['score']), inline=True)
            embed.add_field(name="📈 Level", value=str(status['level']), inline=True)
            embed.add_field(name="❤️ Lives", value=str(status['lives']), inline=True)
            embed.add_field(name="⏱️ Time Left", value=f"{status['time_left']}s", inline=True)
            await interaction.response.send_message(embed=embed, ephemeral=True)

        except Exception as e:
            logger.error(f"Error in status command: {e}")
            await self.send_error_response(interaction, "Failed to get game status", "❌ Status Error")

    async def send_error_response(self, interaction: discord.Interaction, message: str, title: str = "❌ Error"):
        """Send formatted error response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xff0000
            )
            embed.set_footer(text="If this error persists, try using /help for available commands")

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send error response to user")

    async def send_info_response(self, interaction: discord.Interaction, message: str, title: str = "ℹ️ Information"):
        """Send formatted info response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0x6699ff
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send info response to user")

    async def send_warning_response(self, interaction: discord.Interaction, message: str, title: str = "⚠️ Warning"):
        """Send formatted warning response to user"""
        try:
            embed = discord.Embed(
                title=title,
                description=message,
                color=0xffaa00
            )

            if interaction.response.is_done():
                await interaction.followup.send(embed=embed, ephemeral=True)
            else:
                await interaction.response.send_message(embed=embed, ephemeral=True)
        except discord.HTTPException:
            logger.error("Failed to send warning response to user")


async def run_bot(token=None, config=None, config_manager=None):
    """Run the bot with proper error handling"""
    if not token:
        token = os.getenv('DISCORD_BOT_TOKEN')

    if not token:
        logger.error("No Discord bot token provided")
        return

    bot = ColorRushBot(config, config_manager)

    try:
        logger.info("Starting Color Rush bot...")
        await bot.start(token)
    except discord.LoginFailure:
        logger.error("Invalid bot token provided")
    except discord.HTTPException as e:
        logger.error(f"HTTP error occurred: {e}")
    finally:
        if not bot.is_closed():
            await bot.close()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(run_bot())
