#!/usr/bin/env python3
"""
Color Rush - command line entry point.

    python main.py [--config PATH] [--check]

Reads config.json, runs its "game" section through ConfigManager and starts
the bot with the validated settings. With --check the settings are printed
and nothing is started. DISCORD_BOT_TOKEN overrides bot.token.
"""
import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path

from color_rush.bot import run_bot, setup_logging
from color_rush.config_manager import ConfigManager

logger = logging.getLogger(__name__)

PLACEHOLDER_TOKEN = "YOUR_DISCORD_BOT_TOKEN_HERE"


class StartupError(Exception):
    """Raised when the bot cannot start with the given configuration"""
    pass


def load_config(config_path: Path) -> dict:
    """
    Read config.json.

    Raises:
        StartupError: If the file is missing, unreadable or not a JSON object
    """
    if not config_path.exists():
        raise StartupError(f"{config_path} not found. Copy config.json and set your bot token.")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise StartupError(f"Invalid JSON in {config_path}: {e}") from e
    except OSError as e:
        raise StartupError(f"Cannot read {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise StartupError(f"{config_path} must contain a JSON object")
    return config


def check_game_config(config: dict) -> ConfigManager:
    """
    Apply the "game" section to a fresh ConfigManager.

    Args:
        config: Parsed config.json

    Returns:
        The configured manager, ready to hand to the bot

    Raises:
        StartupError: If a value is rejected or the health check reports errors
    """
    config_manager = ConfigManager()
    problems = [failure['error'] for failure in config_manager.apply_config(config.get('game', {}))]

    health = config_manager.get_configuration_health_check()
    problems.extend(health['errors'])
    for warning in health['warnings']:
        logger.warning(warning)

    if problems:
        raise StartupError("Invalid game configuration:\n  " + "\n  ".join(problems))
    return config_manager


def resolve_token(config: dict) -> str:
    """Bot token from DISCORD_BOT_TOKEN, else from bot.token in config.json."""
    token = os.getenv('DISCORD_BOT_TOKEN') or config.get('bot', {}).get('token')
    if not token or token == PLACEHOLDER_TOKEN:
        raise StartupError(
            "Discord bot token not configured. Set DISCORD_BOT_TOKEN or the 'token' field in config.json."
        )
    return token


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Run the Color Rush Discord bot")
    parser.add_argument('--config', type=Path, default=Path("config.json"), help="path to config.json")
    parser.add_argument('--check', action='store_true', help="validate the configuration and exit")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
        setup_logging(config.get('logging'))
        config_manager = check_game_config(config)
        if args.check:
            print(config_manager.get_settings_summary())
            return 0
        token = resolve_token(config)
    except StartupError as e:
        print(f"❌ {e}")
        return 1

    print("🎨 Starting Color Rush bot...")
    try:
        asyncio.run(run_bot(token, config, config_manager))
    except KeyboardInterrupt:
        print("\n👋 Bot stopped by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
