#!/usr/bin/env python3
"""
Sentinel - Discord Auto-Moderation Bot Entry Point
==================================================

Loads .env, validates configuration and runs the bot until interrupted.
"""

import asyncio
import sys

from dotenv import load_dotenv

from sentinel.core.logger import logger


async def run() -> None:
    """
    Start the bot.

    Raises:
        SystemExit: If configuration is invalid.
    """
    from sentinel.core.config import ConfigValidationError, get_config, validate_and_log_config

    try:
        validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Invalid Configuration", [("Error", str(e))])
        logger.error("Please add the missing values to your .env file")
        sys.exit(1)

    config = get_config()
    logger.set_webhook(config.error_webhook_url)

    logger.tree("SENTINEL STARTING", [
        ("Data Dir", str(config.data_dir)),
        ("Commands", "/warn, /blockedwords, /blockeddomains"),
    ], emoji="🛡️")

    from sentinel.bot import SentinelBot

    bot = SentinelBot()
    async with bot:
        await bot.start(config.discord_token)


def main() -> None:
    load_dotenv()

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user (Ctrl+C)")
    except Exception as e:
        logger.critical(f"Fatal error: {type(e).__name__}: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
